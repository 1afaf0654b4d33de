"""Tests for resolving the target version of a chart."""

import io
import tarfile
from pathlib import Path

import pytest

from mesh_commander.core.chart_version import resolve_target_version, target_version_from_workspace
from mesh_commander.exceptions import NotFoundError
from mesh_commander.models.chart import ChartBundle, ChartMetadata
from mesh_commander.utils.chart_loader import LocalWorkspaceFactory, load_chart


def _bundle(values_version: str | None, app_version: str) -> ChartBundle:
    values = {}
    if values_version is not None:
        values = {"global": {"images": {"istio_pilot": {"version": values_version}}}}
    return ChartBundle(metadata=ChartMetadata(name="istio", app_version=app_version), values=values)


def test_values_override_metadata() -> None:
    assert resolve_target_version(_bundle("1.2.3", "9.9.9")) == "1.2.3"


def test_metadata_fallback() -> None:
    assert resolve_target_version(_bundle(None, "1.0.0")) == "1.0.0"


def test_empty_values_falls_back() -> None:
    assert resolve_target_version(_bundle("", "1.0.0")) == "1.0.0"


def test_neither_source() -> None:
    with pytest.raises(NotFoundError, match="neither in Chart.yaml nor in helm values"):
        resolve_target_version(_bundle(None, ""))


def test_non_scalar_values_entry_ignored() -> None:
    bundle = ChartBundle(
        metadata=ChartMetadata(app_version="1.0.0"),
        values={"global": {"images": {"istio_pilot": {"version": {"nested": "1.2.3"}}}}},
    )
    assert resolve_target_version(bundle) == "1.0.0"


def _write_chart(path: Path, app_version: str, values: str) -> None:
    path.mkdir(parents=True)
    (path / "Chart.yaml").write_text(f"apiVersion: v2\nname: istio\nversion: 1.0.0\nappVersion: {app_version}\n")
    (path / "values.yaml").write_text(values)


def test_load_chart_dir(tmp_path: Path) -> None:
    _write_chart(tmp_path / "istio", "1.10.0", "global:\n  images:\n    istio_pilot:\n      version: 1.11.4\n")
    bundle = load_chart(tmp_path / "istio")
    assert bundle.metadata.app_version == "1.10.0"
    assert resolve_target_version(bundle) == "1.11.4"


def test_load_chart_archive(tmp_path: Path) -> None:
    archive = tmp_path / "istio-1.0.0.tgz"
    with tarfile.open(archive, "w:gz") as tar:
        for name, content in [
            ("istio/Chart.yaml", "name: istio\nappVersion: 1.10.0\n"),
            ("istio/values.yaml", "global: {}\n"),
            ("istio/templates/values.yaml", "ignored: true\n"),
        ]:
            data = content.encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))

    bundle = load_chart(archive)
    assert bundle.metadata.name == "istio"
    assert resolve_target_version(bundle) == "1.10.0"


def test_load_chart_missing(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        load_chart(tmp_path / "nope")
    (tmp_path / "empty").mkdir()
    with pytest.raises(NotFoundError, match="Chart.yaml"):
        load_chart(tmp_path / "empty")


def test_target_version_from_workspace(tmp_path: Path) -> None:
    _write_chart(tmp_path / "main" / "resources" / "istio", "1.10.0", "{}\n")
    workspace = LocalWorkspaceFactory(tmp_path)
    assert target_version_from_workspace(workspace, "main", "istio") == "1.10.0"


def test_workspace_missing(tmp_path: Path) -> None:
    workspace = LocalWorkspaceFactory(tmp_path)
    with pytest.raises(NotFoundError):
        workspace.get("release-2.0")
    with pytest.raises(NotFoundError):
        workspace.get("../outside")
