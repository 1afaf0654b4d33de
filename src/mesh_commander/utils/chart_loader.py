"""Load chart bundles and chart workspaces from the local filesystem."""

from __future__ import annotations

import logging
import tarfile
from pathlib import Path
from typing import Any

import yaml

from mesh_commander.exceptions import NotFoundError
from mesh_commander.models.chart import ChartBundle, ChartMetadata, Workspace

logger = logging.getLogger(__name__)

CHART_FILE = "Chart.yaml"
VALUES_FILE = "values.yaml"
DEFAULT_RESOURCE_DIR = "resources"


def _load_yaml(text: str, source: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise NotFoundError(f"Could not parse {source}: {e}") from e
    return data if isinstance(data, dict) else {}


def load_chart(path: str | Path) -> ChartBundle:
    """Load a chart from a directory or a packaged ``.tgz`` archive."""
    path = Path(path)
    if path.is_dir():
        return _load_chart_dir(path)
    if path.is_file() and tarfile.is_tarfile(path):
        return _load_chart_archive(path)
    raise NotFoundError(f"Chart not found at {path}")


def _load_chart_dir(path: Path) -> ChartBundle:
    chart_file = path / CHART_FILE
    if not chart_file.exists():
        raise NotFoundError(f"{CHART_FILE} missing in {path}")
    metadata = _load_yaml(chart_file.read_text(encoding="utf-8"), str(chart_file))

    values: dict[str, Any] = {}
    values_file = path / VALUES_FILE
    if values_file.exists():
        values = _load_yaml(values_file.read_text(encoding="utf-8"), str(values_file))
    else:
        logger.debug("No %s in %s, using empty values", VALUES_FILE, path)

    return ChartBundle(metadata=ChartMetadata.from_dict(metadata), values=values, path=path)


def _load_chart_archive(path: Path) -> ChartBundle:
    # Packaged charts hold a single top-level directory named after the chart.
    files: dict[str, str] = {}
    with tarfile.open(path, "r:*") as tar:
        for member in tar.getmembers():
            parts = member.name.split("/")
            if not member.isfile() or len(parts) != 2 or parts[1] not in (CHART_FILE, VALUES_FILE):
                continue
            extracted = tar.extractfile(member)
            if extracted is not None:
                files[parts[1]] = extracted.read().decode("utf-8")

    if CHART_FILE not in files:
        raise NotFoundError(f"{CHART_FILE} missing in {path}")
    metadata = _load_yaml(files[CHART_FILE], f"{path}:{CHART_FILE}")
    values = _load_yaml(files.get(VALUES_FILE, ""), f"{path}:{VALUES_FILE}")
    return ChartBundle(metadata=ChartMetadata.from_dict(metadata), values=values, path=path)


class LocalWorkspaceFactory:
    """Serve chart workspaces laid out as ``<root>/<branch>/resources``."""

    def __init__(self, root: str | Path, resource_dir: str = DEFAULT_RESOURCE_DIR):
        self.root = Path(root)
        self.resource_dir = resource_dir

    def get(self, branch: str) -> Workspace:
        if not branch or ".." in Path(branch).parts or Path(branch).is_absolute():
            raise NotFoundError(f"Invalid workspace name {branch!r}")
        resource_dir = self.root / branch / self.resource_dir
        if not resource_dir.is_dir():
            raise NotFoundError(f"Workspace {branch} has no resource directory at {resource_dir}")
        return Workspace(name=branch, resource_dir=resource_dir)
