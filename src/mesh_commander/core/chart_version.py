"""Determine the target mesh version declared by a chart."""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from mesh_commander.config.settings import settings
from mesh_commander.exceptions import NotFoundError
from mesh_commander.models.chart import ChartBundle, Workspace
from mesh_commander.utils.chart_loader import load_chart

logger = logging.getLogger(__name__)

ChartLoader = Callable[[str], ChartBundle]


class WorkspaceFactory(Protocol):
    def get(self, branch: str) -> Workspace: ...


def version_from_values(bundle: ChartBundle, values_path: str | None = None) -> str:
    """Return the pilot image version set in the chart values, or ''."""
    value = bundle.value_at(values_path or settings.pilot_version_values_path)
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def version_from_metadata(bundle: ChartBundle) -> str:
    """Return the appVersion declared in Chart.yaml, or ''."""
    return (bundle.metadata.app_version or "").strip()


def resolve_target_version(
    bundle: ChartBundle,
    values_path: str | None = None,
    log: logging.Logger | None = None,
) -> str:
    """Return the version the chart installs.

    Operators override the shipped default through values without touching
    Chart.yaml, so a non-empty values entry wins over appVersion.
    """
    log = log or logger

    pilot_version = version_from_values(bundle, values_path)
    if pilot_version:
        log.debug("Resolved target Istio version: %s from values", pilot_version)
        return pilot_version

    app_version = version_from_metadata(bundle)
    if app_version:
        log.debug("Resolved target Istio version: %s from Chart definition", app_version)
        return app_version

    raise NotFoundError(
        "Target Istio version could not be found neither in Chart.yaml nor in helm values"
    )


def target_version_from_workspace(
    workspace: WorkspaceFactory,
    branch: str,
    chart: str,
    loader: ChartLoader = load_chart,
    log: logging.Logger | None = None,
) -> str:
    """Load ``chart`` from the workspace of ``branch`` and resolve its version."""
    ws = workspace.get(branch)
    bundle = loader(str(ws.resource_dir / chart))
    return resolve_target_version(bundle, log=log)
