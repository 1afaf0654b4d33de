"""Mesh status models built from `istioctl version` output."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any

from mesh_commander.exceptions import VersionOutputError


@dataclass(frozen=True)
class StatusReport:
    client_version: str = ""
    target_version: str = ""
    pilot_version: str = ""
    data_plane_version: str = ""

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_version_output(cls, output: bytes | str, target_version: str) -> StatusReport:
        """Map raw `istioctl version -o json` output to a StatusReport.

        istioctl may print banner text before the JSON document, so
        everything before the first '{' is discarded. Missing client,
        control-plane or data-plane entries yield empty strings.
        """
        if isinstance(output, str):
            output = output.encode("utf-8")
        if not output:
            raise VersionOutputError("the result of the version command is empty")

        start = output.find(b"{")
        if start < 0:
            raise VersionOutputError("the result of the version command contains no JSON document")
        try:
            data = json.loads(output[start:].decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise VersionOutputError(f"could not parse version output: {e}") from e
        if not isinstance(data, dict):
            raise VersionOutputError("version output is not a JSON object")

        return cls(
            client_version=_client_version(data),
            target_version=target_version,
            pilot_version=_pilot_version(data),
            data_plane_version=_data_plane_version(data),
        )


def _client_version(data: dict[str, Any]) -> str:
    client = data.get("clientVersion") or {}
    return str(client.get("version", "") or "") if isinstance(client, dict) else ""


def _pilot_version(data: dict[str, Any]) -> str:
    mesh = data.get("meshVersion") or []
    if not isinstance(mesh, list) or not mesh or not isinstance(mesh[0], dict):
        return ""
    info = mesh[0].get("Info") or {}
    return str(info.get("version", "") or "") if isinstance(info, dict) else ""


def _data_plane_version(data: dict[str, Any]) -> str:
    planes = data.get("dataPlaneVersion") or []
    if not isinstance(planes, list) or not planes or not isinstance(planes[0], dict):
        return ""
    return str(planes[0].get("IstioVersion", "") or "")
