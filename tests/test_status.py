"""Tests for mapping istioctl version output."""

import json

import pytest

from mesh_commander.exceptions import VersionOutputError
from mesh_commander.models.status import StatusReport


def test_banner_is_skipped() -> None:
    raw = b'garbage-banner\n{"clientVersion":{"version":"1.11.0"}}'
    report = StatusReport.from_version_output(raw, "1.11.4")
    assert report == StatusReport(
        client_version="1.11.0",
        target_version="1.11.4",
        pilot_version="",
        data_plane_version="",
    )


def test_full_output() -> None:
    raw = json.dumps({
        "clientVersion": {"version": "1.11.4", "revision": "abc"},
        "meshVersion": [
            {"Component": "pilot", "Info": {"version": "1.11.3"}},
            {"Component": "pilot", "Info": {"version": "1.10.0"}},
        ],
        "dataPlaneVersion": [{"IstioVersion": "1.10.2"}, {"IstioVersion": "1.11.3"}],
    }).encode()
    report = StatusReport.from_version_output(raw, "1.11.4")
    assert report.client_version == "1.11.4"
    assert report.pilot_version == "1.11.3"
    assert report.data_plane_version == "1.10.2"


def test_missing_sections_tolerated() -> None:
    report = StatusReport.from_version_output('{"meshVersion": [], "dataPlaneVersion": null}', "1.0.0")
    assert report.client_version == ""
    assert report.pilot_version == ""
    assert report.data_plane_version == ""


@pytest.mark.parametrize("raw", [b"", b"no json at all", b"banner {not json"])
def test_unusable_output(raw: bytes) -> None:
    with pytest.raises(VersionOutputError):
        StatusReport.from_version_output(raw, "1.11.4")
