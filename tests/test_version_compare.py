"""Tests for mesh version parsing."""

import pytest

from mesh_commander.exceptions import ParseError
from mesh_commander.utils.version_compare import (
    MeshVersion,
    classify_update,
    parse_version,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1.11.4", MeshVersion(1, 11, 4)),
        ("v1.2.3", MeshVersion(1, 2, 3)),
        ("1.12.0-rc.1", MeshVersion(1, 12, 0, "rc.1")),
        (" 1.10.2 ", MeshVersion(1, 10, 2)),
    ],
)
def test_parse_valid(raw: str, expected: MeshVersion) -> None:
    """Well-formed versions parse to the same value every time."""
    assert parse_version(raw) == expected
    assert parse_version(raw) == parse_version(raw)


@pytest.mark.parametrize(
    "raw",
    ["", "   ", "1.2", "1.x.3", "one.two.three", "1.2.3.4", "1.2.3-", "latest"],
)
def test_parse_invalid(raw: str) -> None:
    """Malformed versions and unknown aliases raise ParseError."""
    with pytest.raises(ParseError):
        parse_version(raw)


def test_build_metadata_ignored_for_equality() -> None:
    """Two builds of one release are interchangeable for dispatch."""
    a = parse_version("1.11.4+build.1")
    b = parse_version("1.11.4+build.2")
    assert a == b
    assert hash(a) == hash(b)
    assert str(a) == "1.11.4+build.1"


def test_ordering() -> None:
    versions = [parse_version(v) for v in ["1.12.0", "1.11.4", "1.12.0-rc.1", "1.2.10"]]
    assert [str(v) for v in sorted(versions)] == ["1.2.10", "1.11.4", "1.12.0-rc.1", "1.12.0"]


def test_aliases() -> None:
    aliases = {"stable": "1.11.4"}
    assert parse_version("stable", aliases) == MeshVersion(1, 11, 4)
    with pytest.raises(ParseError, match="unknown version alias"):
        parse_version("canary", aliases)


def test_alias_to_alias_rejected() -> None:
    with pytest.raises(ParseError):
        parse_version("stable", {"stable": "canary"})


def test_classify_update() -> None:
    assert classify_update("1.10.2", "1.11.4") == "minor"
    assert classify_update("1.11.4", "2.0.0") == "major"
    assert classify_update("1.11.3", "1.11.4") == "patch"
    assert classify_update("1.11.4", "1.11.4") == "up-to-date"
    assert classify_update("garbage", "1.11.4") == "unknown"
