"""Mesh version parsing and comparison utilities."""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass, field

from packaging.version import InvalidVersion, Version

from mesh_commander.exceptions import ParseError

_VERSION_RE = re.compile(
    r"^v?(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)"
    r"(?:-(?P<pre>[0-9A-Za-z]+(?:[.-][0-9A-Za-z]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z]+(?:[.-][0-9A-Za-z]+)*))?$"
)
_ALIAS_RE = re.compile(r"^[A-Za-z][A-Za-z_-]*$")
_PARTIAL_RE = re.compile(r"^v?[0-9.]+$")


@functools.total_ordering
@dataclass(frozen=True)
class MeshVersion:
    """A ``major.minor.patch[-prerelease][+build]`` mesh release.

    Build metadata is carried for display only; it takes no part in equality,
    ordering or hashing, so two builds of the same release dispatch alike.
    """

    major: int
    minor: int
    patch: int
    prerelease: str = ""
    build: str = field(default="", compare=False)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return text

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, MeshVersion):
            return NotImplemented
        return self.compare(other) < 0

    def compare(self, other: MeshVersion) -> int:
        if self.release < other.release:
            return -1
        if self.release > other.release:
            return 1
        # A pre-release sorts before its final release.
        if self.prerelease == other.prerelease:
            return 0
        if not self.prerelease:
            return 1
        if not other.prerelease:
            return -1
        mine, theirs = self.as_packaging(), other.as_packaging()
        if mine == theirs:
            return -1 if self.prerelease < other.prerelease else 1
        return -1 if mine < theirs else 1

    @property
    def release(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def as_packaging(self) -> Version:
        """Return the closest PEP 440 version, used for range matching."""
        base = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            try:
                return Version(f"{base}-{self.prerelease}")
            except InvalidVersion:
                return Version(f"{base}.dev0")
        return Version(base)


def parse_version(raw: str, aliases: dict[str, str] | None = None) -> MeshVersion:
    """Parse a version string or symbolic alias into a MeshVersion.

    Raises ParseError for empty input, non-numeric components, malformed
    suffixes and unknown aliases.
    """
    if raw is None or not str(raw).strip():
        raise ParseError("" if raw is None else str(raw), "version is empty")
    text = str(raw).strip()

    if _ALIAS_RE.match(text) and not _VERSION_RE.match(text):
        target = (aliases or {}).get(text)
        if target is None:
            raise ParseError(text, "unknown version alias")
        if _ALIAS_RE.match(target):
            raise ParseError(text, f"alias resolves to another alias {target!r}")
        return parse_version(target)

    match = _VERSION_RE.match(text)
    if match is None:
        if _PARTIAL_RE.match(text):
            reason = "expected major.minor.patch"
        else:
            reason = "components must be numeric"
        raise ParseError(text, reason)

    return MeshVersion(
        major=int(match["major"]),
        minor=int(match["minor"]),
        patch=int(match["patch"]),
        prerelease=match["pre"] or "",
        build=match["build"] or "",
    )


def try_parse_version(v: str) -> MeshVersion | None:
    """Parse a version string, returning None on failure."""
    try:
        return parse_version(v)
    except ParseError:
        return None


def classify_update(current: str, latest: str) -> str:
    """Classify the update type between two version strings.

    Returns: "major", "minor", "patch", "up-to-date", or "unknown".
    """
    cur = try_parse_version(current)
    lat = try_parse_version(latest)

    if cur is None or lat is None:
        return "unknown"
    if lat.compare(cur) <= 0:
        return "up-to-date"
    if lat.major > cur.major:
        return "major"
    if lat.minor > cur.minor:
        return "minor"
    return "patch"
