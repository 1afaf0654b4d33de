"""Map mesh versions to the commander able to drive them."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Callable, Union

from packaging.specifiers import InvalidSpecifier, SpecifierSet

from mesh_commander.config.settings import settings
from mesh_commander.core.commander import CommandRunner, Commander, IstioctlCommander
from mesh_commander.exceptions import ParseError, UnsupportedVersionError
from mesh_commander.utils.version_compare import MeshVersion, parse_version

logger = logging.getLogger(__name__)

CommanderFactory = Callable[[MeshVersion], Commander]
VersionMatch = Union[MeshVersion, SpecifierSet]


@dataclass(frozen=True)
class CommanderEntry:
    match: VersionMatch
    factory: CommanderFactory

    def matches(self, version: MeshVersion) -> bool:
        if isinstance(self.match, MeshVersion):
            return self.match == version
        return self.match.contains(version.as_packaging(), prereleases=True)


class CommanderResolver:
    """Registry of commander factories keyed by exact version or version range.

    Exact entries always win over ranges; ranges are tried in registration
    order. Resolution performs no I/O.
    """

    def __init__(self, entries: Iterable[CommanderEntry] = ()):
        self._exact: dict[MeshVersion, CommanderFactory] = {}
        self._ranges: list[CommanderEntry] = []
        for entry in entries:
            self.register(entry.match, entry.factory)

    def register(self, match: VersionMatch | str, factory: CommanderFactory) -> None:
        if isinstance(match, str):
            match = _parse_match(match)
        if isinstance(match, MeshVersion):
            if match in self._exact:
                logger.debug("Commander for %s already registered, keeping the first one", match)
                return
            self._exact[match] = factory
        else:
            self._ranges.append(CommanderEntry(match, factory))

    @property
    def supported(self) -> list[str]:
        exact = [str(v) for v in sorted(self._exact)]
        return exact + [str(e.match) for e in self._ranges]

    def resolve(self, version: MeshVersion) -> Commander:
        """Return a fresh commander for ``version``."""
        factory = self._exact.get(version)
        if factory is None:
            factory = next((e.factory for e in self._ranges if e.matches(version)), None)
        if factory is None:
            raise UnsupportedVersionError(version)
        return factory(version)

    @classmethod
    def from_istioctl_paths(
        cls,
        paths: Iterable[str],
        runner: CommandRunner | None = None,
        commander_runner: CommandRunner | None = None,
    ) -> CommanderResolver:
        """Build a registry from istioctl binaries by asking each for its version.

        ``runner`` only serves the version probe of each binary. Commanders get
        ``commander_runner``, bounded by ``settings.istioctl_timeout``.
        """
        runner = runner or CommandRunner(timeout=settings.request_timeout)
        commander_runner = commander_runner or CommandRunner(timeout=settings.istioctl_run_timeout)
        resolver = cls()
        for path in paths:
            version = istioctl_client_version(path, runner)
            if version is None:
                continue
            logger.debug("Registered istioctl %s for version %s", path, version)
            resolver.register(version, _istioctl_factory(path, commander_runner))
        return resolver


def _istioctl_factory(path: str, runner: CommandRunner) -> CommanderFactory:
    def factory(version: MeshVersion) -> Commander:
        return IstioctlCommander(path, version, runner=runner)
    return factory


def _parse_match(raw: str) -> VersionMatch:
    try:
        return parse_version(raw)
    except ParseError:
        pass
    try:
        return SpecifierSet(raw)
    except InvalidSpecifier as e:
        raise ParseError(raw, "neither a version nor a version range") from e


def istioctl_client_version(path: str, runner: CommandRunner) -> MeshVersion | None:
    """Return the client version reported by an istioctl binary, or None."""
    result = runner.run([path, "version", "--remote=false", "--short"])
    if not result.success:
        logger.warning("Skipping istioctl at %s: %s", path, result.stderr.strip() or "not executable")
        return None
    lines = result.stdout.strip().splitlines()
    # Newer releases print "client version: 1.20.0"
    raw = lines[-1].rpartition(":")[2].strip() if lines else ""
    try:
        return parse_version(raw)
    except ParseError:
        logger.warning("Skipping istioctl at %s: unrecognised version %r", path, raw)
        return None
