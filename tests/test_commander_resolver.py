"""Tests for the commander registry."""

from unittest.mock import MagicMock

import pytest
from packaging.specifiers import SpecifierSet

from conftest import FakeCommander
from mesh_commander.config.settings import Settings, settings
from mesh_commander.core.commander import CommandResult, CommandRunner, IstioctlCommander
from mesh_commander.core.commander_resolver import CommanderEntry, CommanderResolver, istioctl_client_version
from mesh_commander.exceptions import ParseError, UnsupportedVersionError
from mesh_commander.utils.version_compare import parse_version


def test_resolve_exact() -> None:
    resolver = CommanderResolver([CommanderEntry(parse_version("1.11.4"), FakeCommander)])
    commander = resolver.resolve(parse_version("1.11.4"))
    assert isinstance(commander, FakeCommander)
    assert commander.mesh_version == parse_version("1.11.4")


def test_resolve_returns_fresh_commander() -> None:
    resolver = CommanderResolver([CommanderEntry(parse_version("1.11.4"), FakeCommander)])
    first = resolver.resolve(parse_version("1.11.4"))
    second = resolver.resolve(parse_version("1.11.4"))
    assert first is not second
    assert type(first) is type(second)


def test_unsupported_version() -> None:
    resolver = CommanderResolver([CommanderEntry(parse_version("1.11.4"), FakeCommander)])
    with pytest.raises(UnsupportedVersionError, match="1.12.0") as exc_info:
        resolver.resolve(parse_version("1.12.0"))
    assert exc_info.value.version == parse_version("1.12.0")


def test_exact_wins_over_range() -> None:
    exact = MagicMock(return_value="exact")
    ranged = MagicMock(return_value="ranged")
    resolver = CommanderResolver()
    resolver.register(">=1.11,<1.12", ranged)
    resolver.register("1.11.4", exact)

    assert resolver.resolve(parse_version("1.11.4")) == "exact"
    assert resolver.resolve(parse_version("1.11.2")) == "ranged"
    assert resolver.supported == ["1.11.4", "<1.12,>=1.11"]


def test_range_matches_prerelease() -> None:
    resolver = CommanderResolver([CommanderEntry(SpecifierSet(">=1.12.0rc0,<1.13"), FakeCommander)])
    assert isinstance(resolver.resolve(parse_version("1.12.0-rc.1")), FakeCommander)


def test_first_registration_wins() -> None:
    resolver = CommanderResolver()
    resolver.register("1.11.4", MagicMock(return_value="first"))
    resolver.register("1.11.4", MagicMock(return_value="second"))
    assert resolver.resolve(parse_version("1.11.4")) == "first"


def test_register_rejects_garbage() -> None:
    with pytest.raises(ParseError):
        CommanderResolver().register("not a version", FakeCommander)


def test_from_istioctl_paths() -> None:
    runner = MagicMock()
    runner.run.side_effect = [
        CommandResult(success=True, stdout="1.11.4\n", stderr="", returncode=0),
        CommandResult(success=False, stdout="", stderr="not found", returncode=127),
        CommandResult(success=True, stdout="no version here\n", stderr="", returncode=0),
        CommandResult(success=True, stdout="1.12.1\n", stderr="", returncode=0),
    ]
    resolver = CommanderResolver.from_istioctl_paths(
        ["/bin/istioctl-1.11", "/bin/missing", "/bin/broken", "/bin/istioctl-1.12"], runner=runner,
    )

    assert resolver.supported == ["1.11.4", "1.12.1"]
    commander = resolver.resolve(parse_version("1.12.1"))
    assert isinstance(commander, IstioctlCommander)
    assert commander.binary == "/bin/istioctl-1.12"
    runner.run.assert_any_call(["/bin/istioctl-1.11", "version", "--remote=false", "--short"])


def test_commanders_do_not_inherit_discovery_timeout() -> None:
    probe_runner = CommandRunner(timeout=30)
    probe_runner.run = MagicMock(return_value=CommandResult(success=True, stdout="1.11.4\n", stderr="", returncode=0))
    resolver = CommanderResolver.from_istioctl_paths(["/bin/istioctl"], runner=probe_runner)

    commander = resolver.resolve(parse_version("1.11.4"))

    assert commander.runner is not probe_runner
    assert commander.runner.timeout == settings.istioctl_run_timeout
    assert commander.runner.timeout is None or commander.runner.timeout > 30


def test_from_istioctl_paths_uses_given_commander_runner() -> None:
    probe_runner = MagicMock()
    probe_runner.run.return_value = CommandResult(success=True, stdout="1.11.4\n", stderr="", returncode=0)
    install_runner = CommandRunner(timeout=None)

    resolver = CommanderResolver.from_istioctl_paths(
        ["/bin/istioctl"], runner=probe_runner, commander_runner=install_runner,
    )

    assert resolver.resolve(parse_version("1.11.4")).runner is install_runner


def test_labelled_client_version() -> None:
    runner = MagicMock()
    runner.run.return_value = CommandResult(success=True, stdout="client version: 1.20.0\n", stderr="", returncode=0)
    assert istioctl_client_version("/bin/istioctl", runner) == parse_version("1.20.0")


def test_istioctl_timeout_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MESH_ISTIOCTL_TIMEOUT", "0")
    assert Settings().istioctl_run_timeout is None
    monkeypatch.setenv("MESH_ISTIOCTL_TIMEOUT", "900")
    assert Settings().istioctl_run_timeout == 900.0
