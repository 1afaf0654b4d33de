"""istioctl command strategies, one per mesh release."""

from __future__ import annotations

import abc
import logging
import os
import subprocess
import tempfile
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass

from mesh_commander.exceptions import CommandError
from mesh_commander.utils.version_compare import MeshVersion

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    success: bool
    stdout: str
    stderr: str
    returncode: int


class CommandRunner:
    """Execute a command and capture its output."""

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout

    def run(self, cmd: Sequence[str], env: dict[str, str] | None = None) -> CommandResult:
        merged_env = {**os.environ, **env} if env else None
        try:
            result = subprocess.run(
                list(cmd),
                capture_output=True,
                text=True,
                env=merged_env,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            return CommandResult(success=False, stdout="", stderr=str(e), returncode=127)
        except subprocess.TimeoutExpired as e:
            return CommandResult(
                success=False,
                stdout=_as_text(e.stdout),
                stderr=f"timed out after {self.timeout}s",
                returncode=-1,
            )
        return CommandResult(
            success=result.returncode == 0,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            returncode=result.returncode,
        )


def _as_text(raw: str | bytes | None) -> str:
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw


class Commander(abc.ABC):
    """Drives the control plane of one specific mesh release."""

    mesh_version: MeshVersion

    @abc.abstractmethod
    def install(self, manifest: str, kubeconfig: str, log: logging.Logger) -> None:
        """Install the control plane described by an IstioOperator manifest."""

    @abc.abstractmethod
    def upgrade(self, manifest: str, kubeconfig: str, log: logging.Logger) -> None:
        """Upgrade the control plane in place."""

    @abc.abstractmethod
    def uninstall(self, kubeconfig: str, log: logging.Logger) -> None:
        """Remove the control plane and its resources."""

    @abc.abstractmethod
    def version(self, kubeconfig: str, log: logging.Logger) -> bytes:
        """Return raw JSON version output for client, control and data plane."""


@contextmanager
def _temp_file(content: str, suffix: str) -> Iterator[str]:
    fd, path = tempfile.mkstemp(prefix="mcom-", suffix=suffix)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        yield path
    finally:
        try:
            os.remove(path)
        except OSError:
            logger.debug("Could not remove temporary file %s", path, exc_info=True)


class IstioctlCommander(Commander):
    """Commander backed by an istioctl binary of a matching release."""

    def __init__(self, binary: str, version: MeshVersion, runner: CommandRunner | None = None):
        self.binary = binary
        self.mesh_version = version
        self.runner = runner or CommandRunner()

    def __repr__(self) -> str:
        return f"IstioctlCommander(binary={self.binary!r}, version={self.mesh_version})"

    def install(self, manifest: str, kubeconfig: str, log: logging.Logger) -> None:
        self._apply("install", manifest, kubeconfig, log)

    def upgrade(self, manifest: str, kubeconfig: str, log: logging.Logger) -> None:
        self._apply("upgrade", manifest, kubeconfig, log)

    def uninstall(self, kubeconfig: str, log: logging.Logger) -> None:
        with _temp_file(kubeconfig, ".kubeconfig") as kc_path:
            self._run(
                ["x", "uninstall", "--purge", "--skip-confirmation", "--kubeconfig", kc_path],
                log,
            )

    def version(self, kubeconfig: str, log: logging.Logger) -> bytes:
        with _temp_file(kubeconfig, ".kubeconfig") as kc_path:
            result = self._run(["version", "--output", "json", "--kubeconfig", kc_path], log)
        return result.stdout.encode("utf-8")

    def _apply(self, verb: str, manifest: str, kubeconfig: str, log: logging.Logger) -> None:
        with _temp_file(manifest, ".yaml") as manifest_path, \
                _temp_file(kubeconfig, ".kubeconfig") as kc_path:
            self._run(
                [verb, "-f", manifest_path, "--skip-confirmation", "--kubeconfig", kc_path],
                log,
            )

    def _run(self, args: list[str], log: logging.Logger) -> CommandResult:
        cmd = [self.binary, *args]
        log.debug("Running %s", " ".join(cmd))
        result = self.runner.run(cmd)
        for line in result.stdout.splitlines():
            log.debug("istioctl: %s", line)
        if not result.success:
            raise CommandError(cmd, result.returncode, result.stderr)
        return result
