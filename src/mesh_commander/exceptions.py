"""Exceptions raised by Mesh Commander."""

from __future__ import annotations

__all__ = [
    "MeshCommanderError",
    "ParseError",
    "UnsupportedVersionError",
    "NotFoundError",
    "SelectionError",
    "EntryNotFoundError",
    "ConflictExhaustedError",
    "DelegateError",
    "VersionOutputError",
    "ManifestError",
    "CommandError",
    "ProxyResetError",
    "OperationCancelledError",
]


class MeshCommanderError(Exception):
    """Generic base exception used for this library."""


class ParseError(MeshCommanderError):
    """Raised when a version string is malformed."""

    def __init__(self, raw: str, reason: str) -> None:
        super().__init__(f"Invalid version {raw!r}: {reason}")
        self.raw = raw
        self.reason = reason


class UnsupportedVersionError(MeshCommanderError):
    """Raised when no commander is registered for a version."""

    def __init__(self, version: object) -> None:
        super().__init__(f"No istioctl commander registered for version {version}")
        self.version = version


class NotFoundError(MeshCommanderError):
    """Raised when no target version can be derived from a chart."""


class SelectionError(MeshCommanderError):
    """Raised when none of the candidate webhook configurations could be fetched."""


class EntryNotFoundError(MeshCommanderError):
    """Raised when the named webhook is missing from a webhook configuration."""

    def __init__(self, entry_name: str, configuration_name: str) -> None:
        super().__init__(
            f"Could not find webhook {entry_name} in WebhookConfiguration {configuration_name}"
        )
        self.entry_name = entry_name
        self.configuration_name = configuration_name


class ConflictExhaustedError(MeshCommanderError):
    """Raised when a conflicting update keeps failing after every retry."""

    def __init__(self, resource_name: str, attempts: int) -> None:
        super().__init__(
            f"Update of {resource_name} still conflicting after {attempts} attempt(s)"
        )
        self.resource_name = resource_name
        self.attempts = attempts


class DelegateError(MeshCommanderError):
    """Wraps a failure returned by an external collaborator."""

    def __init__(self, operation: str, cause: BaseException) -> None:
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.cause = cause


class VersionOutputError(MeshCommanderError):
    """Raised when `istioctl version` output cannot be interpreted."""


class ManifestError(MeshCommanderError):
    """Raised when a rendered chart does not contain a usable operator manifest."""


class CommandError(MeshCommanderError):
    """Raised when an istioctl invocation exits with a non-zero code."""

    def __init__(self, cmd: list[str], returncode: int, stderr: str) -> None:
        detail = stderr.strip() or "no output"
        super().__init__(f"Command {' '.join(cmd)} exited with {returncode}: {detail}")
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr


class ProxyResetError(MeshCommanderError):
    """Raised when sidecar proxies could not be moved to the expected image."""


class OperationCancelledError(MeshCommanderError):
    """Raised when the caller cancelled an in-flight operation."""
