"""Application configuration and defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _default_istioctl_paths() -> list[str]:
    """Return the istioctl binaries listed in ISTIOCTL_PATH.

    Multiple binaries are separated with ';' so that one process can drive
    several mesh releases side by side.
    """
    raw = os.environ.get("ISTIOCTL_PATH", "")
    paths = [p.strip() for p in raw.split(";") if p.strip()]
    return paths or ["istioctl"]


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _default_version_aliases() -> dict[str, str]:
    """Parse MESH_VERSION_ALIASES, e.g. ``stable=1.11.4,canary=1.12.0``."""
    aliases: dict[str, str] = {}
    raw = os.environ.get("MESH_VERSION_ALIASES", "")
    for pair in raw.split(","):
        name, sep, version = pair.partition("=")
        if sep and name.strip() and version.strip():
            aliases[name.strip()] = version.strip()
    return aliases


@dataclass
class Settings:
    istioctl_paths: list[str] = field(default_factory=_default_istioctl_paths)
    mesh_namespace: str = field(
        default_factory=lambda: os.environ.get("MESH_NAMESPACE", "istio-system")
    )
    request_timeout: float = field(
        default_factory=lambda: _env_float("MESH_REQUEST_TIMEOUT", 30.0)
    )
    # 0 disables the limit
    istioctl_timeout: float = field(
        default_factory=lambda: _env_float("MESH_ISTIOCTL_TIMEOUT", 1200.0)
    )
    version_aliases: dict[str, str] = field(default_factory=_default_version_aliases)
    pilot_version_values_path: str = "global.images.istio_pilot.version"

    # Sidecar proxy reset
    proxy_image_prefix: str = "istio/proxyv2"
    proxy_image_suffix: str = "distroless"
    proxy_container_name: str = "istio-proxy"
    proxy_retries_count: int = 5
    proxy_delay_between_retries: float = 5.0
    proxy_timeout: float = 300.0
    proxy_interval: float = 12.0

    # Sidecar injector webhook patch
    webhook_candidates: list[str] = field(
        default_factory=lambda: ["istio-revision-tag-default", "istio-sidecar-injector"]
    )
    webhook_name: str = "auto.sidecar-injector.istio.io"
    webhook_rule_key: str = "gardener.cloud/purpose"
    webhook_rule_operator: str = "NotIn"
    webhook_rule_values: list[str] = field(default_factory=lambda: ["kube-system"])

    @property
    def proxy_tag_suffix(self) -> str:
        return f"-{self.proxy_image_suffix}"

    @property
    def istioctl_run_timeout(self) -> float | None:
        return self.istioctl_timeout if self.istioctl_timeout > 0 else None


# Global singleton
settings = Settings()
