"""Wiring shared by all commands: logging, cluster client and performer."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from mesh_commander.config.settings import settings
from mesh_commander.core.commander_resolver import CommanderResolver
from mesh_commander.core.k8s_client import K8sClient
from mesh_commander.core.performer import Performer
from mesh_commander.core.proxy_reset import DefaultProxyResetRunner
from mesh_commander.exceptions import MeshCommanderError

err_console = Console(stderr=True)
logger = logging.getLogger("mesh_commander")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=verbose)],
        force=True,
    )
    if not verbose:
        # The kubernetes client logs every request at INFO through urllib3.
        logging.getLogger("urllib3").setLevel(logging.WARNING)


def cluster_client(context: Optional[str], kubeconfig: Optional[Path]) -> K8sClient:
    if kubeconfig is not None:
        return K8sClient(context=context, kubeconfig=kubeconfig.read_text(encoding="utf-8"))
    return K8sClient(context=context)


def build_performer(discover_istioctl: bool = True) -> Performer:
    if not discover_istioctl:
        return Performer(CommanderResolver(), DefaultProxyResetRunner())
    resolver = CommanderResolver.from_istioctl_paths(settings.istioctl_paths)
    logger.debug("Supported istio versions: %s", ", ".join(resolver.supported) or "none")
    return Performer(resolver, DefaultProxyResetRunner())


@contextmanager
def guarded() -> Iterator[None]:
    """Turn library errors into a red message and exit code 1."""
    try:
        yield
    except MeshCommanderError as e:
        err_console.print(f"[red bold]Error:[/red bold] {e}")
        logger.debug("Operation failed", exc_info=True)
        raise typer.Exit(code=1) from e
