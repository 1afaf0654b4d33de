"""mcom uninstall - Remove the Istio control plane and its namespace."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from mesh_commander.cli.options import ContextOption, KubeconfigOption, VersionOption
from mesh_commander.cli.runtime import build_performer, cluster_client, guarded, logger
from mesh_commander.config.settings import settings

app = typer.Typer()
console = Console()


@app.callback(invoke_without_command=True)
def uninstall(
    version: str = VersionOption,
    context: Optional[str] = ContextOption,
    kubeconfig: Optional[Path] = KubeconfigOption,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Uninstall Istio and delete its namespace."""
    if not yes:
        typer.confirm(
            f"Uninstall Istio {version} and delete namespace {settings.mesh_namespace}?",
            abort=True,
        )
    with guarded():
        k8s = cluster_client(context, kubeconfig)
        build_performer().uninstall(k8s, version, logger)
    console.print(f"[green]Istio {version} uninstalled[/green]")
