"""mcom install / mcom update - Install or upgrade the Istio control plane."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from mesh_commander.cli.options import ContextOption, KubeconfigOption, VersionOption
from mesh_commander.cli.runtime import build_performer, cluster_client, guarded, logger

install_app = typer.Typer()
update_app = typer.Typer()
console = Console()

ManifestArgument = typer.Argument(
    ..., exists=True, dir_okay=False, readable=True,
    help="Rendered Istio chart containing an IstioOperator resource",
)


@install_app.callback(invoke_without_command=True)
def install(
    manifest: Path = ManifestArgument,
    version: str = VersionOption,
    context: Optional[str] = ContextOption,
    kubeconfig: Optional[Path] = KubeconfigOption,
) -> None:
    """Install Istio in the given version."""
    with guarded():
        k8s = cluster_client(context, kubeconfig)
        build_performer().install(
            k8s.kubeconfig(), manifest.read_text(encoding="utf-8"), version, logger,
        )
    console.print(f"[green]Istio {version} installed[/green]")


@update_app.callback(invoke_without_command=True)
def update(
    manifest: Path = ManifestArgument,
    version: str = VersionOption,
    context: Optional[str] = ContextOption,
    kubeconfig: Optional[Path] = KubeconfigOption,
) -> None:
    """Upgrade Istio to the given version."""
    with guarded():
        k8s = cluster_client(context, kubeconfig)
        build_performer().update(
            k8s.kubeconfig(), manifest.read_text(encoding="utf-8"), version, logger,
        )
    console.print(f"[green]Istio updated to {version}[/green]")
