"""mcom reset-proxy - Restart sidecars running an outdated istio-proxy."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from mesh_commander.cli.options import ContextOption, KubeconfigOption
from mesh_commander.cli.runtime import build_performer, cluster_client, guarded, logger
from mesh_commander.config.settings import settings

app = typer.Typer()
console = Console()


@app.callback(invoke_without_command=True)
def reset_proxy(
    image_version: str = typer.Argument(help="Istio proxy version, e.g. 1.11.4"),
    context: Optional[str] = ContextOption,
    kubeconfig: Optional[Path] = KubeconfigOption,
) -> None:
    """Roll all sidecars over to the given istio-proxy version."""
    with guarded():
        k8s = cluster_client(context, kubeconfig)
        with console.status("[bold cyan]Resetting sidecar proxies…"):
            build_performer().reset_proxy(k8s.kubeconfig(), image_version, logger)
    console.print(
        f"[green]Sidecars run {settings.proxy_image_prefix}:{image_version}{settings.proxy_tag_suffix}[/green]"
    )
