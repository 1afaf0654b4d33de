"""mcom patch-webhook - Keep the sidecar injector away from system namespaces."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from mesh_commander.cli.options import ContextOption, KubeconfigOption
from mesh_commander.cli.runtime import build_performer, cluster_client, guarded, logger
from mesh_commander.output.tables import patch_result_table

app = typer.Typer()
console = Console()


@app.callback(invoke_without_command=True)
def patch_webhook(
    context: Optional[str] = ContextOption,
    kubeconfig: Optional[Path] = KubeconfigOption,
) -> None:
    """Add the namespace exclusion rule to the sidecar injector webhook."""
    with guarded():
        k8s = cluster_client(context, kubeconfig)
        result = build_performer(discover_istioctl=False).patch_mutating_webhook(k8s, logger)
    console.print(patch_result_table(result))
