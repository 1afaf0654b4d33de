"""mcom version - Compare target, client, control and data plane versions."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from mesh_commander.cli.options import ContextOption, KubeconfigOption, OutputOption
from mesh_commander.cli.runtime import build_performer, cluster_client, guarded, logger
from mesh_commander.output.formatters import output_status
from mesh_commander.utils.chart_loader import LocalWorkspaceFactory

app = typer.Typer()


@app.callback(invoke_without_command=True)
def version(
    workspace: Path = typer.Option(..., "--workspace", "-w", exists=True, file_okay=False, help="Root of the chart workspaces"),
    branch: str = typer.Option(..., "--branch", "-b", help="Workspace (branch or release) to read the chart from"),
    chart: str = typer.Option("istio", "--chart", help="Chart directory inside the workspace resources"),
    output: str = OutputOption,
    context: Optional[str] = ContextOption,
    kubeconfig: Optional[Path] = KubeconfigOption,
) -> None:
    """Report the Istio versions found in the chart and on the cluster."""
    with guarded():
        k8s = cluster_client(context, kubeconfig)
        report = build_performer().version(
            LocalWorkspaceFactory(workspace), branch, chart, k8s.kubeconfig(), logger,
        )
    output_status(report, output)
