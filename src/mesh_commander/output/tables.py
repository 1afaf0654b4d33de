"""Rich table builders for each command."""

from __future__ import annotations

from rich.panel import Panel
from rich.table import Table

from mesh_commander.core.webhook_patcher import PatchResult
from mesh_commander.models.status import StatusReport
from mesh_commander.output.themes import styled_update, styled_version
from mesh_commander.utils.version_compare import classify_update


def status_panel(report: StatusReport) -> Panel:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="bold cyan", no_wrap=True)
    table.add_column("Value")

    table.add_row("Target", styled_version(report.target_version))
    table.add_row("Client (istioctl)", styled_version(report.client_version))
    table.add_row("Control plane", styled_version(report.pilot_version))
    table.add_row("Data plane", styled_version(report.data_plane_version))
    if report.pilot_version:
        table.add_row("Pending upgrade", styled_update(classify_update(report.pilot_version, report.target_version)))

    return Panel(table, title="[bold]Istio Status[/bold]", border_style="blue")


def patch_result_table(result: PatchResult) -> Table:
    table = Table(title="Webhook Patch", expand=False)
    table.add_column("Configuration", style="magenta")
    table.add_column("Changed", justify="center")
    table.add_column("Attempts", justify="right", style="dim")
    changed = "[green]yes[/green]" if result.mutated else "[dim]already present[/dim]"
    table.add_row(result.configuration_name, changed, str(result.attempts))
    return table
