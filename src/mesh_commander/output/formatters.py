"""Table / JSON / YAML output dispatch."""

from __future__ import annotations

import json

import yaml
from rich.console import Console

from mesh_commander.models.status import StatusReport

console = Console()


def output_status(report: StatusReport, fmt: str) -> None:
    if fmt == "json":
        console.print_json(json.dumps(report.to_dict(), indent=2))
    elif fmt == "yaml":
        console.print(yaml.dump(report.to_dict(), default_flow_style=False))
    else:
        from mesh_commander.output.tables import status_panel
        console.print(status_panel(report))
