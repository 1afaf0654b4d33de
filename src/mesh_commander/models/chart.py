"""Chart bundle models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class ChartMetadata:
    name: str = ""
    version: str = ""
    app_version: str = ""
    description: str = ""
    api_version: str = ""
    annotations: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: dict) -> ChartMetadata:
        if not d:
            return cls()
        return cls(
            name=d.get("name", ""),
            version=str(d.get("version", "") or ""),
            app_version=str(d.get("appVersion", "") or ""),
            description=d.get("description", ""),
            api_version=d.get("apiVersion", ""),
            annotations=d.get("annotations", {}) or {},
        )


@dataclass(frozen=True)
class ChartBundle:
    """Read-only view of a loaded chart: metadata plus default values."""

    metadata: ChartMetadata = field(default_factory=ChartMetadata)
    values: dict[str, Any] = field(default_factory=dict)
    path: Path | None = None

    def value_at(self, dotted_path: str) -> Any:
        """Return the value stored under a dotted path, or None when absent."""
        node: Any = self.values
        for key in dotted_path.split("."):
            if not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
        return node


@dataclass(frozen=True)
class Workspace:
    """A checked-out chart tree for one branch or release."""

    name: str
    resource_dir: Path
