"""Parse rendered chart manifests and pick out the IstioOperator document."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import yaml

from mesh_commander.exceptions import ManifestError

ISTIO_OPERATOR_KIND = "IstioOperator"


@dataclass
class ParsedResource:
    api_version: str
    kind: str
    name: str
    namespace: str
    raw: dict[str, Any]


def parse_manifest(manifest: str) -> list[ParsedResource]:
    """Parse a multi-document YAML string into a list of ParsedResource."""
    resources: list[ParsedResource] = []
    if not manifest:
        return resources

    try:
        docs = list(yaml.safe_load_all(manifest))
    except yaml.YAMLError as e:
        raise ManifestError(f"Rendered chart is not valid YAML: {e}") from e

    for doc in docs:
        if not doc or not isinstance(doc, dict):
            continue
        metadata = doc.get("metadata", {}) or {}
        resources.append(ParsedResource(
            api_version=doc.get("apiVersion", ""),
            kind=doc.get("kind", ""),
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            raw=doc,
        ))
    return resources


def extract_istio_operator(manifest: str) -> str:
    """Return the IstioOperator document of a rendered chart as YAML text.

    istioctl consumes exactly one operator document, so a chart rendering
    none or several of them is rejected.
    """
    operators = [r for r in parse_manifest(manifest) if r.kind == ISTIO_OPERATOR_KIND]
    if not operators:
        raise ManifestError(f"No {ISTIO_OPERATOR_KIND} resource found in rendered chart")
    if len(operators) > 1:
        names = ", ".join(r.name or "<unnamed>" for r in operators)
        raise ManifestError(f"Expected one {ISTIO_OPERATOR_KIND} resource, found {len(operators)}: {names}")
    return yaml.safe_dump(operators[0].raw, default_flow_style=False, sort_keys=False)
