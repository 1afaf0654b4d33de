"""Shared CLI options."""

from __future__ import annotations

import typer

OutputOption = typer.Option("table", "--output", "-o", help="Output format: table, json, yaml")
ContextOption = typer.Option(None, "--context", help="Kubernetes context name")
KubeconfigOption = typer.Option(None, "--kubeconfig", help="Path to a kubeconfig file (default: ~/.kube/config)")
VersionOption = typer.Option(..., "--version", "-v", help="Istio version, e.g. 1.11.4")
VerboseOption = typer.Option(False, "--verbose", help="Enable debug logging")
