"""Root Typer application, mounts sub-commands."""

from __future__ import annotations

import typer

from mesh_commander.cli.options import VerboseOption
from mesh_commander.cli.runtime import configure_logging

app = typer.Typer(
    name="mcom",
    help="Mesh Commander - Version-aware Istio control-plane operations.",
    no_args_is_help=True,
)


@app.callback()
def root(verbose: bool = VerboseOption) -> None:
    configure_logging(verbose)


def _register_commands() -> None:
    from mesh_commander.cli.commands.install_cmd import install_app, update_app
    from mesh_commander.cli.commands.uninstall_cmd import app as uninstall_app
    from mesh_commander.cli.commands.reset_proxy_cmd import app as reset_proxy_app
    from mesh_commander.cli.commands.version_cmd import app as version_app
    from mesh_commander.cli.commands.webhook_cmd import app as webhook_app

    app.add_typer(install_app, name="install", help="Install the Istio control plane")
    app.add_typer(update_app, name="update", help="Upgrade the Istio control plane")
    app.add_typer(uninstall_app, name="uninstall", help="Uninstall Istio")
    app.add_typer(reset_proxy_app, name="reset-proxy", help="Restart outdated sidecar proxies")
    app.add_typer(version_app, name="version", help="Show Istio versions")
    app.add_typer(webhook_app, name="patch-webhook", help="Patch the sidecar injector webhook")


_register_commands()


def main() -> None:
    app()
