from __future__ import annotations

from typing import Annotated

import typer

from airscan.utils.logging import setup_logging

from . import config as config_cmd
from .devices import register as register_devices

app = typer.Typer(
    help="airscan - eSCL network scanner discovery", no_args_is_help=True
)

app.add_typer(config_cmd.app, name="config")

register_devices(app)


@app.callback(invoke_without_command=True)
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", help="Show version and exit"),
    ] = False,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", "-l", help="Log level (default: LOGLEVEL or INFO)"),
    ] = None,
    wire: Annotated[
        bool,
        typer.Option("--wire", help="Also log HTTP and mDNS traffic"),
    ] = False,
) -> None:
    """airscan CLI."""
    try:
        setup_logging(log_level, wire=wire or None)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--log-level") from exc

    if version:
        from importlib.metadata import version as get_version

        typer.echo(f"airscan version {get_version('airscan')}")
        raise typer.Exit()
