from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from airscan.config import (
    Settings,
    StaticDevice,
    load_settings,
    render_settings_toml,
    write_settings,
)

from .common import load_settings_or_exit, resolve_config_path_or_exit

app = typer.Typer(no_args_is_help=True)


def _load_for_update() -> tuple[Settings, Path]:
    path, exists = resolve_config_path_or_exit(allow_missing=True)
    if not exists:
        return Settings(), path
    try:
        return load_settings(path), path
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


@app.command("show")
def show_config() -> None:
    """Print the effective configuration as TOML."""
    settings = load_settings_or_exit()
    path, exists = resolve_config_path_or_exit(allow_missing=True)

    source = str(path) if exists else "defaults"
    discovery = "on" if settings.discovery.enabled else "off"
    typer.echo(f"Config source: {source}")
    typer.echo(
        f"mDNS discovery: {discovery}, static devices: {len(settings.devices)}"
    )
    typer.echo(render_settings_toml(settings))


@app.command("init")
def init_config(
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite existing config"),
    ] = False,
) -> None:
    """Write a default configuration file."""
    path, exists = resolve_config_path_or_exit(allow_missing=True)

    if exists and not force:
        typer.echo(f"Config already exists at {path}")
        return

    write_settings(Settings(), path)
    typer.echo(f"Wrote default config to {path}")


@app.command("add-device")
def add_device(
    name: Annotated[str, typer.Argument(help="Scanner name")],
    url: Annotated[str, typer.Argument(help="eSCL base URL, e.g. http://host/eSCL")],
) -> None:
    """Add a scanner that is not announced over mDNS."""
    settings, path = _load_for_update()
    if any(device.name == name for device in settings.devices):
        typer.echo(f"Device '{name}' already configured", err=True)
        raise typer.Exit(1)

    try:
        device = StaticDevice(name=name, url=url)
    except ValidationError as exc:
        typer.echo(f"Invalid device: {exc.errors()[0]['msg']}", err=True)
        raise typer.Exit(1) from exc

    updated = settings.model_copy(update={"devices": [*settings.devices, device]})
    write_settings(updated, path)
    typer.echo(f"Added '{name}' ({url}) to {path}")


@app.command("remove-device")
def remove_device(
    name: Annotated[str, typer.Argument(help="Scanner name")],
) -> None:
    """Remove a statically configured scanner."""
    settings, path = _load_for_update()
    devices = [device for device in settings.devices if device.name != name]
    if len(devices) == len(settings.devices):
        typer.echo(f"Device '{name}' not configured", err=True)
        raise typer.Exit(1)

    write_settings(settings.model_copy(update={"devices": devices}), path)
    typer.echo(f"Removed '{name}' from {path}")
