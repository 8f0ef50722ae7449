from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from airscan.backend import Backend
from airscan.config import Settings, get_settings, resolve_config_path
from airscan.core import DeviceHandle, DeviceManager


def load_settings_or_exit() -> Settings:
    try:
        return get_settings()
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def resolve_config_path_or_exit(allow_missing: bool = False) -> tuple[Path, bool]:
    try:
        return resolve_config_path(allow_missing=allow_missing)
    except FileNotFoundError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def build_backend(settings: Settings) -> Backend:
    return Backend(settings)


def open_device_or_exit(
    manager: DeviceManager, name: str, console: Console
) -> DeviceHandle:
    """Open a scanner once discovery has settled."""
    manager.list_devices()
    handle = manager.open_device(name)
    if handle is None:
        console.print(f"[yellow]![/yellow] Scanner '{name}' not found")
        raise typer.Exit(1)
    return handle
