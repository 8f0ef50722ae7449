from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.table import Table

from airscan.core import OptionId
from airscan.models import Range

from .common import build_backend, load_settings_or_exit, open_device_or_exit

logger = logging.getLogger(__name__)


def _format_constraint(constraint: Range | list[int] | list[str] | None) -> str:
    if constraint is None:
        return ""
    if isinstance(constraint, Range):
        text = f"{constraint.min:g}..{constraint.max:g}"
        if constraint.quant:
            text += f" step {constraint.quant:g}"
        return text
    return ", ".join(str(item) for item in constraint)


def list_devices() -> None:
    """List scanners that are ready to use."""
    settings = load_settings_or_exit()
    console = Console()

    console.print("Discovering eSCL scanners...")
    with build_backend(settings) as manager:
        devices = manager.list_devices()

    if not devices:
        console.print("No scanners found.")
        return

    table = Table()
    table.add_column("Name", style="cyan")
    table.add_column("Vendor", style="green")
    table.add_column("Model")
    table.add_column("Type")

    for device in devices:
        table.add_row(device.name, device.vendor, device.model, device.type)

    console.print(table)
    console.print(f"\n[green]Found {len(devices)} scanner(s)[/green]")


def show_options(
    name: str = typer.Argument(..., help="Scanner name, as shown by 'list'"),
) -> None:
    """Show the current options of a scanner."""
    settings = load_settings_or_exit()
    console = Console()

    with build_backend(settings) as manager:
        handle = open_device_or_exit(manager, name, console)

        table = Table(title=name)
        table.add_column("Option", style="cyan")
        table.add_column("Value", style="green")
        table.add_column("Unit")
        table.add_column("Allowed")

        with handle:
            for option in OptionId:
                descriptor = handle.describe_option(option)
                if not descriptor.settable:
                    continue
                value = handle.get_option(option)
                table.add_row(
                    descriptor.name,
                    f"{value:g}" if isinstance(value, float) else str(value),
                    descriptor.unit or "",
                    _format_constraint(descriptor.constraint),
                )

    console.print(table)


def register(app: typer.Typer) -> None:
    app.command("list")(list_devices)
    app.command("options")(show_options)
