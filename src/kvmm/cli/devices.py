from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from kvmm.config import Settings
from kvmm.core import device_url, find_devices, probe_devices
from kvmm.models import Device, DeviceInput, DeviceStatus

from .common import exit_on_error, load_settings_or_exit, open_registry, resolve_device

STATUS_UP = "[green]●[/green]"
STATUS_DOWN = "[red]○[/red]"
STATUS_UNKNOWN = "?"


def _device_table(
    devices: list[Device], statuses: dict[str, bool] | None = None
) -> Table:
    table = Table()
    if statuses is not None:
        table.add_column("Status")
    table.add_column("ID", style="dim")
    table.add_column("Alias", style="cyan")
    table.add_column("Host", style="green")
    table.add_column("Auth")

    for device in devices:
        row = [
            device.id[:8],
            device.alias or "-",
            device.host,
            "yes" if device.username else "no",
        ]
        if statuses is not None:
            reachable = statuses.get(device.id)
            if reachable is None:
                marker = STATUS_UNKNOWN
            else:
                marker = STATUS_UP if reachable else STATUS_DOWN
            row.insert(0, marker)
        table.add_row(*row)
    return table


def _probe(devices: list[Device], settings: Settings) -> list[DeviceStatus]:
    return asyncio.run(probe_devices(devices, settings.probe))


def list_devices(
    status: Annotated[
        bool, typer.Option("--status/--no-status", help="Probe reachability")
    ] = True,
) -> None:
    """List registered devices."""
    settings = load_settings_or_exit()
    registry = open_registry(settings)
    devices = registry.list_devices()

    console = Console()
    if not devices:
        console.print("No devices configured.")
        console.print("Use 'kvmm add HOST' to register one.")
        return

    statuses = None
    if status:
        statuses = {s.id: s.reachable for s in _probe(devices, settings)}
    console.print(_device_table(devices, statuses))


def show_device(
    ref: Annotated[str, typer.Argument(help="Device id, id prefix, alias or host")],
) -> None:
    """Show one device."""
    settings = load_settings_or_exit()
    registry = open_registry(settings)
    console = Console()

    with exit_on_error():
        device = resolve_device(registry, ref)
        thumb = registry.get_thumbnail_path(device.id)

    console.print(f"[bold]{device.display_name}[/bold]")
    console.print(f"ID: {device.id}")
    console.print(f"Host: {device.host}")
    console.print(f"Alias: {device.alias or '-'}")
    console.print(f"Username: {device.username or '-'}")
    console.print(f"Password: {'set' if device.password else '-'}")
    console.print(f"Thumbnail: {thumb or '-'}")


def add_device(
    host: Annotated[str, typer.Argument(help="Host name or IP, optionally host:port")],
    alias: Annotated[str | None, typer.Option("--alias", "-a")] = None,
    username: Annotated[str | None, typer.Option("--username", "-u")] = None,
    password: Annotated[str | None, typer.Option("--password", "-p")] = None,
) -> None:
    """Register a new device."""
    settings = load_settings_or_exit()
    registry = open_registry(settings)

    with exit_on_error():
        device = registry.add_device(
            DeviceInput(host=host, alias=alias, username=username, password=password)
        )

    console = Console()
    console.print(f"[green]✓[/green] Added '{device.display_name}' ({device.id})")


def update_device(
    ref: Annotated[str, typer.Argument(help="Device id, id prefix, alias or host")],
    host: Annotated[str | None, typer.Option("--host")] = None,
    alias: Annotated[str | None, typer.Option("--alias", "-a")] = None,
    username: Annotated[str | None, typer.Option("--username", "-u")] = None,
    password: Annotated[str | None, typer.Option("--password", "-p")] = None,
) -> None:
    """Change a device. Options not given keep their current value."""
    settings = load_settings_or_exit()
    registry = open_registry(settings)

    with exit_on_error():
        current = resolve_device(registry, ref)
        data = DeviceInput(
            host=current.host if host is None else host,
            alias=current.alias if alias is None else alias,
            username=current.username if username is None else username,
            password=current.password if password is None else password,
        )
        device = registry.update_device(current.id, data)

    console = Console()
    console.print(f"[green]✓[/green] Updated '{device.display_name}'")


def remove_device(
    ref: Annotated[str, typer.Argument(help="Device id, id prefix, alias or host")],
) -> None:
    """Remove a device and its thumbnail."""
    settings = load_settings_or_exit()
    registry = open_registry(settings)

    with exit_on_error():
        device = resolve_device(registry, ref)
        registry.delete_device(device.id)

    console = Console()
    console.print(f"[green]✓[/green] Removed '{device.display_name}'")


def status() -> None:
    """Probe every device and report reachability."""
    settings = load_settings_or_exit()
    registry = open_registry(settings)
    devices = registry.list_devices()

    console = Console()
    if not devices:
        console.print("No devices configured.")
        return

    results = _probe(devices, settings)
    statuses = {s.id: s.reachable for s in results}
    console.print(_device_table(devices, statuses))
    up = sum(1 for s in results if s.reachable)
    console.print(f"\n{up}/{len(results)} reachable")


def open_device(
    query: Annotated[list[str], typer.Argument(help="Alias or host to open")],
    print_url: Annotated[
        bool, typer.Option("--print-url", help="Print the URL instead of opening it")
    ] = False,
) -> None:
    """Open a device in the browser by alias or host."""
    settings = load_settings_or_exit()
    registry = open_registry(settings)
    text = " ".join(query)
    matches = find_devices(registry.list_devices(), text)

    console = Console()
    if not matches:
        typer.echo(f"No device found matching: {text}", err=True)
        typer.echo("Use 'kvmm list' to see available devices", err=True)
        raise typer.Exit(1)

    if len(matches) > 1:
        typer.echo(f"Multiple devices match '{text}':", err=True)
        console.print(_device_table(matches))
        raise typer.Exit(1)

    url = device_url(matches[0])
    if print_url:
        typer.echo(url)
        return

    console.print(f"Opening {matches[0].display_name}...")
    typer.launch(url)


def register(app: typer.Typer) -> None:
    app.command("list")(list_devices)
    app.command("show")(show_device)
    app.command("add")(add_device)
    app.command("update")(update_device)
    app.command("remove")(remove_device)
    app.command("status")(status)
    app.command("open")(open_device)
