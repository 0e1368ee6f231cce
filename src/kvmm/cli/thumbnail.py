from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from kvmm.services import regenerate_thumbnail, thumbnail_from_url, upload_thumbnail

from .common import exit_on_error, load_settings_or_exit, open_registry, resolve_device

app = typer.Typer(no_args_is_help=True, help="Manage device thumbnails")


@app.command("set")
def set_thumbnail(
    ref: Annotated[str, typer.Argument(help="Device id, id prefix, alias or host")],
    file: Annotated[
        Path | None,
        typer.Argument(exists=True, dir_okay=False, help="Image file to upload"),
    ] = None,
    url: Annotated[
        str | None, typer.Option("--url", help="Fetch image from URL")
    ] = None,
) -> None:
    """Set a device thumbnail from an image file or URL."""
    if (file is None) == (url is None):
        typer.echo("Give exactly one of FILE or --url", err=True)
        raise typer.Exit(2)

    settings = load_settings_or_exit()
    registry = open_registry(settings)

    with exit_on_error():
        device = resolve_device(registry, ref)
        if file is not None:
            upload_thumbnail(
                registry, device.id, file.read_bytes(), file.name, settings.thumbnails
            )
        elif url is not None:
            thumbnail_from_url(registry, device.id, url, settings.thumbnails)

    Console().print(f"[green]✓[/green] Thumbnail updated for '{device.display_name}'")


@app.command("clear")
def clear_thumbnail(
    ref: Annotated[str, typer.Argument(help="Device id, id prefix, alias or host")],
) -> None:
    """Remove a device thumbnail.

    The generated pattern comes back the next time the registry is loaded.
    """
    settings = load_settings_or_exit()
    registry = open_registry(settings)

    with exit_on_error():
        device = resolve_device(registry, ref)
        registry.delete_thumbnail(device.id)

    Console().print(
        f"[green]✓[/green] Thumbnail removed for '{device.display_name}' "
        "(the pattern returns on next load)"
    )


@app.command("reset")
def reset_thumbnail(
    ref: Annotated[str, typer.Argument(help="Device id, id prefix, alias or host")],
) -> None:
    """Replace a device thumbnail with its generated pattern."""
    settings = load_settings_or_exit()
    registry = open_registry(settings)

    with exit_on_error():
        device = resolve_device(registry, ref)
        regenerate_thumbnail(registry, device.id)

    Console().print(f"[green]✓[/green] Pattern thumbnail for '{device.display_name}'")


@app.command("path")
def thumbnail_path(
    ref: Annotated[str, typer.Argument(help="Device id, id prefix, alias or host")],
) -> None:
    """Print the path of a device thumbnail."""
    settings = load_settings_or_exit()
    registry = open_registry(settings)

    with exit_on_error():
        device = resolve_device(registry, ref)
        path = registry.get_thumbnail_path(device.id)

    if path is None:
        typer.echo(f"No thumbnail for '{device.display_name}'", err=True)
        raise typer.Exit(1)
    typer.echo(str(path))
