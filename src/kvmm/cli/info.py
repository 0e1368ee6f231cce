from __future__ import annotations

import typer
from rich.console import Console

from .common import load_settings_or_exit, open_registry, resolve_config_path_or_exit


def register(app: typer.Typer) -> None:
    @app.command()
    def info() -> None:
        """Show kvmm paths, settings and stats."""
        settings = load_settings_or_exit()
        registry = open_registry(settings)
        devices = registry.list_devices()

        config_path, config_exists = resolve_config_path_or_exit(allow_missing=True)

        console = Console()

        console.print("[bold]kvmm Info[/bold]\n")
        console.print(f"Device registry: {registry.path}")
        console.print(f"Thumbnails: {registry.thumbnail_dir}")
        console.print(f"Config file: {config_path if config_exists else 'defaults'}")

        console.print("\n[bold]Configuration[/bold]")
        console.print(f"Server port: {registry.port}")
        console.print(
            f"Thumbnail size: {settings.thumbnails.max_width}x"
            f"{settings.thumbnails.max_height} @ q{settings.thumbnails.quality}"
        )
        console.print(f"Probe timeout: {settings.probe.timeout}s")

        console.print("\n[bold]Statistics[/bold]")
        console.print(f"Devices: {len(devices)}")
        with_credentials = sum(1 for device in devices if device.has_credentials)
        console.print(f"With credentials: {with_credentials}")
