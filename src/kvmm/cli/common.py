from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer

from kvmm.config import (
    Settings,
    data_dir_from_settings,
    get_settings,
    resolve_config_path,
)
from kvmm.core import find_devices
from kvmm.errors import KvmmError, NotFoundError
from kvmm.models import Device
from kvmm.storage import DEVICES_FILE, DeviceRegistry

MIN_ID_PREFIX = 4


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


@contextmanager
def exit_on_error() -> Iterator[None]:
    """Turn registry and imaging errors into a message and exit code 1."""
    try:
        yield
    except KvmmError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1) from exc


def registry_path(settings: Settings, data_dir: Path | None = None) -> Path:
    return (data_dir or data_dir_from_settings(settings)) / DEVICES_FILE


def open_registry(settings: Settings, data_dir: Path | None = None) -> DeviceRegistry:
    with exit_on_error():
        return DeviceRegistry.load(registry_path(settings, data_dir))


def resolve_device(registry: DeviceRegistry, ref: str) -> Device:
    """Find a device by id, unique id prefix, or exact alias/host."""
    devices = registry.list_devices()
    for device in devices:
        if device.id == ref:
            return device

    if len(ref) >= MIN_ID_PREFIX:
        by_prefix = [device for device in devices if device.id.startswith(ref)]
        if len(by_prefix) == 1:
            return by_prefix[0]

    matches = find_devices(devices, ref)
    lowered = ref.strip().lower()
    exact = [
        device
        for device in matches
        if (device.alias or "").lower() == lowered or device.host.lower() == lowered
    ]
    if len(exact) == 1:
        return exact[0]

    raise NotFoundError(ref)
