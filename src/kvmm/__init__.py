"""kvmm - registry of KVM devices with generated and uploaded thumbnails."""

from __future__ import annotations

from importlib.metadata import version

from .config import Settings, get_settings
from .errors import (
    ConfigParseError,
    DecodeError,
    FetchError,
    KvmmError,
    NotFoundError,
    PersistenceError,
    ProcessingError,
    ValidationError,
)
from .models import Device, DeviceInput, DeviceStatus
from .storage import DeviceRegistry

__all__ = [
    "ConfigParseError",
    "DecodeError",
    "Device",
    "DeviceInput",
    "DeviceRegistry",
    "DeviceStatus",
    "FetchError",
    "KvmmError",
    "NotFoundError",
    "PersistenceError",
    "ProcessingError",
    "Settings",
    "ValidationError",
    "__version__",
    "get_settings",
]

__version__ = version("kvmm")
