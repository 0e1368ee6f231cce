from __future__ import annotations

from .locking import ReadWriteLock
from .registry import (
    DEVICES_FILE,
    PATTERN_EXTENSION,
    THUMBNAIL_DIR,
    THUMBNAIL_EXTENSIONS,
    DeviceRegistry,
    normalize_extension,
    render_registry_toml,
)

__all__ = [
    "DEVICES_FILE",
    "PATTERN_EXTENSION",
    "THUMBNAIL_DIR",
    "THUMBNAIL_EXTENSIONS",
    "DeviceRegistry",
    "ReadWriteLock",
    "normalize_extension",
    "render_registry_toml",
]
