"""Thumbnail upload flows that feed the registry."""

from __future__ import annotations

import logging
from pathlib import PurePath

import httpx

from kvmm.config import ThumbnailConfig
from kvmm.errors import ValidationError
from kvmm.imaging import fetch_image, generate_pattern_thumbnail, process_thumbnail
from kvmm.models import Device
from kvmm.storage import PATTERN_EXTENSION, DeviceRegistry, normalize_extension

logger = logging.getLogger(__name__)


def _process(data: bytes, config: ThumbnailConfig) -> bytes:
    return process_thumbnail(
        data,
        max_width=config.max_width,
        max_height=config.max_height,
        quality=config.quality,
    )


def upload_thumbnail(
    registry: DeviceRegistry,
    device_id: str,
    data: bytes,
    filename: str,
    config: ThumbnailConfig | None = None,
) -> Device:
    """Process an uploaded image file and make it the device's thumbnail.

    Nothing is written unless the device exists, the file name carries a
    supported image extension, the upload is within the size limit and the
    image decodes.
    """
    config = config or ThumbnailConfig()
    registry.get_device(device_id)

    normalize_extension(PurePath(filename).suffix)
    if len(data) > config.max_upload_bytes:
        raise ValidationError(
            f"File too large (max {config.max_upload_bytes} bytes)"
        )

    processed = _process(data, config)
    logger.debug("Uploading thumbnail %s for device %s", filename, device_id)
    return registry.set_thumbnail(device_id, processed, PATTERN_EXTENSION)


def thumbnail_from_url(
    registry: DeviceRegistry,
    device_id: str,
    url: str,
    config: ThumbnailConfig | None = None,
    client: httpx.Client | None = None,
) -> Device:
    """Fetch an image from *url* and make it the device's thumbnail."""
    config = config or ThumbnailConfig()
    registry.get_device(device_id)

    if not url.strip():
        raise ValidationError("URL is required")

    data = fetch_image(
        url.strip(),
        timeout=config.fetch_timeout,
        max_bytes=config.max_upload_bytes,
        client=client,
    )
    processed = _process(data, config)
    return registry.set_thumbnail(device_id, processed, PATTERN_EXTENSION)


def regenerate_thumbnail(registry: DeviceRegistry, device_id: str) -> Device:
    """Replace the device's thumbnail with its generated pattern."""
    device = registry.get_device(device_id)
    pattern = generate_pattern_thumbnail(device.seed())
    return registry.set_thumbnail(device_id, pattern, PATTERN_EXTENSION)
