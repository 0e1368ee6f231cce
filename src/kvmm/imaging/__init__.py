from __future__ import annotations

from .codec import (
    JPEG_QUALITY,
    MAX_THUMBNAIL_HEIGHT,
    MAX_THUMBNAIL_WIDTH,
    SUPPORTED_FORMATS,
    calculate_dimensions,
    decode,
    encode,
    process_thumbnail,
    resize,
    validate_image_data,
)
from .fetch import fetch_image
from .pattern import generate_pattern_thumbnail

__all__ = [
    "JPEG_QUALITY",
    "MAX_THUMBNAIL_HEIGHT",
    "MAX_THUMBNAIL_WIDTH",
    "SUPPORTED_FORMATS",
    "calculate_dimensions",
    "decode",
    "encode",
    "fetch_image",
    "generate_pattern_thumbnail",
    "process_thumbnail",
    "resize",
    "validate_image_data",
]
