"""Decode, resize and re-encode thumbnail images with Pillow."""

from __future__ import annotations

import io
import logging

from PIL import Image, UnidentifiedImageError

from kvmm.errors import DecodeError, ProcessingError

logger = logging.getLogger(__name__)

MAX_THUMBNAIL_WIDTH = 400
MAX_THUMBNAIL_HEIGHT = 300
JPEG_QUALITY = 85

SUPPORTED_FORMATS = frozenset({"JPEG", "PNG", "GIF", "WEBP"})

# Pillow's bicubic filter is the a=-0.5 cubic kernel, i.e. Catmull-Rom.
RESAMPLE_FILTER = Image.Resampling.BICUBIC


def _open(data: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(data), formats=sorted(SUPPORTED_FORMATS))
    except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"unsupported or corrupt image data: {exc}") from exc
    except (OSError, ValueError) as exc:
        raise DecodeError(f"invalid image data: {exc}") from exc
    return image


def validate_image_data(data: bytes) -> str:
    """Check that *data* starts with a readable header of a supported format.

    Only the header is parsed; pixel data is never decoded. Returns the
    detected format name.
    """
    if not data:
        raise DecodeError("empty image data")
    image = _open(data)
    if image.format not in SUPPORTED_FORMATS:
        raise DecodeError(f"unsupported image format: {image.format}")
    return image.format


def decode(data: bytes) -> tuple[Image.Image, str]:
    """Fully decode *data*, returning the image and its format name."""
    if not data:
        raise DecodeError("empty image data")
    image = _open(data)
    fmt = image.format
    if fmt not in SUPPORTED_FORMATS:
        raise DecodeError(f"unsupported image format: {fmt}")
    try:
        image.load()
    except (OSError, ValueError, SyntaxError) as exc:
        raise DecodeError(f"failed to decode {fmt} image: {exc}") from exc
    return image, fmt


def calculate_dimensions(
    orig_width: int, orig_height: int, max_width: int, max_height: int
) -> tuple[int, int]:
    if orig_width <= max_width and orig_height <= max_height:
        return orig_width, orig_height

    ratio = min(max_width / orig_width, max_height / orig_height)
    new_width = max(int(orig_width * ratio), 1)
    new_height = max(int(orig_height * ratio), 1)
    return new_width, new_height


def resize(
    image: Image.Image,
    max_width: int = MAX_THUMBNAIL_WIDTH,
    max_height: int = MAX_THUMBNAIL_HEIGHT,
) -> Image.Image:
    """Scale *image* down to fit within the bounds, preserving aspect ratio.

    Images that already fit are returned as-is; nothing is ever upscaled.
    """
    width, height = image.size
    new_size = calculate_dimensions(width, height, max_width, max_height)
    if new_size == (width, height):
        return image

    logger.debug("Resizing %dx%d -> %dx%d", width, height, *new_size)
    if image.mode not in ("RGB", "RGBA", "L"):
        image = image.convert("RGBA")
    return image.resize(new_size, RESAMPLE_FILTER)


def _flatten(image: Image.Image) -> Image.Image:
    if image.mode == "RGB":
        return image
    has_alpha = image.mode in ("RGBA", "LA", "PA") or (
        image.mode == "P" and "transparency" in image.info
    )
    if not has_alpha:
        return image.convert("RGB")
    rgba = image.convert("RGBA")
    background = Image.new("RGBA", rgba.size, (0, 0, 0, 255))
    return Image.alpha_composite(background, rgba).convert("RGB")


def encode(image: Image.Image, quality: int = JPEG_QUALITY) -> bytes:
    """Encode *image* as JPEG. Transparent areas are flattened onto black."""
    buffer = io.BytesIO()
    try:
        _flatten(image).save(buffer, format="JPEG", quality=quality)
    except (OSError, ValueError) as exc:
        raise ProcessingError(f"failed to encode thumbnail: {exc}") from exc
    return buffer.getvalue()


def process_thumbnail(
    data: bytes,
    max_width: int = MAX_THUMBNAIL_WIDTH,
    max_height: int = MAX_THUMBNAIL_HEIGHT,
    quality: int = JPEG_QUALITY,
) -> bytes:
    """Decode, resize and encode *data* into a JPEG thumbnail."""
    image, fmt = decode(data)
    try:
        resized = resize(image, max_width, max_height)
    except (OSError, ValueError) as exc:
        raise ProcessingError(f"failed to resize {fmt} image: {exc}") from exc
    output = encode(resized, quality)
    logger.debug(
        "Processed %s thumbnail: %d bytes in, %d bytes out", fmt, len(data), len(output)
    )
    return output
