"""Deterministic fallback thumbnails derived from a seed string."""

from __future__ import annotations

import colorsys
import math

from PIL import Image

from .codec import JPEG_QUALITY, MAX_THUMBNAIL_HEIGHT, MAX_THUMBNAIL_WIDTH, encode

FNV64_OFFSET = 0xCBF29CE484222325
FNV64_PRIME = 0x100000001B3
_MASK64 = (1 << 64) - 1

# (saturation, lightness) of the three accent colours
ACCENT_TONES = ((0.6, 0.4), (0.5, 0.5), (0.7, 0.6))

STRIPES, RINGS, GRID, WAVES = range(4)

RGB = tuple[int, int, int]


def fnv1a_64(data: bytes) -> int:
    value = FNV64_OFFSET
    for byte in data:
        value ^= byte
        value = (value * FNV64_PRIME) & _MASK64
    return value


def hsl_to_rgb(hue: float, saturation: float, lightness: float) -> RGB:
    r, g, b = colorsys.hls_to_rgb(hue, lightness, saturation)
    return int(r * 255), int(g * 255), int(b * 255)


def accent_colors(seed_hash: int) -> tuple[RGB, RGB, RGB]:
    hues = (
        (seed_hash % 360) / 360.0,
        ((seed_hash // 360) % 360) / 360.0,
        ((seed_hash // 129600) % 360) / 360.0,
    )
    first, second, third = (
        hsl_to_rgb(hue, sat, light)
        for hue, (sat, light) in zip(hues, ACCENT_TONES, strict=True)
    )
    return first, second, third


def _band(kind: int, x: int, y: int, width: int, height: int, phase: int) -> int:
    if kind == STRIPES:
        return (x + y) // 20
    if kind == RINGS:
        dist = math.hypot(x - width // 2, y - height // 2)
        return int(dist) // 30
    if kind == GRID:
        cell_x, cell_y = x // 40, y // 40
        if (cell_x + cell_y) % 2 == 0:
            return 0
        return 1 if (cell_x * cell_y) % 3 == 0 else 2
    wave = math.sin(x / 30.0 + phase) * 20
    offset = y - height / 2 + wave
    return int(abs(offset)) // 25


def render_pattern(
    seed: str, width: int = MAX_THUMBNAIL_WIDTH, height: int = MAX_THUMBNAIL_HEIGHT
) -> Image.Image:
    """Render the procedural pattern for *seed* as an RGB image."""
    seed_hash = fnv1a_64(seed.encode("utf-8"))
    colors = accent_colors(seed_hash)
    kind = seed_hash % 4
    phase = seed_hash % 100

    pixels = [
        colors[_band(kind, x, y, width, height, phase) % 3]
        for y in range(height)
        for x in range(width)
    ]
    image = Image.new("RGB", (width, height))
    image.putdata(pixels)
    return image


def generate_pattern_thumbnail(
    seed: str,
    width: int = MAX_THUMBNAIL_WIDTH,
    height: int = MAX_THUMBNAIL_HEIGHT,
    quality: int = JPEG_QUALITY,
) -> bytes:
    """Return JPEG bytes of the pattern for *seed*.

    The same seed always yields byte-identical output.
    """
    return encode(render_pattern(seed, width, height), quality)
