from __future__ import annotations

import io

import pytest
from PIL import Image

from kvmm.imaging.pattern import (
    accent_colors,
    fnv1a_64,
    generate_pattern_thumbnail,
    hsl_to_rgb,
    render_pattern,
)


def test_fnv1a_64_known_vectors():
    assert fnv1a_64(b"") == 0xCBF29CE484222325
    assert fnv1a_64(b"a") == 0xAF63DC4C8601EC8C
    assert fnv1a_64(b"foobar") == 0x85944171F73967E8


def test_hsl_to_rgb():
    assert hsl_to_rgb(0.0, 1.0, 0.5) == (255, 0, 0)
    assert hsl_to_rgb(1 / 3, 1.0, 0.5) == (0, 255, 0)
    assert hsl_to_rgb(0.5, 0.0, 0.5) == (127, 127, 127)


def test_accent_colors_are_distinct_tones():
    first, second, third = accent_colors(fnv1a_64(b"seed"))
    assert len({first, second, third}) == 3


@pytest.mark.parametrize("seed", ["", "abc", "10.0.0.5", "ünïcødé 🖥", "x" * 500])
def test_generate_is_deterministic(seed):
    first = generate_pattern_thumbnail(seed)
    second = generate_pattern_thumbnail(seed)
    assert first == second


def test_generate_produces_jpeg_of_fixed_size():
    image = Image.open(io.BytesIO(generate_pattern_thumbnail("device-1")))
    assert image.format == "JPEG"
    assert image.size == (400, 300)


def test_different_seeds_differ():
    assert generate_pattern_thumbnail("a") != generate_pattern_thumbnail("b")


def test_render_uses_only_accent_colors():
    seed = "rack-a"
    colors = set(accent_colors(fnv1a_64(seed.encode())))
    image = render_pattern(seed, width=80, height=60)
    used = {color for _count, color in image.getcolors(maxcolors=16)}
    assert used <= colors


def test_all_pattern_kinds_render():
    kinds = {}
    for index in range(200):
        seed = f"seed-{index}"
        kinds.setdefault(fnv1a_64(seed.encode()) % 4, seed)
        if len(kinds) == 4:
            break
    assert len(kinds) == 4
    for seed in kinds.values():
        image = render_pattern(seed, width=120, height=90)
        assert len(image.getcolors(maxcolors=16)) >= 2
