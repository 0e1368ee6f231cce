from __future__ import annotations

import io

import pytest
from PIL import Image

from kvmm.config import get_settings
from kvmm.storage import DeviceRegistry


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("KVMM_CONFIG", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def registry(tmp_path) -> DeviceRegistry:
    return DeviceRegistry.load(tmp_path / "devices.toml")


def make_image_bytes(
    size: tuple[int, int] = (64, 48),
    fmt: str = "PNG",
    mode: str = "RGB",
    color: tuple[int, ...] = (200, 40, 40),
) -> bytes:
    image = Image.new(mode, size, color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def image_bytes():
    return make_image_bytes
