from __future__ import annotations

import io

import httpx
import pytest
from PIL import Image

from kvmm.config import ThumbnailConfig
from kvmm.errors import FetchError, NotFoundError, ProcessingError, ValidationError
from kvmm.imaging import fetch_image
from kvmm.models import DeviceInput
from kvmm.services import regenerate_thumbnail, thumbnail_from_url, upload_thumbnail


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def _serving(body: bytes, status: int = 200, content_type: str = "image/png"):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status, content=body, headers={"content-type": content_type}
        )

    return handler


def test_fetch_image_returns_body(image_bytes):
    body = image_bytes(fmt="PNG")
    with _client(_serving(body)) as client:
        assert fetch_image("http://example.test/a.png", client=client) == body


@pytest.mark.parametrize(
    "url", ["ftp://example.test/a.png", "file:///etc/passwd", "nope"]
)
def test_fetch_image_rejects_scheme(url):
    with pytest.raises(FetchError, match="HTTP/HTTPS"):
        fetch_image(url)


def test_fetch_image_non_200(image_bytes):
    with _client(_serving(image_bytes(), status=404)) as client:
        with pytest.raises(FetchError, match="404"):
            fetch_image("https://example.test/missing.png", client=client)


def test_fetch_image_rejects_non_image():
    with _client(_serving(b"<html></html>", content_type="text/html")) as client:
        with pytest.raises(FetchError, match="valid image"):
            fetch_image("https://example.test/page", client=client)


def test_fetch_image_rejects_oversized_body(image_bytes):
    body = image_bytes(size=(200, 200), fmt="PNG") + b"\0" * 4096
    with _client(_serving(body)) as client:
        with pytest.raises(FetchError, match="too large"):
            fetch_image("https://example.test/big.png", max_bytes=1024, client=client)


def test_fetch_image_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with _client(handler) as client:
        with pytest.raises(FetchError):
            fetch_image("https://example.test/a.png", client=client)


def test_fetch_image_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with _client(handler) as client:
        with pytest.raises(FetchError, match="timed out"):
            fetch_image("https://example.test/a.png", client=client)


def test_upload_thumbnail_processes_and_stores(registry, image_bytes):
    device = registry.add_device(DeviceInput(host="x"))
    updated = upload_thumbnail(
        registry, device.id, image_bytes(size=(1600, 1200), fmt="PNG"), "Photo.PNG"
    )

    assert updated.thumbnail == f"{device.id}.jpg"
    stored = Image.open(registry.get_thumbnail_path(device.id))
    assert stored.format == "JPEG"
    assert stored.size == (400, 300)


def test_upload_thumbnail_rejects_extension_before_any_write(registry, image_bytes):
    device = registry.add_device(DeviceInput(host="x"))
    before = registry.get_thumbnail_path(device.id).read_bytes()

    with pytest.raises(ValidationError, match="Invalid file type"):
        upload_thumbnail(registry, device.id, image_bytes(), "notes.txt")

    assert registry.get_thumbnail_path(device.id).read_bytes() == before


def test_upload_thumbnail_size_limit(registry, image_bytes):
    device = registry.add_device(DeviceInput(host="x"))
    config = ThumbnailConfig(max_upload_bytes=10)
    with pytest.raises(ValidationError, match="too large"):
        upload_thumbnail(registry, device.id, image_bytes(), "a.png", config)


def test_upload_thumbnail_corrupt_image_leaves_state(registry):
    device = registry.add_device(DeviceInput(host="x"))
    before = registry.get_thumbnail_path(device.id).read_bytes()

    with pytest.raises(ProcessingError):
        upload_thumbnail(registry, device.id, b"not really a png", "a.png")

    assert registry.get_device(device.id) == device
    assert registry.get_thumbnail_path(device.id).read_bytes() == before


def test_upload_thumbnail_unknown_device(registry, image_bytes):
    with pytest.raises(NotFoundError):
        upload_thumbnail(registry, "missing", image_bytes(), "a.png")


def test_upload_uses_configured_bounds(registry, image_bytes):
    device = registry.add_device(DeviceInput(host="x"))
    config = ThumbnailConfig(max_width=50, max_height=50)
    upload_thumbnail(
        registry, device.id, image_bytes(size=(200, 100)), "a.webp", config
    )
    assert Image.open(registry.get_thumbnail_path(device.id)).size == (50, 25)


def test_thumbnail_from_url(registry, image_bytes):
    device = registry.add_device(DeviceInput(host="x"))
    body = image_bytes(size=(800, 800), fmt="JPEG")

    with _client(_serving(body, content_type="image/jpeg")) as client:
        thumbnail_from_url(
            registry, device.id, "https://example.test/a.jpg", client=client
        )

    stored = Image.open(io.BytesIO(registry.get_thumbnail_path(device.id).read_bytes()))
    assert stored.size == (300, 300)


def test_thumbnail_from_url_failure_leaves_state(registry):
    device = registry.add_device(DeviceInput(host="x"))
    before = registry.get_thumbnail_path(device.id).read_bytes()

    with _client(_serving(b"", status=500)) as client:
        with pytest.raises(FetchError):
            thumbnail_from_url(
                registry, device.id, "https://example.test/a.jpg", client=client
            )

    assert registry.get_thumbnail_path(device.id).read_bytes() == before


def test_thumbnail_from_url_requires_url(registry):
    device = registry.add_device(DeviceInput(host="x"))
    with pytest.raises(ValidationError):
        thumbnail_from_url(registry, device.id, "  ")


def test_regenerate_thumbnail_restores_pattern(registry, image_bytes):
    device = registry.add_device(DeviceInput(host="x"))
    pattern = registry.get_thumbnail_path(device.id).read_bytes()
    upload_thumbnail(registry, device.id, image_bytes(), "a.png")
    assert registry.get_thumbnail_path(device.id).read_bytes() != pattern

    regenerate_thumbnail(registry, device.id)
    assert registry.get_thumbnail_path(device.id).read_bytes() == pattern
