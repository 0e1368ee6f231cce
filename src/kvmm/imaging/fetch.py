"""Retrieve thumbnail source images over HTTP."""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

import httpx

from kvmm.errors import DecodeError, FetchError

from .codec import validate_image_data

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
MAX_IMAGE_BYTES = 10 << 20
ALLOWED_SCHEMES = ("http", "https")


def fetch_image(
    url: str,
    timeout: float = DEFAULT_TIMEOUT,
    max_bytes: int = MAX_IMAGE_BYTES,
    client: httpx.Client | None = None,
) -> bytes:
    """Download an image from *url*.

    Raises :class:`FetchError` for non-http(s) URLs, non-200 responses,
    bodies over *max_bytes*, transport failures and bodies that do not start
    with a supported image header.
    """
    parts = urlsplit(url)
    if parts.scheme not in ALLOWED_SCHEMES or not parts.netloc:
        raise FetchError("only HTTP/HTTPS URLs allowed")

    owns_client = client is None
    http = client or httpx.Client(timeout=timeout, follow_redirects=True)
    try:
        logger.debug("Fetching image from %s", url)
        with http.stream("GET", url) as response:
            if response.status_code != httpx.codes.OK:
                raise FetchError(f"server returned {response.status_code}")

            declared = response.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > max_bytes:
                raise FetchError(f"image too large (max {max_bytes} bytes)")

            body = bytearray()
            for chunk in response.iter_bytes():
                body.extend(chunk)
                if len(body) > max_bytes:
                    raise FetchError(f"image too large (max {max_bytes} bytes)")
    except httpx.TimeoutException as exc:
        raise FetchError(f"timed out fetching {url}") from exc
    except httpx.HTTPError as exc:
        raise FetchError(f"failed to fetch: {exc}") from exc
    finally:
        if owns_client:
            http.close()

    data = bytes(body)
    try:
        validate_image_data(data)
    except DecodeError as exc:
        raise FetchError("URL did not return a valid image") from exc

    logger.debug("Fetched %d bytes from %s", len(data), url)
    return data
