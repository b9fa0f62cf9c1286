"""Fetch image bytes from remote URLs or inline data URIs."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Optional
from urllib.parse import urlparse

import requests

from tools.observability import instrument_tool

logger = logging.getLogger(__name__)


class InvalidImageURLError(ValueError):
    """Raised when the provided URL is neither HTTP(S) nor a data URI."""


class ImageFetchError(RuntimeError):
    """Raised when the image cannot be retrieved successfully."""


def _decode_data_uri(url: str) -> bytes:
    header, _, payload = url.partition(",")
    if not payload:
        raise InvalidImageURLError("Data URI carries no payload")
    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidImageURLError(f"Malformed base64 data URI: {exc}") from exc
    return payload.encode("utf-8")


@instrument_tool("fetch_image")
def fetch_image(url: str, timeout: Optional[float] = 10.0) -> bytes:
    """Return the raw bytes of an image.

    Raises:
        InvalidImageURLError: If the URL is not HTTP/HTTPS with a host, or a data URI.
        ImageFetchError: For network issues or non-2xx responses.
    """

    if url.startswith("data:"):
        return _decode_data_uri(url)

    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise InvalidImageURLError(f"Unsupported or invalid URL: {url}")

    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as exc:
        logger.error("Network error fetching image", extra={"host": parsed.netloc, "error": str(exc)})
        raise ImageFetchError(f"Network error fetching image from {parsed.netloc}: {exc}") from exc

    if not 200 <= response.status_code < 300:
        logger.warning(
            "Non-success status when fetching image",
            extra={"host": parsed.netloc, "status_code": response.status_code},
        )
        raise ImageFetchError(f"Failed to fetch image: HTTP {response.status_code}")

    return response.content


__all__ = ["ImageFetchError", "InvalidImageURLError", "fetch_image"]
