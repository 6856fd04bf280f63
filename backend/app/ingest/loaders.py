"""Download asset contents over HTTP."""
from __future__ import annotations

import logging
from urllib.parse import urlparse

import httpx

from .errors import FetchError

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = {"http", "https"}


def fetch_bytes(url: str, *, client: httpx.Client) -> bytes:
    """Return the body of ``url`` or raise ``FetchError``."""

    if not url or urlparse(url).scheme.lower() not in ALLOWED_SCHEMES:
        raise FetchError(f"Invalid asset URL: {url!r}")

    try:
        response = client.get(url, follow_redirects=True)
    except httpx.HTTPError as exc:
        raise FetchError(f"Failed to fetch file: {exc}") from exc

    if not response.is_success:
        reason = response.reason_phrase or f"HTTP {response.status_code}"
        raise FetchError(f"Failed to fetch file: {reason}")

    data = response.content
    logger.info("Fetched %s bytes from %s", len(data), url)
    return data
