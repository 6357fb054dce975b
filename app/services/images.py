"""Blocking download of cover images for the PDF report."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; SeriesTracker/1.0)",
    "Accept": "image/*,*/*;q=0.8",
}


def build_image_client(timeout_seconds: float) -> httpx.Client:
    """Return the synchronous client used while laying out the report."""

    return httpx.Client(
        headers=HEADERS,
        timeout=httpx.Timeout(timeout_seconds, connect=min(timeout_seconds, 10.0)),
        follow_redirects=True,
    )


class ImageFetcher:
    """Fetches image bytes one request at a time.

    Nothing is cached between calls and failed requests are not retried.
    """

    def __init__(self, http_client: httpx.Client):
        self._client = http_client

    def fetch(self, url: str) -> bytes | None:
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Cover download failed for %s: %s", url, exc)
            return None
        if not response.content:
            logger.warning("Cover download for %s returned no data", url)
            return None
        return response.content
