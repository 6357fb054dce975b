"""Client for the OMDb metadata API."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..errors import (
    ExternalUnavailableError,
    InvalidAPIKeyError,
    MetadataNotFoundError,
    MetadataUnavailableError,
)
from ..models import SearchItem, SeriesMetadata

logger = logging.getLogger(__name__)

PING_TITLE = "Game of Thrones"


def is_imdb_identifier(identifier: str) -> bool:
    """Return whether ``identifier`` looks like an IMDb id such as ``tt0903747``."""

    return len(identifier) > 2 and identifier.startswith("tt")


class OMDbClient:
    """Thin wrapper around the OMDb HTTP API.

    Every call is a single request bounded by the HTTP client's timeout.
    Failures surface as ``ExternalUnavailableError`` subclasses and are never
    retried here.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    @property
    def url(self) -> str:
        return str(self._settings.omdb_api_url)

    async def lookup(self, identifier: str) -> SeriesMetadata:
        """Fetch a single series by IMDb id or by exact title."""

        identifier = (identifier or "").strip()
        if not identifier:
            raise MetadataNotFoundError("An IMDb id or title is required")

        params: dict[str, str] = {"r": "json"}
        if is_imdb_identifier(identifier):
            params["i"] = identifier
        else:
            params["t"] = identifier
            params["type"] = "series"

        logger.info("OMDb lookup for %s", identifier)
        data = await self._request(params)
        self._raise_for_error(data, "Series not found")
        try:
            return SeriesMetadata.model_validate(data)
        except ValidationError as exc:
            raise MetadataUnavailableError(
                f"Unexpected OMDb lookup payload: {exc}"
            ) from exc

    async def search(self, query: str) -> list[SearchItem]:
        """Search OMDb for series whose title matches ``query``."""

        query = (query or "").strip()
        if not query:
            return []

        params = {"s": query, "type": "series", "r": "json", "page": "1"}
        logger.info("OMDb search for %s", query)
        data = await self._request(params)
        self._raise_for_error(data, "No results found")

        raw_items = data.get("Search") or []
        if not isinstance(raw_items, list):
            raise MetadataUnavailableError("Unexpected OMDb search payload")

        items: list[SearchItem] = []
        for entry in raw_items:
            if not isinstance(entry, dict):
                continue
            try:
                items.append(SearchItem.model_validate(entry))
            except ValidationError:
                logger.debug("Skipping malformed OMDb search entry: %s", entry)
        return items

    async def ping(self) -> bool:
        """Return whether OMDb answers a lookup for a well-known title."""

        try:
            await self.lookup(PING_TITLE)
        except ExternalUnavailableError as exc:
            logger.warning("OMDb connection test failed: %s", exc)
            return False
        return True

    async def _request(self, params: dict[str, str]) -> dict[str, Any]:
        if not self._settings.omdb_api_key:
            raise InvalidAPIKeyError("OMDb API key is not configured")

        query = {"apikey": self._settings.omdb_api_key, **params}
        try:
            response = await self._client.get(self.url, params=query)
        except httpx.HTTPError as exc:
            raise MetadataUnavailableError(f"Network error: {exc}") from exc

        if response.status_code == 401:
            raise InvalidAPIKeyError("API key invalid or expired (status 401)")
        if response.status_code != 200:
            raise MetadataUnavailableError(
                f"OMDb responded with status {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise MetadataUnavailableError("Unable to decode OMDb response") from exc
        if not isinstance(data, dict):
            raise MetadataUnavailableError("Unexpected OMDb response payload")
        return data

    @staticmethod
    def _raise_for_error(data: dict[str, Any], fallback: str) -> None:
        if str(data.get("Response", "")).lower() != "false":
            return
        message = str(data.get("Error") or "").strip()
        if message.lower().startswith("invalid api key"):
            raise InvalidAPIKeyError(message)
        raise MetadataNotFoundError(message or fallback)
