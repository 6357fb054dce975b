"""Backfill missing cover images from OMDb."""

from __future__ import annotations

import asyncio
import logging

from ..errors import ExternalUnavailableError, RecordNotFoundError
from ..models import is_usable_cover
from .catalog_store import CatalogStore
from .omdb import OMDbClient

logger = logging.getLogger(__name__)


class CoverEnricher:
    """Looks up posters for records without one and patches the store."""

    def __init__(self, store: CatalogStore, metadata_client: OMDbClient):
        self._store = store
        self._metadata = metadata_client

    async def run(self) -> int:
        """Fill in missing covers and return how many records changed.

        A failed lookup only skips that record. The store is saved once at the
        end, and only when at least one record was patched.
        """

        updated = 0
        for record in self._store.list_records():
            if record.has_cover or not record.external_id:
                continue

            logger.info("Fetching cover for %s (%s)", record.title, record.external_id)
            try:
                metadata = await self._metadata.lookup(record.external_id)
            except ExternalUnavailableError as exc:
                logger.warning(
                    "Cover lookup failed for %s (%s): %s",
                    record.title,
                    record.external_id,
                    exc,
                )
                continue

            if not is_usable_cover(metadata.poster):
                logger.info("OMDb has no poster for %s", record.external_id)
                continue

            try:
                self._store.set_cover(record.id, metadata.poster)
            except RecordNotFoundError:
                logger.info("Series %s was removed during cover lookup", record.id)
                continue
            updated += 1
            logger.info("Stored cover for %s: %s", record.title, metadata.poster)

        if updated:
            logger.info("Saving catalog with %d new cover(s)", updated)
            await asyncio.to_thread(self._store.save)
        else:
            logger.info("No missing covers to update")
        return updated
