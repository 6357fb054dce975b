"""Thread-safe in-memory catalog of tracked series."""

from __future__ import annotations

import logging
import threading

from ..errors import DuplicateExternalIDError, RecordNotFoundError
from ..models import CatalogStats, SeriesRecord, calculate_stats
from .snapshot import SnapshotFile

logger = logging.getLogger(__name__)


class CatalogStore:
    """Owns the series collection and the lock guarding it.

    Every access to the records goes through these methods. The lock is only
    held while the in-memory list is read or changed; snapshot I/O happens
    after it is released.
    """

    def __init__(self, snapshot: SnapshotFile | None = None):
        self._snapshot = snapshot
        self._lock = threading.Lock()
        self._save_lock = threading.Lock()
        self._records: list[SeriesRecord] = []
        self._next_id = 1

    def load(self) -> int:
        """Replace the catalog with the snapshot contents."""

        loaded = self._snapshot.load() if self._snapshot is not None else []

        records: list[SeriesRecord] = []
        seen: set[int] = set()
        for record in loaded:
            if record.id <= 0 or record.id in seen:
                logger.warning(
                    "Skipping snapshot entry with invalid or duplicate id %s (%s)",
                    record.id,
                    record.title,
                )
                continue
            seen.add(record.id)
            records.append(record)

        with self._lock:
            self._records = records
            highest = max(seen, default=0)
            self._next_id = max(self._next_id, highest + 1)
        logger.info("Loaded %d series from snapshot", len(records))
        return len(records)

    def save(self) -> bool:
        """Persist the current records; returns ``False`` when the write failed."""

        if self._snapshot is None:
            return False
        with self._save_lock:
            with self._lock:
                records = list(self._records)
            return self._snapshot.save(records)

    def add(self, record: SeriesRecord) -> int:
        """Append ``record`` under a freshly assigned id and return the id."""

        with self._lock:
            external_id = record.external_id
            if external_id and any(
                existing.external_id == external_id for existing in self._records
            ):
                raise DuplicateExternalIDError(external_id)
            record_id = self._next_id
            self._next_id += 1
            self._records.append(record.model_copy(update={"id": record_id}))
        return record_id

    def update(self, record_id: int, episodes_watched: int) -> SeriesRecord:
        """Set the watched episode count for ``record_id``."""

        if episodes_watched < 0:
            raise ValueError("Watched episodes cannot be negative")
        return self._replace(record_id, episodes_watched=episodes_watched)

    def set_cover(self, record_id: int, cover_url: str) -> SeriesRecord:
        return self._replace(record_id, cover_url=cover_url)

    def delete(self, record_id: int) -> bool:
        """Remove ``record_id``; unknown ids are ignored."""

        with self._lock:
            remaining = [record for record in self._records if record.id != record_id]
            removed = len(remaining) != len(self._records)
            self._records = remaining
        return removed

    def get(self, record_id: int) -> SeriesRecord:
        with self._lock:
            index = self._index_of(record_id)
            return self._records[index]

    def list_records(self) -> list[SeriesRecord]:
        """Return a copy of the records in insertion order."""

        with self._lock:
            return list(self._records)

    def stats(self) -> CatalogStats:
        return calculate_stats(self.list_records())

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _replace(self, record_id: int, **changes: object) -> SeriesRecord:
        with self._lock:
            index = self._index_of(record_id)
            updated = self._records[index].model_copy(update=changes)
            self._records[index] = updated
        return updated

    def _index_of(self, record_id: int) -> int:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        raise RecordNotFoundError(record_id)
