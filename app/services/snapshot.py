"""JSON snapshot persistence for the series catalog."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from ..errors import PersistenceError
from ..models import SeriesRecord

logger = logging.getLogger(__name__)

_COUNT_FIELDS = ("episodes_watched", "total_episodes")
SNAPSHOT_MODE = 0o644


class SnapshotFile:
    """Reads and atomically rewrites the catalog snapshot on disk.

    Every save serialises the full collection; there is no append log. The
    class does no locking of its own, callers serialise writers.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> list[SeriesRecord]:
        """Return the stored records, or an empty list when none are usable.

        Entries are validated one at a time so a single damaged entry only
        drops that entry. Negative episode counts left by older versions are
        reset to zero instead of discarding the series.
        """

        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("No catalog snapshot at %s, starting empty", self.path)
            return []
        except OSError as exc:
            logger.warning("Unable to read catalog snapshot %s: %s", self.path, exc)
            return []

        if not raw.strip():
            return []

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring malformed catalog snapshot %s: %s", self.path, exc)
            return []
        if not isinstance(payload, list):
            logger.warning(
                "Ignoring malformed catalog snapshot %s: expected a list, got %s",
                self.path,
                type(payload).__name__,
            )
            return []

        records: list[SeriesRecord] = []
        for position, entry in enumerate(payload):
            try:
                records.append(SeriesRecord.model_validate(_repair_entry(entry)))
            except ValidationError as exc:
                logger.warning(
                    "Skipping unreadable entry %d in catalog snapshot %s: %s",
                    position,
                    self.path,
                    exc,
                )
        return records

    def write(self, records: Iterable[SeriesRecord]) -> None:
        """Replace the snapshot with ``records`` or raise ``PersistenceError``."""

        payload = [record.model_dump(mode="json") for record in records]
        try:
            serialized = json.dumps(payload, ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"Unable to serialise catalog: {exc}") from exc

        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            tmp_handle = tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=directory,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            )
        except OSError as exc:
            raise PersistenceError(f"Unable to write {self.path}: {exc}") from exc

        tmp_path = Path(tmp_handle.name)
        try:
            with tmp_handle as handle:
                handle.write(serialized)
                handle.flush()
            os.chmod(tmp_path, self._target_mode())
            tmp_path.replace(self.path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise PersistenceError(f"Unable to write {self.path}: {exc}") from exc

    def _target_mode(self) -> int:
        try:
            return self.path.stat().st_mode & 0o777
        except FileNotFoundError:
            return SNAPSHOT_MODE

    def save(self, records: Iterable[SeriesRecord]) -> bool:
        """Write ``records``; failures are logged and reported as ``False``."""

        try:
            self.write(records)
        except PersistenceError:
            logger.exception("Saving the catalog snapshot failed")
            return False
        return True


def _repair_entry(entry: object) -> object:
    if not isinstance(entry, dict):
        return entry
    repaired = dict(entry)
    for key in _COUNT_FIELDS:
        value = repaired.get(key)
        if isinstance(value, int) and not isinstance(value, bool) and value < 0:
            logger.warning(
                "Resetting negative %s=%d to 0 for %r", key, value, repaired.get("title")
            )
            repaired[key] = 0
    return repaired
