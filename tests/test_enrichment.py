"""Cover enrichment pipeline tests."""

from __future__ import annotations

import threading
from typing import Iterable, cast

import pytest

from app.errors import InvalidAPIKeyError, MetadataNotFoundError, MetadataUnavailableError
from app.models import SeriesMetadata, SeriesRecord
from app.services.catalog_store import CatalogStore
from app.services.enrichment import CoverEnricher
from app.services.omdb import OMDbClient
from app.services.snapshot import SnapshotFile


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


class CountingSnapshot(SnapshotFile):
    """Snapshot file that records how often it was saved."""

    def __init__(self, path) -> None:
        super().__init__(path)
        self.saves = 0

    def save(self, records: Iterable[SeriesRecord]) -> bool:  # type: ignore[override]
        self.saves += 1
        return super().save(records)


class StubMetadataClient:
    """Metadata client stub answering from a fixed table."""

    def __init__(self, responses: dict[str, SeriesMetadata | Exception]) -> None:
        self.responses = responses
        self.calls: list[str] = []

    async def lookup(self, identifier: str) -> SeriesMetadata:
        self.calls.append(identifier)
        response = self.responses.get(identifier)
        if response is None:
            raise MetadataNotFoundError("Series not found!")
        if isinstance(response, Exception):
            raise response
        return response


def poster(external_id: str, url: str | None) -> SeriesMetadata:
    return SeriesMetadata(title=external_id, external_id=external_id, poster=url)


def build(tmp_path, responses) -> tuple[CatalogStore, CountingSnapshot, StubMetadataClient, CoverEnricher]:
    snapshot = CountingSnapshot(tmp_path / "series.json")
    store = CatalogStore(snapshot)
    client = StubMetadataClient(responses)
    enricher = CoverEnricher(store, cast(OMDbClient, client))
    return store, snapshot, client, enricher


@pytest.mark.anyio("asyncio")
async def test_missing_covers_are_filled_and_saved_once(tmp_path) -> None:
    store, snapshot, client, enricher = build(
        tmp_path,
        {
            "tt001": poster("tt001", "https://example.com/1.jpg"),
            "tt002": poster("tt002", "https://example.com/2.jpg"),
        },
    )
    first = store.add(SeriesRecord(title="One", external_id="tt001"))
    second = store.add(SeriesRecord(title="Two", external_id="tt002", cover_url="N/A"))
    store.add(
        SeriesRecord(title="Three", external_id="tt003", cover_url="https://example.com/3.jpg")
    )

    updated = await enricher.run()

    assert updated == 2
    assert snapshot.saves == 1
    assert client.calls == ["tt001", "tt002"]
    assert store.get(first).cover_url == "https://example.com/1.jpg"
    assert store.get(second).cover_url == "https://example.com/2.jpg"
    assert [r.cover_url for r in snapshot.load()][:2] == [
        "https://example.com/1.jpg",
        "https://example.com/2.jpg",
    ]


@pytest.mark.anyio("asyncio")
async def test_second_run_is_a_no_op(tmp_path) -> None:
    store, snapshot, client, enricher = build(
        tmp_path, {"tt001": poster("tt001", "https://example.com/1.jpg")}
    )
    store.add(SeriesRecord(title="One", external_id="tt001"))

    assert await enricher.run() == 1
    assert await enricher.run() == 0

    assert snapshot.saves == 1
    assert client.calls == ["tt001"]


@pytest.mark.anyio("asyncio")
async def test_failures_are_skipped_without_aborting_the_batch(tmp_path) -> None:
    store, snapshot, client, enricher = build(
        tmp_path,
        {
            "tt001": MetadataUnavailableError("Network error: timed out"),
            "tt002": InvalidAPIKeyError("Invalid API key!"),
            "tt004": poster("tt004", "https://example.com/4.jpg"),
        },
    )
    for external_id in ("tt001", "tt002", "tt003", "tt004"):
        store.add(SeriesRecord(title=external_id, external_id=external_id))

    updated = await enricher.run()

    assert updated == 1
    assert client.calls == ["tt001", "tt002", "tt003", "tt004"]
    assert snapshot.saves == 1
    covers = {r.external_id: r.cover_url for r in store.list_records()}
    assert covers == {
        "tt001": None,
        "tt002": None,
        "tt003": None,
        "tt004": "https://example.com/4.jpg",
    }


@pytest.mark.anyio("asyncio")
async def test_no_save_when_nothing_changed(tmp_path) -> None:
    store, snapshot, client, enricher = build(
        tmp_path, {"tt001": poster("tt001", "N/A")}
    )
    store.add(SeriesRecord(title="One", external_id="tt001"))
    store.add(SeriesRecord(title="No id"))

    assert await enricher.run() == 0
    assert snapshot.saves == 0
    assert client.calls == ["tt001"]


@pytest.mark.anyio("asyncio")
async def test_record_deleted_during_lookup_is_skipped(tmp_path) -> None:
    snapshot = CountingSnapshot(tmp_path / "series.json")
    store = CatalogStore(snapshot)
    record_id = store.add(SeriesRecord(title="Gone", external_id="tt001"))

    class DeletingClient(StubMetadataClient):
        async def lookup(self, identifier: str) -> SeriesMetadata:
            store.delete(record_id)
            return poster(identifier, "https://example.com/1.jpg")

    enricher = CoverEnricher(store, cast(OMDbClient, DeletingClient({})))

    assert await enricher.run() == 0
    assert snapshot.saves == 0
    assert len(store) == 0


@pytest.mark.anyio("asyncio")
async def test_snapshot_is_written_off_the_event_loop_thread(tmp_path) -> None:
    loop_thread = threading.get_ident()
    save_threads: list[int] = []

    class ThreadRecordingSnapshot(SnapshotFile):
        def save(self, records: Iterable[SeriesRecord]) -> bool:  # type: ignore[override]
            save_threads.append(threading.get_ident())
            return super().save(records)

    store = CatalogStore(ThreadRecordingSnapshot(tmp_path / "series.json"))
    store.add(SeriesRecord(title="One", external_id="tt001"))
    client = StubMetadataClient({"tt001": poster("tt001", "https://example.com/1.jpg")})

    assert await CoverEnricher(store, cast(OMDbClient, client)).run() == 1

    assert len(save_threads) == 1
    assert save_threads[0] != loop_thread
