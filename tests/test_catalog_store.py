"""Behaviour of the in-memory catalog store."""

from __future__ import annotations

import json
import threading

import pytest

from app.errors import DuplicateExternalIDError, RecordNotFoundError
from app.models import SeriesRecord
from app.services.catalog_store import CatalogStore
from app.services.snapshot import SnapshotFile


def make_record(external_id: str, title: str | None = None, **fields) -> SeriesRecord:
    return SeriesRecord(
        title=title or f"Series {external_id}",
        year="2020",
        external_id=external_id,
        **fields,
    )


def test_add_breaking_bad_to_empty_store() -> None:
    store = CatalogStore()

    record_id = store.add(
        SeriesRecord(title="Breaking Bad", year="2008", external_id="tt0903747")
    )

    records = store.list_records()
    assert record_id >= 1
    assert len(records) == 1
    assert records[0].id == record_id
    assert records[0].progress == 0
    assert records[0].status == "Watching"


def test_ids_are_strictly_increasing_and_never_reused() -> None:
    store = CatalogStore()
    first = store.add(make_record("tt001"))
    second = store.add(make_record("tt002"))
    store.delete(second)
    third = store.add(make_record("tt003"))

    assert first < second < third
    assert third != second
    assert [record.id for record in store.list_records()] == [first, third]


def test_list_length_tracks_adds_minus_deletes() -> None:
    store = CatalogStore()
    ids = [store.add(make_record(f"tt{index:03d}")) for index in range(6)]
    store.delete(ids[1])
    store.delete(ids[4])
    store.delete(999)

    assert len(store.list_records()) == 4
    assert len(store) == 4


def test_duplicate_external_id_is_rejected_without_changes() -> None:
    store = CatalogStore()
    store.add(make_record("tt0903747", "Breaking Bad"))
    before = store.list_records()

    with pytest.raises(DuplicateExternalIDError):
        store.add(make_record("tt0903747", "Breaking Bad again"))

    assert store.list_records() == before


def test_update_sets_episode_count() -> None:
    store = CatalogStore()
    record_id = store.add(make_record("tt001", total_episodes=20))

    updated = store.update(record_id, 10)

    assert updated.episodes_watched == 10
    assert store.get(record_id).progress == 50


def test_update_unknown_id_raises_and_leaves_store_unchanged() -> None:
    store = CatalogStore()
    store.add(make_record("tt001"))
    before = store.list_records()

    with pytest.raises(RecordNotFoundError):
        store.update(42, 3)

    assert store.list_records() == before


def test_update_rejects_negative_counts() -> None:
    store = CatalogStore()
    record_id = store.add(make_record("tt001"))

    with pytest.raises(ValueError):
        store.update(record_id, -1)


def test_delete_unknown_id_is_a_no_op() -> None:
    store = CatalogStore()
    store.add(make_record("tt001"))

    assert store.delete(12345) is False
    assert len(store) == 1


def test_list_returns_a_copy() -> None:
    store = CatalogStore()
    store.add(make_record("tt001"))

    snapshot = store.list_records()
    snapshot.clear()

    assert len(store.list_records()) == 1


def test_list_preserves_insertion_order() -> None:
    store = CatalogStore()
    for external_id in ("tt003", "tt001", "tt002"):
        store.add(make_record(external_id))

    assert [r.external_id for r in store.list_records()] == ["tt003", "tt001", "tt002"]


def test_stats_reports_total_and_fully_watched() -> None:
    store = CatalogStore()
    done = store.add(make_record("tt001", total_episodes=10))
    store.add(make_record("tt002", total_episodes=10))
    store.update(done, 10)

    stats = store.stats()

    assert stats.total == 2
    assert stats.fully_watched == 1


def test_set_cover_patches_record() -> None:
    store = CatalogStore()
    record_id = store.add(make_record("tt001"))

    store.set_cover(record_id, "https://example.com/cover.jpg")

    assert store.get(record_id).cover_url == "https://example.com/cover.jpg"
    with pytest.raises(RecordNotFoundError):
        store.set_cover(999, "https://example.com/other.jpg")


def test_concurrent_adds_of_same_external_id_admit_one() -> None:
    store = CatalogStore()
    barrier = threading.Barrier(8)
    outcomes: list[str] = []
    outcomes_lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        try:
            store.add(make_record("tt0903747"))
            result = "added"
        except DuplicateExternalIDError:
            result = "duplicate"
        with outcomes_lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("added") == 1
    assert outcomes.count("duplicate") == 7
    assert len(store) == 1


def test_concurrent_adds_assign_unique_ids() -> None:
    store = CatalogStore()

    def worker(offset: int) -> None:
        for index in range(25):
            store.add(make_record(f"tt{offset}-{index}"))

    threads = [threading.Thread(target=worker, args=(offset,)) for offset in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    ids = [record.id for record in store.list_records()]
    assert len(ids) == 100
    assert len(set(ids)) == 100


def test_load_resumes_id_counter_after_highest_snapshot_id(tmp_path) -> None:
    snapshot = SnapshotFile(tmp_path / "series.json")
    snapshot.write(
        [
            SeriesRecord(id=4, title="Four", external_id="tt004"),
            SeriesRecord(id=9, title="Nine", external_id="tt009"),
        ]
    )
    store = CatalogStore(snapshot)

    assert store.load() == 2
    assert store.add(make_record("tt010")) == 10


def test_load_skips_duplicate_snapshot_ids(tmp_path) -> None:
    snapshot = SnapshotFile(tmp_path / "series.json")
    snapshot.write(
        [
            SeriesRecord(id=1, title="First", external_id="tt001"),
            SeriesRecord(id=1, title="Clash", external_id="tt002"),
        ]
    )
    store = CatalogStore(snapshot)

    assert store.load() == 1
    assert store.get(1).title == "First"


def test_save_and_reload_round_trip(tmp_path) -> None:
    path = tmp_path / "series.json"
    store = CatalogStore(SnapshotFile(path))
    first = store.add(make_record("tt001", total_episodes=30))
    store.add(make_record("tt002", cover_url="https://example.com/2.jpg"))
    store.update(first, 12)

    assert store.save() is True

    reloaded = CatalogStore(SnapshotFile(path))
    reloaded.load()
    assert reloaded.list_records() == store.list_records()


def test_save_without_snapshot_reports_failure() -> None:
    assert CatalogStore().save() is False


def test_saving_after_loading_a_legacy_snapshot_keeps_old_series(tmp_path) -> None:
    path = tmp_path / "series.json"
    path.write_text(
        json.dumps(
            [
                {"id": 1, "title": "A", "imdb_id": "tt001", "episodes_watched": 2},
                {"id": 2, "title": "B", "imdb_id": "tt002", "episodes_watched": -3},
            ]
        ),
        encoding="utf-8",
    )
    store = CatalogStore(SnapshotFile(path))
    store.load()

    new_id = store.add(make_record("tt003", title="C"))
    assert store.save() is True

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert new_id == 3
    assert [entry["title"] for entry in saved] == ["A", "B", "C"]
    assert saved[1]["episodes_watched"] == 0
