"""Tests for the in-memory library store and the library service."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from mediashelf.adapters.library.in_memory import InMemoryLibraryStore
from mediashelf.core.errors import NotFoundAppError, ValidationAppError
from mediashelf.schemas.library import LibraryEntryUpdate
from mediashelf.services.library_service import LibraryService, parse_status_filter
from mediashelf.services.tmdb_gateway import TmdbGatewayService


class StepClock:
    """Clock advancing one second per call."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def _title(store: InMemoryLibraryStore, tmdb_id: int = 1, kind: str = "movie"):
    return store.upsert_title(
        tmdb_id=tmdb_id, kind=kind, title=f"T{tmdb_id}", year=None, poster=None, data={}
    )


class TestInMemoryLibraryStore:
    def test_upsert_title_keeps_identity(self) -> None:
        store = InMemoryLibraryStore()

        first = _title(store)
        second = store.upsert_title(
            tmdb_id=1, kind="movie", title="Renamed", year="2020", poster=None, data={"a": 1}
        )

        assert second.id == first.id
        assert store.get_title(first.id).title == "Renamed"
        assert store.find_title("tv", 1) is None

    def test_same_id_different_kind_is_distinct(self) -> None:
        store = InMemoryLibraryStore()

        assert _title(store, 1, "movie").id != _title(store, 1, "tv").id

    def test_add_entry_is_unique_per_user_and_title(self) -> None:
        store = InMemoryLibraryStore()
        title = _title(store)

        entry, created = store.add_entry("alice", title.id)
        again, created_again = store.add_entry("alice", title.id)
        other, other_created = store.add_entry("bob", title.id)

        assert created and not created_again and other_created
        assert again.id == entry.id
        assert other.id != entry.id

    def test_returned_records_are_copies(self) -> None:
        store = InMemoryLibraryStore()
        entry, _ = store.add_entry("alice", _title(store).id)

        entry.status = "dropped"

        assert store.get_entry(entry.id).status == "planned"

    def test_update_touches_and_reorders(self) -> None:
        store = InMemoryLibraryStore(clock=StepClock())
        first, _ = store.add_entry("alice", _title(store, 1).id)
        second, _ = store.add_entry("alice", _title(store, 2).id)

        assert [e.id for e in store.list_entries("alice")] == [second.id, first.id]

        updated = store.update_entry(first.id, {"status": "completed"})

        assert updated.updated_at > first.updated_at
        assert [e.id for e in store.list_entries("alice")] == [first.id, second.id]
        assert [e.id for e in store.list_entries("alice", "completed")] == [first.id]

    def test_same_tick_updates_keep_touch_order(self) -> None:
        fixed = datetime(2024, 1, 1, tzinfo=timezone.utc)
        store = InMemoryLibraryStore(clock=lambda: fixed)
        first, _ = store.add_entry("alice", _title(store, 1).id)
        second, _ = store.add_entry("alice", _title(store, 2).id)

        store.update_entry(first.id, {"progress": 1})

        assert [e.id for e in store.list_entries("alice")] == [first.id, second.id]

    def test_update_rejects_unknown_fields(self) -> None:
        store = InMemoryLibraryStore()
        entry, _ = store.add_entry("alice", _title(store).id)

        with pytest.raises(ValueError):
            store.update_entry(entry.id, {"user_id": "mallory"})

    def test_update_and_delete_missing_entry(self) -> None:
        store = InMemoryLibraryStore()

        assert store.update_entry("missing", {"progress": 1}) is None
        assert store.delete_entry("missing") is False

    def test_delete_allows_re_adding(self) -> None:
        store = InMemoryLibraryStore()
        title = _title(store)
        entry, _ = store.add_entry("alice", title.id)

        assert store.delete_entry(entry.id) is True
        assert store.find_entry("alice", title.id) is None

        fresh, created = store.add_entry("alice", title.id)
        assert created and fresh.id != entry.id

    def test_concurrent_adds_create_one_entry(self) -> None:
        store = InMemoryLibraryStore()
        title = _title(store)
        results: list[bool] = []

        def worker() -> None:
            _, created = store.add_entry("alice", title.id)
            results.append(created)

        threads = [threading.Thread(target=worker) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert len(store.list_entries("alice")) == 1


class TestParseStatusFilter:
    @pytest.mark.parametrize("value", [None, "", "all"])
    def test_no_filter(self, value) -> None:
        assert parse_status_filter(value) is None

    def test_known_status(self) -> None:
        assert parse_status_filter("watching") == "watching"

    def test_unknown_status(self) -> None:
        with pytest.raises(ValidationAppError):
            parse_status_filter("WATCHING")


class TestLibraryService:
    @pytest.mark.asyncio
    async def test_add_without_gateway_is_a_programming_error(self) -> None:
        service = LibraryService(InMemoryLibraryStore())

        with pytest.raises(RuntimeError):
            await service.add_title("alice", "movie", 1)

    @pytest.mark.asyncio
    async def test_add_and_update_through_service(self, fake_tmdb) -> None:
        fake_tmdb.details_payload = {"id": 1399, "name": "Game of Thrones", "number_of_episodes": 73}
        service = LibraryService(InMemoryLibraryStore(), TmdbGatewayService(fake_tmdb))

        entry = await service.add_title("alice", "tv", 1399)
        updated = service.update_entry("alice", entry.id, LibraryEntryUpdate(progress=10))

        assert entry.title.tmdb_key == "tv-1399"
        assert updated.progress == 10
        assert service.get_by_tmdb_key("alice", "tv-1399").id == entry.id

    def test_foreign_entry_is_not_found(self) -> None:
        store = InMemoryLibraryStore()
        entry, _ = store.add_entry("alice", _title(store).id)
        service = LibraryService(store)

        with pytest.raises(NotFoundAppError):
            service.remove_entry("bob", entry.id)

        assert store.get_entry(entry.id) is not None
