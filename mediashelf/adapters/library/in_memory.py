"""In-memory library store.

Notes:
- Per-process only and lost on restart; suitable for development and tests.
- Thread-safe: all reads and writes happen under one lock.
"""

from __future__ import annotations

import itertools
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable

from mediashelf.adapters.library.base import (
    AbstractLibraryStore,
    LibraryStatus,
    TitleRecord,
    UserTitleRecord,
)
from mediashelf.utils.composite_key import MediaKind

_UPDATABLE_FIELDS = frozenset({"status", "progress", "rating", "notes"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryLibraryStore(AbstractLibraryStore):
    """Dictionary-backed store with the same uniqueness rules as the schema.

    Titles are unique on ``(kind, tmdb_id)`` and entries on
    ``(user_id, title_id)``. Records handed out are copies, so callers cannot
    mutate stored state behind the lock.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self._titles: dict[str, TitleRecord] = {}
        self._title_index: dict[tuple[str, int], str] = {}
        self._entries: dict[str, UserTitleRecord] = {}
        self._entry_index: dict[tuple[str, str], str] = {}
        # Tie-breaker for entries updated within the same clock tick
        self._touch_seq: dict[str, int] = {}
        self._seq = itertools.count()

    def _touch(self, entry: UserTitleRecord) -> None:
        entry.updated_at = self._clock()
        self._touch_seq[entry.id] = next(self._seq)

    def upsert_title(
        self,
        *,
        tmdb_id: int,
        kind: MediaKind,
        title: str,
        year: str | None,
        poster: str | None,
        data: dict[str, Any],
    ) -> TitleRecord:
        with self._lock:
            title_id = self._title_index.get((kind, tmdb_id)) or str(uuid.uuid4())
            record = TitleRecord(
                id=title_id,
                tmdb_id=tmdb_id,
                kind=kind,
                title=title,
                year=year,
                poster=poster,
                data=dict(data),
            )
            self._titles[title_id] = record
            self._title_index[(kind, tmdb_id)] = title_id
            return replace(record)

    def get_title(self, title_id: str) -> TitleRecord | None:
        with self._lock:
            record = self._titles.get(title_id)
            return replace(record) if record else None

    def find_title(self, kind: MediaKind, tmdb_id: int) -> TitleRecord | None:
        with self._lock:
            title_id = self._title_index.get((kind, tmdb_id))
            return self.get_title(title_id) if title_id else None

    def add_entry(self, user_id: str, title_id: str) -> tuple[UserTitleRecord, bool]:
        with self._lock:
            existing_id = self._entry_index.get((user_id, title_id))
            if existing_id:
                return replace(self._entries[existing_id]), False

            entry = UserTitleRecord(
                id=str(uuid.uuid4()),
                user_id=user_id,
                title_id=title_id,
                status="planned",
                progress=0,
                rating=None,
                notes=None,
                updated_at=self._clock(),
            )
            self._touch(entry)
            self._entries[entry.id] = entry
            self._entry_index[(user_id, title_id)] = entry.id
            return replace(entry), True

    def get_entry(self, entry_id: str) -> UserTitleRecord | None:
        with self._lock:
            entry = self._entries.get(entry_id)
            return replace(entry) if entry else None

    def find_entry(self, user_id: str, title_id: str) -> UserTitleRecord | None:
        with self._lock:
            entry_id = self._entry_index.get((user_id, title_id))
            return self.get_entry(entry_id) if entry_id else None

    def list_entries(
        self, user_id: str, status: LibraryStatus | None = None
    ) -> list[UserTitleRecord]:
        with self._lock:
            entries = [
                e
                for e in self._entries.values()
                if e.user_id == user_id and (status is None or e.status == status)
            ]
            entries.sort(key=lambda e: (e.updated_at, self._touch_seq[e.id]), reverse=True)
            return [replace(e) for e in entries]

    def update_entry(self, entry_id: str, changes: dict[str, Any]) -> UserTitleRecord | None:
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"fields not updatable: {sorted(unknown)}")

        with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None:
                return None
            for name, value in changes.items():
                setattr(entry, name, value)
            self._touch(entry)
            return replace(entry)

    def delete_entry(self, entry_id: str) -> bool:
        with self._lock:
            entry = self._entries.pop(entry_id, None)
            if entry is None:
                return False
            self._entry_index.pop((entry.user_id, entry.title_id), None)
            self._touch_seq.pop(entry.id, None)
            return True
