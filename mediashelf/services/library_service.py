"""Personal library service: track titles with status, progress, rating, notes.

Titles are fetched through the TMDB gateway when added, stored once, and
shared by every user's entries. All entry operations are scoped to the
calling user; another user's entry is indistinguishable from a missing one.
"""

from __future__ import annotations

import logging
from typing import get_args

from mediashelf.adapters.library.base import (
    AbstractLibraryStore,
    LibraryStatus,
    TitleRecord,
    UserTitleRecord,
)
from mediashelf.adapters.library.in_memory import InMemoryLibraryStore
from mediashelf.core.errors import NotFoundAppError, ValidationAppError
from mediashelf.schemas.library import LibraryEntry, LibraryEntryUpdate, LibraryTitle
from mediashelf.services.tmdb_gateway import TmdbGatewayService
from mediashelf.utils.composite_key import MediaKind, build_composite_key, parse_composite_key

logger = logging.getLogger(__name__)

LIBRARY_STATUSES: frozenset[str] = frozenset(get_args(LibraryStatus))

_store: AbstractLibraryStore | None = None


def get_library_store() -> AbstractLibraryStore:
    """Return the process-wide library store (in-memory by default)."""
    global _store
    if _store is None:
        _store = InMemoryLibraryStore()
    return _store


def parse_status_filter(value: str | None) -> LibraryStatus | None:
    """Validate an optional ``status`` filter; empty or "all" means no filter.

    Raises:
        ValidationAppError: If the value is not a known status.
    """
    if not value or value == "all":
        return None
    if value not in LIBRARY_STATUSES:
        raise ValidationAppError(
            code="invalid_status",
            message=f"status must be one of: {', '.join(sorted(LIBRARY_STATUSES))}",
        )
    return value  # type: ignore[return-value]


def _to_title(record: TitleRecord) -> LibraryTitle:
    return LibraryTitle(
        id=record.id,
        tmdb_id=record.tmdb_id,
        kind=record.kind,
        title=record.title,
        year=record.year,
        poster=record.poster,
        tmdb_key=build_composite_key(record.kind, record.tmdb_id),
    )


class LibraryService:
    """Use cases over the library store for one application instance."""

    def __init__(
        self,
        store: AbstractLibraryStore,
        gateway: TmdbGatewayService | None = None,
    ) -> None:
        self._store = store
        self._gateway = gateway

    def _to_entry(self, record: UserTitleRecord) -> LibraryEntry:
        title = self._store.get_title(record.title_id)
        return LibraryEntry(
            id=record.id,
            status=record.status,
            progress=record.progress,
            rating=record.rating,
            notes=record.notes,
            updated_at=record.updated_at,
            title=_to_title(title) if title else None,
        )

    def _owned_entry(self, user_id: str, entry_id: str) -> UserTitleRecord:
        record = self._store.get_entry(entry_id)
        if record is None or record.user_id != user_id:
            raise NotFoundAppError(code="entry_not_found", message="Library entry not found")
        return record

    async def add_title(self, user_id: str, kind: MediaKind, external_id: int) -> LibraryEntry:
        """Fetch a title from TMDB, store it and add it to the user's library.

        Adding a title already in the library returns the existing entry
        unchanged; the stored title metadata is refreshed either way.

        Raises:
            UpstreamAppError: If TMDB cannot provide the title.
        """
        if self._gateway is None:
            raise RuntimeError("LibraryService.add_title requires a TMDB gateway")

        detail = await self._gateway.title(kind, external_id)

        title = self._store.upsert_title(
            tmdb_id=detail.external_id,
            kind=detail.kind,
            title=detail.title,
            year=detail.year,
            poster=detail.poster_url,
            data=detail.raw_payload,
        )
        record, created = self._store.add_entry(user_id, title.id)

        logger.info(
            "library.title_added" if created else "library.title_already_tracked",
            extra={
                "user_id": user_id,
                "entry_id": record.id,
                "tmdb_key": build_composite_key(kind, external_id),
            },
        )
        return self._to_entry(record)

    def list_entries(self, user_id: str, status: LibraryStatus | None = None) -> list[LibraryEntry]:
        return [self._to_entry(r) for r in self._store.list_entries(user_id, status)]

    def get_by_tmdb_key(self, user_id: str, tmdb_key: str) -> LibraryEntry:
        kind, external_id = parse_composite_key(tmdb_key)
        title = self._store.find_title(kind, external_id)
        record = self._store.find_entry(user_id, title.id) if title else None
        if record is None:
            raise NotFoundAppError(
                code="entry_not_found",
                message="Title is not in your library",
                details={"tmdb_key": tmdb_key},
            )
        return self._to_entry(record)

    def update_entry(self, user_id: str, entry_id: str, update: LibraryEntryUpdate) -> LibraryEntry:
        self._owned_entry(user_id, entry_id)
        changes = update.changes()
        record = self._store.update_entry(entry_id, changes)
        if record is None:
            raise NotFoundAppError(code="entry_not_found", message="Library entry not found")

        logger.info(
            "library.entry_updated",
            extra={"user_id": user_id, "entry_id": entry_id, "fields": sorted(changes)},
        )
        return self._to_entry(record)

    def remove_entry(self, user_id: str, entry_id: str) -> None:
        self._owned_entry(user_id, entry_id)
        self._store.delete_entry(entry_id)
        logger.info("library.entry_removed", extra={"user_id": user_id, "entry_id": entry_id})
