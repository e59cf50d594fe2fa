"""Library store interfaces and records."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from mediashelf.utils.composite_key import MediaKind

LibraryStatus = Literal["planned", "watching", "completed", "dropped"]


@dataclass
class TitleRecord:
    """A title cached from the metadata provider, shared by all users."""

    id: str
    tmdb_id: int
    kind: MediaKind
    title: str
    year: str | None
    poster: str | None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class UserTitleRecord:
    """One user's tracking state for one title."""

    id: str
    user_id: str
    title_id: str
    status: LibraryStatus
    progress: int | None
    rating: float | None
    notes: str | None
    updated_at: datetime


class AbstractLibraryStore(ABC):
    """CRUD over titles and per-user library entries."""

    @abstractmethod
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
        """Insert or refresh a title, unique on ``(kind, tmdb_id)``."""
        raise NotImplementedError

    @abstractmethod
    def get_title(self, title_id: str) -> TitleRecord | None:
        raise NotImplementedError

    @abstractmethod
    def find_title(self, kind: MediaKind, tmdb_id: int) -> TitleRecord | None:
        raise NotImplementedError

    @abstractmethod
    def add_entry(self, user_id: str, title_id: str) -> tuple[UserTitleRecord, bool]:
        """Create a planned entry unless one exists for ``(user_id, title_id)``.

        Returns:
            The entry and whether it was created.
        """
        raise NotImplementedError

    @abstractmethod
    def get_entry(self, entry_id: str) -> UserTitleRecord | None:
        raise NotImplementedError

    @abstractmethod
    def find_entry(self, user_id: str, title_id: str) -> UserTitleRecord | None:
        raise NotImplementedError

    @abstractmethod
    def list_entries(
        self, user_id: str, status: LibraryStatus | None = None
    ) -> list[UserTitleRecord]:
        """Entries of a user, most recently updated first."""
        raise NotImplementedError

    @abstractmethod
    def update_entry(self, entry_id: str, changes: dict[str, Any]) -> UserTitleRecord | None:
        """Apply changes and bump ``updated_at``; None if the entry is gone."""
        raise NotImplementedError

    @abstractmethod
    def delete_entry(self, entry_id: str) -> bool:
        raise NotImplementedError
