"""Pydantic schemas for the personal library API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mediashelf.adapters.library.base import LibraryStatus
from mediashelf.utils.composite_key import MediaKind


class AddToLibraryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tmdb_key: str = Field(
        ...,
        alias="tmdbKey",
        description="Composite key of the title to track, e.g. 'movie-438631'.",
    )


class LibraryEntryUpdate(BaseModel):
    """Partial update of a library entry; omitted fields are left untouched.

    ``rating`` and ``notes`` may be set to null to clear them; ``status`` and
    ``progress`` may not.
    """

    status: LibraryStatus | None = None
    progress: int | None = Field(
        None,
        ge=0,
        description="Episodes watched for series, 0 or 1 for movies.",
    )
    rating: float | None = Field(None, ge=1, le=10, description="Personal rating, 1-10.")
    notes: str | None = Field(None, max_length=5000)

    @model_validator(mode="after")
    def _reject_null_required(self) -> "LibraryEntryUpdate":
        for name in ("status", "progress"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class LibraryTitle(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    tmdb_id: int = Field(..., alias="tmdbId")
    kind: MediaKind = Field(..., alias="type")
    title: str
    year: str | None = None
    poster: str | None = None
    tmdb_key: str = Field(..., alias="tmdbKey")


class LibraryEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    status: LibraryStatus
    progress: int | None = None
    rating: float | None = None
    notes: str | None = None
    updated_at: datetime = Field(..., alias="updatedAt")
    title: LibraryTitle | None = None


class LibraryListResponse(BaseModel):
    items: list[LibraryEntry] = Field(default_factory=list)
    total: int = 0
