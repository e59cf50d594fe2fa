"""Pydantic schemas for the unified TMDB gateway responses.

Attribute names are Pythonic; the JSON wire names (aliases) are the ones the
web client consumes (``id``, ``type``, ``poster``, ``tmdbKey``, ...).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mediashelf.utils.composite_key import MediaKind


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SearchHit(_WireModel):
    """One normalized search result, movie or series."""

    external_id: int = Field(..., alias="id", description="TMDB id.")
    kind: MediaKind = Field(..., alias="type", description="'movie' or 'tv'.")
    title: str = Field(..., description="Display title (movie title or series name).")
    year: str | None = Field(
        None, description="First four characters of the release / first-air date."
    )
    poster_url: str | None = Field(None, alias="poster")
    backdrop_url: str | None = Field(None, alias="backdrop")
    rating: float | None = Field(None, description="TMDB vote average.")
    composite_key: str = Field(
        ...,
        alias="tmdbKey",
        description="'<type>-<id>', the key used to fetch the title detail.",
    )


class SearchResponse(_WireModel):
    results: list[SearchHit] = Field(default_factory=list)
    total_results: int = Field(0, alias="totalResults")


class TitleDetail(_WireModel):
    """Full normalized title detail.

    ``seasons``/``episodes`` are only populated for series; ``raw`` keeps the
    untouched upstream payload for storage and debugging.
    """

    external_id: int = Field(..., alias="id")
    kind: MediaKind = Field(..., alias="type")
    title: str
    year: str | None = None
    overview: str | None = None
    runtime_minutes: int | None = Field(
        None,
        alias="runtime",
        description="Movie runtime, or a representative episode runtime for series.",
    )
    genres: list[str] = Field(default_factory=list)
    poster_url: str | None = Field(None, alias="poster")
    backdrop_url: str | None = Field(None, alias="backdrop")
    rating: float | None = None
    season_count: int | None = Field(None, alias="seasons")
    episode_count: int | None = Field(None, alias="episodes")
    raw_payload: dict[str, Any] = Field(default_factory=dict, alias="raw")
