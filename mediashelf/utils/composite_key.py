"""Composite ``<kind>-<id>`` keys identifying a title across the gateway."""

from __future__ import annotations

from typing import Literal, get_args

from mediashelf.core.errors import ValidationAppError

MediaKind = Literal["movie", "tv"]

MEDIA_KINDS: frozenset[str] = frozenset(get_args(MediaKind))

# Caller-facing spellings accepted by the search endpoint
KIND_ALIASES: dict[str, MediaKind] = {
    "movie": "movie",
    "tv": "tv",
    "series": "tv",
}

MISSING_KEY_MESSAGE = "Missing tmdbKey"
MALFORMED_KEY_MESSAGE = "tmdbKey must be formatted as 'movie-123' or 'tv-123'"
INVALID_ID_MESSAGE = "Invalid tmdb id"


def build_composite_key(kind: MediaKind, external_id: int) -> str:
    return f"{kind}-{external_id}"


def resolve_kind(value: str | None) -> MediaKind | None:
    """Map a caller-supplied kind onto the internal one.

    Unknown or empty values resolve to None, meaning "no kind filter".
    """
    if not value:
        return None
    return KIND_ALIASES.get(value.strip().lower())


def parse_composite_key(raw: str | None) -> tuple[MediaKind, int]:
    """Split a composite key back into ``(kind, id)``.

    Args:
        raw: Key such as ``"movie-438631"`` or ``"tv-1399"``.

    Returns:
        The media kind and the positive integer id.

    Raises:
        ValidationAppError: If the key is blank, not exactly two
            dash-separated parts with a known kind, or the id is not a
            positive integer.
    """
    key = (raw or "").strip()
    if not key:
        raise ValidationAppError(code="missing_tmdb_key", message=MISSING_KEY_MESSAGE)

    parts = key.split("-")
    if len(parts) != 2 or parts[0] not in MEDIA_KINDS or not parts[1]:
        raise ValidationAppError(
            code="malformed_tmdb_key",
            message=MALFORMED_KEY_MESSAGE,
            details={"tmdb_key": key[:64]},
        )

    kind, id_part = parts
    if not (id_part.isascii() and id_part.isdigit()) or int(id_part) < 1:
        raise ValidationAppError(
            code="invalid_tmdb_id",
            message=INVALID_ID_MESSAGE,
            details={"tmdb_key": key[:64]},
        )

    return kind, int(id_part)  # type: ignore[return-value]
