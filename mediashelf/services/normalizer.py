"""Normalization of TMDB movie/series payloads into one schema.

TMDB names the same concepts differently per media kind (``title`` vs
``name``, ``release_date`` vs ``first_air_date``). Field extraction is
dispatched on the kind tag through ``FIELD_RULES`` rather than guessed from
whichever fields happen to be present.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from mediashelf.core.config import settings
from mediashelf.schemas.tmdb import SearchHit, TitleDetail
from mediashelf.utils.composite_key import MEDIA_KINDS, MediaKind, build_composite_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KindFields:
    """Upstream field names holding the title and its reference date."""

    title: str
    date: str


FIELD_RULES: dict[str, KindFields] = {
    "movie": KindFields(title="title", date="release_date"),
    "tv": KindFields(title="name", date="first_air_date"),
}


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _as_positive_int(value: Any) -> int | None:
    number = _as_int(value)
    return number if number is not None and number > 0 else None


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def extract_year(date_value: Any) -> str | None:
    """First four characters of a date string, or None.

    No calendar validation: "abcd-01" yields "abcd".
    """
    if isinstance(date_value, str) and len(date_value) >= 4:
        return date_value[:4]
    return None


def extract_rating(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def image_url(path: Any, base_url: str | None = None) -> str | None:
    """Prefix a bare TMDB image path with the CDN base; falsy stays None."""
    if not path or not isinstance(path, str):
        return None
    return f"{base_url or settings.tmdb.image_base_url}{path}"


def resolve_item_kind(item: Mapping[str, Any], requested_kind: MediaKind | None) -> MediaKind | None:
    """Kind of a search item: its own ``media_type``, else the requested kind.

    Kind-specific search endpoints omit ``media_type`` on each item.
    """
    media_type = item.get("media_type")
    kind = media_type if media_type is not None else requested_kind
    return kind if isinstance(kind, str) and kind in MEDIA_KINDS else None  # type: ignore[return-value]


def _normalize_hit(
    item: Mapping[str, Any],
    kind: MediaKind,
    image_base_url: str | None,
) -> SearchHit | None:
    rules = FIELD_RULES[kind]
    external_id = _as_positive_int(item.get("id"))
    title = _as_str(item.get(rules.title)) or ""
    if external_id is None or not title:
        return None

    return SearchHit(
        external_id=external_id,
        kind=kind,
        title=title,
        year=extract_year(item.get(rules.date)),
        poster_url=image_url(item.get("poster_path"), image_base_url),
        backdrop_url=image_url(item.get("backdrop_path"), image_base_url),
        rating=extract_rating(item.get("vote_average")),
        composite_key=build_composite_key(kind, external_id),
    )


def normalize_search_results(
    raw_list: Iterable[Any] | None,
    requested_kind: MediaKind | None = None,
    *,
    image_base_url: str | None = None,
) -> list[SearchHit]:
    """Normalize TMDB search results, dropping what cannot be represented.

    Items are dropped when their kind is neither movie nor tv (e.g. people
    in a multi search), or when they lack a positive id or a title.

    Args:
        raw_list: The upstream ``results`` array (anything else yields []).
        requested_kind: Kind used for the upstream call, if any.
        image_base_url: Override for the image CDN prefix.

    Returns:
        Normalized hits in upstream order.
    """
    if not isinstance(raw_list, (list, tuple)):
        return []

    hits: list[SearchHit] = []
    dropped = 0
    for item in raw_list:
        if not isinstance(item, Mapping):
            dropped += 1
            continue
        kind = resolve_item_kind(item, requested_kind)
        hit = _normalize_hit(item, kind, image_base_url) if kind else None
        if hit is None:
            dropped += 1
            continue
        hits.append(hit)

    if dropped:
        logger.debug(
            "normalizer.search_items_dropped",
            extra={"dropped": dropped, "kept": len(hits)},
        )
    return hits


def _series_runtime(raw: Mapping[str, Any]) -> int | None:
    # Episode runtimes vary; expose the first as representative
    runtimes = raw.get("episode_run_time")
    if isinstance(runtimes, list) and runtimes:
        return _as_int(runtimes[0])
    return None


def _genre_names(raw: Mapping[str, Any]) -> list[str]:
    genres = raw.get("genres")
    if not isinstance(genres, list):
        return []
    names = (g.get("name") for g in genres if isinstance(g, Mapping))
    return [name for name in names if isinstance(name, str) and name]


def normalize_title_detail(
    raw: Mapping[str, Any] | None,
    kind: MediaKind,
    *,
    external_id: int | None = None,
    image_base_url: str | None = None,
) -> TitleDetail:
    """Normalize a TMDB ``/movie/{id}`` or ``/tv/{id}`` payload.

    Args:
        raw: Upstream payload; None is treated as an empty payload.
        kind: Kind the detail was requested for.
        external_id: Id the caller asked for; defaults to the payload id.
        image_base_url: Override for the image CDN prefix.

    Returns:
        TitleDetail with ``raw_payload`` holding the full upstream record.

    Raises:
        ValueError: If kind is unknown or no positive id is available.
    """
    if kind not in FIELD_RULES:
        raise ValueError(f"unsupported media kind: {kind!r}")

    payload: dict[str, Any] = dict(raw) if raw else {}
    rules = FIELD_RULES[kind]

    resolved_id = external_id if external_id is not None else _as_positive_int(payload.get("id"))
    if resolved_id is None:
        raise ValueError("title detail has no usable id")

    is_series = kind == "tv"
    return TitleDetail(
        external_id=resolved_id,
        kind=kind,
        title=_as_str(payload.get(rules.title)) or "",
        year=extract_year(payload.get(rules.date)),
        overview=_as_str(payload.get("overview")),
        runtime_minutes=_series_runtime(payload) if is_series else _as_int(payload.get("runtime")),
        genres=_genre_names(payload),
        poster_url=image_url(payload.get("poster_path"), image_base_url),
        backdrop_url=image_url(payload.get("backdrop_path"), image_base_url),
        rating=extract_rating(payload.get("vote_average")),
        season_count=_as_int(payload.get("number_of_seasons")) if is_series else None,
        episode_count=_as_int(payload.get("number_of_episodes")) if is_series else None,
        raw_payload=payload,
    )
