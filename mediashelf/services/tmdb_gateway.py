"""TMDB gateway service: upstream call plus normalization.

Request validation and admission control happen in the HTTP layer before
this service is reached; here the upstream payload is fetched and unified.
"""

from __future__ import annotations

import logging
from typing import Any

from mediashelf.adapters.metadata.base import AbstractMetadataClient
from mediashelf.core.errors import ValidationAppError
from mediashelf.schemas.tmdb import SearchResponse, TitleDetail
from mediashelf.services.normalizer import normalize_search_results, normalize_title_detail
from mediashelf.utils.composite_key import MediaKind, resolve_kind

logger = logging.getLogger(__name__)

MIN_QUERY_CHARS = 2
QUERY_TOO_SHORT_MESSAGE = "Query must be at least 2 characters"


def validate_search_query(q: str | None) -> str:
    """Trim the search text and enforce the minimum length.

    Raises:
        ValidationAppError: If the query is missing or too short.
    """
    query = (q or "").strip()
    if len(query) < MIN_QUERY_CHARS:
        raise ValidationAppError(code="query_too_short", message=QUERY_TOO_SHORT_MESSAGE)
    return query


def resolve_search_kind(type_param: str | None) -> MediaKind | None:
    """Map the ``type`` parameter onto a kind filter.

    Unrecognized values fall back to a mixed search instead of a 400.
    """
    kind = resolve_kind(type_param)
    if type_param and kind is None:
        logger.debug("tmdb.search_unknown_type", extra={"type_param": type_param[:32]})
    return kind


def _total_results(payload: dict[str, Any], fallback: int) -> int:
    total = payload.get("total_results")
    if isinstance(total, bool) or not isinstance(total, (int, float)):
        return fallback
    return int(total)


class TmdbGatewayService:
    """Fetches from the metadata provider and returns unified shapes."""

    def __init__(self, client: AbstractMetadataClient) -> None:
        self._client = client

    async def search(self, query: str, kind: MediaKind | None = None) -> SearchResponse:
        payload = await self._client.search(query, kind)
        results = normalize_search_results(payload.get("results"), kind)
        total = _total_results(payload, len(results))

        logger.info(
            "tmdb.search_completed",
            extra={"kind": kind or "multi", "returned": len(results), "total_results": total},
        )
        return SearchResponse(results=results, total_results=total)

    async def title(self, kind: MediaKind, external_id: int) -> TitleDetail:
        payload = await self._client.details(kind, external_id)
        detail = normalize_title_detail(payload, kind, external_id=external_id)

        logger.info(
            "tmdb.title_fetched",
            extra={"kind": kind, "external_id": external_id, "genres": len(detail.genres)},
        )
        return detail
