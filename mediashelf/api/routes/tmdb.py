"""TMDB gateway routes: unified search and title detail.

Each request runs credential check → validation → rate limit admission →
upstream call → normalization. FastAPI resolves the dependencies below in
declaration order, so invalid input is rejected before it consumes budget
or reaches the provider.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from mediashelf.adapters.metadata.base import AbstractMetadataClient
from mediashelf.adapters.metadata.factory import get_metadata_client
from mediashelf.adapters.rate_limit.base import RateLimitResult
from mediashelf.core.rate_limit import enforce_rate_limit
from mediashelf.schemas.tmdb import SearchResponse, TitleDetail
from mediashelf.services.tmdb_gateway import (
    TmdbGatewayService,
    resolve_search_kind,
    validate_search_query,
)
from mediashelf.utils.composite_key import MediaKind, parse_composite_key

router = APIRouter(tags=["TMDB"])

_ERROR_RESPONSES = {
    400: {"description": "Invalid query or tmdbKey"},
    429: {"description": "Too many requests (see Retry-After)"},
    500: {"description": "TMDB API key not configured"},
}


@dataclass(frozen=True)
class SearchParams:
    query: str
    kind: MediaKind | None


def get_gateway_service(
    client: Annotated[AbstractMetadataClient, Depends(get_metadata_client)],
) -> TmdbGatewayService:
    return TmdbGatewayService(client)


def parse_search_params(
    q: Annotated[str | None, Query(description="Search text, at least 2 characters.")] = None,
    type_: Annotated[
        str | None,
        Query(
            alias="type",
            description="'movie', 'tv' or 'series'; anything else searches both.",
        ),
    ] = None,
) -> SearchParams:
    return SearchParams(query=validate_search_query(q), kind=resolve_search_kind(type_))


def parse_title_key(tmdb_key: str) -> tuple[MediaKind, int]:
    return parse_composite_key(tmdb_key)


@router.get("/search", response_model=SearchResponse, responses=_ERROR_RESPONSES)
async def search_titles(
    gateway: Annotated[TmdbGatewayService, Depends(get_gateway_service)],
    params: Annotated[SearchParams, Depends(parse_search_params)],
    _rate: Annotated[RateLimitResult | None, Depends(enforce_rate_limit)],
) -> SearchResponse:
    """Search movies and series on TMDB.

    Returns the normalized hits plus TMDB's reported total result count.
    Upstream failures are answered with TMDB's own status code.
    """
    return await gateway.search(params.query, params.kind)


@router.get("/title/{tmdb_key}", response_model=TitleDetail, responses=_ERROR_RESPONSES)
async def get_title(
    gateway: Annotated[TmdbGatewayService, Depends(get_gateway_service)],
    key: Annotated[tuple[MediaKind, int], Depends(parse_title_key)],
    _rate: Annotated[RateLimitResult | None, Depends(enforce_rate_limit)],
) -> TitleDetail:
    """Fetch one title by composite key (``movie-123`` or ``tv-123``)."""
    kind, external_id = key
    return await gateway.title(kind, external_id)
