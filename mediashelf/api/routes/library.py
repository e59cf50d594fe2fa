from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from mediashelf.adapters.rate_limit.base import RateLimitResult
from mediashelf.api.routes.tmdb import get_gateway_service
from mediashelf.core.auth import require_user
from mediashelf.core.rate_limit import enforce_rate_limit
from mediashelf.schemas.library import (
    AddToLibraryRequest,
    LibraryEntry,
    LibraryEntryUpdate,
    LibraryListResponse,
)
from mediashelf.services.library_service import (
    LibraryService,
    get_library_store,
    parse_status_filter,
)
from mediashelf.services.tmdb_gateway import TmdbGatewayService
from mediashelf.utils.composite_key import MediaKind, parse_composite_key

router = APIRouter(prefix="/library", tags=["Library"])

UserId = Annotated[str, Depends(require_user)]


def get_library_service() -> LibraryService:
    return LibraryService(get_library_store())


def parse_add_request(payload: AddToLibraryRequest) -> tuple[MediaKind, int]:
    return parse_composite_key(payload.tmdb_key)


def get_library_service_with_gateway(
    gateway: Annotated[TmdbGatewayService, Depends(get_gateway_service)],
) -> LibraryService:
    return LibraryService(get_library_store(), gateway)


@router.get("", response_model=LibraryListResponse)
def list_library(
    user_id: UserId,
    service: Annotated[LibraryService, Depends(get_library_service)],
    status_filter: Annotated[
        str | None,
        Query(alias="status", description="planned, watching, completed, dropped or all."),
    ] = None,
) -> LibraryListResponse:
    """List the caller's library, most recently updated first."""
    items = service.list_entries(user_id, parse_status_filter(status_filter))
    return LibraryListResponse(items=items, total=len(items))


@router.post("", response_model=LibraryEntry)
async def add_to_library(
    user_id: UserId,
    service: Annotated[LibraryService, Depends(get_library_service_with_gateway)],
    key: Annotated[tuple[MediaKind, int], Depends(parse_add_request)],
    _rate: Annotated[RateLimitResult | None, Depends(enforce_rate_limit)],
) -> LibraryEntry:
    """Add a title (fetched from TMDB) to the caller's library as planned.

    The key is validated before rate-limit admission, as on /title.
    """
    kind, external_id = key
    return await service.add_title(user_id, kind, external_id)


@router.get("/by-tmdb/{tmdb_key}", response_model=LibraryEntry)
def get_library_entry_by_tmdb(
    tmdb_key: str,
    user_id: UserId,
    service: Annotated[LibraryService, Depends(get_library_service)],
) -> LibraryEntry:
    return service.get_by_tmdb_key(user_id, tmdb_key)


@router.patch("/{entry_id}", response_model=LibraryEntry)
def update_library_entry(
    entry_id: str,
    update: LibraryEntryUpdate,
    user_id: UserId,
    service: Annotated[LibraryService, Depends(get_library_service)],
) -> LibraryEntry:
    """Update status, progress, rating or notes of one entry."""
    return service.update_entry(user_id, entry_id, update)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_library_entry(
    entry_id: str,
    user_id: UserId,
    service: Annotated[LibraryService, Depends(get_library_service)],
) -> Response:
    service.remove_entry(user_id, entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
