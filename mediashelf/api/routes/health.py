from __future__ import annotations

from fastapi import APIRouter

from mediashelf.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check for load balancers and monitoring.

    Reports whether the upstream TMDB credential is configured so a
    misconfigured instance is visible without calling the gateway.
    """

    return {
        "status": "ok",
        "tmdb_configured": bool(settings.tmdb.api_key),
    }
