from __future__ import annotations

from mediashelf.api.routes.health import router as health_router
from mediashelf.api.routes.library import router as library_router
from mediashelf.api.routes.tmdb import router as tmdb_router

__all__ = ["health_router", "library_router", "tmdb_router"]
