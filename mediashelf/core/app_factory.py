"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build isolated instances.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from mediashelf.adapters.metadata.factory import (
    check_metadata_configuration,
    close_metadata_client,
)
from mediashelf.api.routes import health_router, library_router, tmdb_router
from mediashelf.core.config import settings
from mediashelf.core.exception_handlers import setup_exception_handlers
from mediashelf.core.logging import configure_logging
from mediashelf.core.middleware import request_id_middleware
from mediashelf.core.openapi import apply_openapi_customizations

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Surface a missing upstream credential at boot, not only per request
    check_metadata_configuration()
    logger.info(
        "app.startup",
        extra={
            "app_env": settings.app_env,
            "rate_limit_enabled": settings.app.rate_limit_enabled,
            "rate_limit_requests": settings.app.rate_limit_requests,
            "rate_limit_window_s": settings.app.rate_limit_window_seconds,
        },
    )
    yield
    await close_metadata_client()
    logger.info("app.shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Mediashelf API",
        description=(
            "Personal media tracker backend. Proxies TMDB search and title "
            "detail behind a per-client rate limit, normalizing movies and "
            "series into one schema, and keeps a per-user library of titles "
            "with watch status, progress, rating and notes."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(tmdb_router)
    app.include_router(library_router)
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
