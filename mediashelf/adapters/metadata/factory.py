"""Factory and FastAPI dependency for the metadata provider client."""

from __future__ import annotations

import logging

from mediashelf.adapters.metadata.base import AbstractMetadataClient
from mediashelf.adapters.metadata.tmdb_client import TmdbClient
from mediashelf.core.config import TmdbSettings, settings
from mediashelf.core.errors import ConfigurationAppError

logger = logging.getLogger(__name__)

MISSING_CREDENTIALS_MESSAGE = "TMDB API key not configured"

_client: AbstractMetadataClient | None = None
_client_config: tuple[str, str, str, float] | None = None


def create_metadata_client(tmdb_settings: TmdbSettings | None = None) -> AbstractMetadataClient:
    """Build a TMDB client from settings.

    Returns:
        AbstractMetadataClient: Configured client instance.

    Raises:
        ConfigurationAppError: If no TMDB API key is configured.
    """
    cfg = tmdb_settings or settings.tmdb
    if not cfg.api_key:
        raise ConfigurationAppError(
            code="tmdb_missing_api_key",
            message=MISSING_CREDENTIALS_MESSAGE,
            details={"hint": "Set the TMDB_API_KEY environment variable"},
        )

    return TmdbClient(
        cfg.api_key,
        base_url=cfg.base_url,
        language=cfg.language,
        timeout_seconds=cfg.timeout_seconds,
    )


def get_metadata_client() -> AbstractMetadataClient:
    """FastAPI dependency returning the shared metadata client.

    The client is cached in-module and rebuilt if the TMDB settings change
    (primarily in tests). A missing key is reported on every request.

    Raises:
        ConfigurationAppError: If no TMDB API key is configured (HTTP 500).
    """
    global _client, _client_config

    cfg = settings.tmdb
    config = (cfg.api_key or "", cfg.base_url, cfg.language, cfg.timeout_seconds)

    if _client is None or _client_config != config:
        _client = create_metadata_client(cfg)
        _client_config = config

    return _client


def check_metadata_configuration() -> bool:
    """Log, once at startup, whether the upstream credential is present."""
    if settings.tmdb.api_key:
        return True
    logger.error(
        "tmdb.missing_api_key",
        extra={"hint": "TMDB_API_KEY is not set; gateway routes will answer 500"},
    )
    return False


async def close_metadata_client() -> None:
    """Close the shared client's connection pool (app shutdown)."""
    global _client, _client_config
    if _client is not None:
        await _client.aclose()
    _client = None
    _client_config = None
