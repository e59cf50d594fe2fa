"""Settings for the Mediashelf API, loaded with pydantic-settings.

Values come from real environment variables first, then from the optional
``.env.<APP_ENV>`` file at the project root (``.env.development`` when
APP_ENV is unset). Settings are grouped by env prefix: ``TMDB_`` for the
upstream provider, ``APP_`` for the service itself, ``LOG_`` for logging.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_ENV = os.getenv("APP_ENV", "development")

PROJECT_ROOT = Path(__file__).resolve().parents[2]

KNOWN_ENVIRONMENTS = ("development", "testing", "staging", "production")


def _resolve_env_file(app_env: str) -> Path | None:
    """Return the dotenv file for ``app_env`` if one exists on disk."""
    name = app_env if app_env in KNOWN_ENVIRONMENTS else "development"
    candidate = PROJECT_ROOT / f".env.{name}"
    return candidate if candidate.is_file() else None


_env_file = _resolve_env_file(APP_ENV)

# Nested settings groups ignore env_file, so the file is pushed into
# os.environ once; variables already set in the process are kept.
if _env_file is not None:
    load_dotenv(_env_file, override=False)


def _build_tmdb_settings() -> "TmdbSettings":
    # Fields are filled from the environment, not from constructor arguments
    return TmdbSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class TmdbSettings(BaseSettings):
    """Upstream metadata provider (TMDB) configuration.

    The API key is optional at load time so the service can boot and report
    the misconfiguration per request instead of refusing to start.
    """

    api_key: str | None = Field(
        None,
        description="TMDB v3 API key",
    )
    base_url: str = Field(
        "https://api.themoviedb.org/3",
        description="TMDB REST API base URL",
    )
    image_base_url: str = Field(
        "https://image.tmdb.org/t/p/w500",
        description="Image CDN prefix applied to poster/backdrop paths",
    )
    language: str = Field(
        "en-US",
        description="Language requested from TMDB",
    )
    timeout_seconds: float = Field(
        10.0,
        description="Outbound request timeout in seconds",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="TMDB_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    user_tokens: str | None = Field(
        None,
        description="Comma-separated 'user_id:token' pairs accepted for library access",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-client rate limiting on the TMDB gateway",
    )
    rate_limit_requests: int = Field(
        30,
        description="Maximum number of requests allowed per window (per client)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        60,
        description="Rate limit window size in seconds",
        ge=1,
    )
    rate_limit_max_tracked_keys: int = Field(
        10000,
        description="Tracked client count above which expired windows are swept",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log output: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        0,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Top-level settings object composed of the TMDB, app and log groups.

    Each group reads its own env prefix when the container is built.
    Raises validation errors on startup if a setting is malformed.
    """

    app_env: str = APP_ENV
    tmdb: TmdbSettings = Field(default_factory=_build_tmdb_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Imported everywhere as ``from mediashelf.core.config import settings``.
settings = Settings()
