"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional so each error only carries what is relevant.
    """

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: int
    tmdb_key: str
    upstream_path: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message, returned verbatim to clients.
        details: Optional structured details for debugging/observability.
        headers: Optional response headers the HTTP layer must emit.
    """

    code: str
    message: str
    details: ErrorDetails | None = None
    headers: dict[str, str] | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when client input fails validation."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class NotFoundAppError(AppError):
    """Raised when a requested resource does not exist for the caller."""


class RateLimitAppError(AppError):
    """Raised when a client exceeds its request budget."""


class ConfigurationAppError(AppError):
    """Raised when the service is misconfigured (operator must fix)."""


class UpstreamAppError(AppError):
    """Raised when the metadata provider fails or answers non-2xx.

    ``details["http_status"]`` carries the status to pass through.
    """
