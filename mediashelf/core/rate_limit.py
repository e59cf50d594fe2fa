"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Swap-friendly: storage backend can be replaced (e.g., Redis) behind an
  abstract interface.
- Observable: every admitted or throttled response carries the caller's
  current limit/remaining/reset headers.

Rate limiting strategy:
- Fixed window per client network address, shared by all gateway routes.
- Falls back to the first X-Forwarded-For entry, then to "unknown".
"""

from __future__ import annotations

import hashlib
import logging

from fastapi import Request, Response

from mediashelf.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from mediashelf.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from mediashelf.core.config import settings
from mediashelf.core.errors import RateLimitAppError

logger = logging.getLogger(__name__)


_limiter: AbstractRateLimiter | None = None
_limiter_config: tuple[int, int, int] | None = None


def get_rate_limiter() -> AbstractRateLimiter:
    """Return the process-wide rate limiter instance.

    The instance is cached in-module to preserve state across requests.
    If configuration changes (primarily in tests), the limiter is rebuilt.
    """

    global _limiter, _limiter_config

    config = (
        settings.app.rate_limit_requests,
        settings.app.rate_limit_window_seconds,
        settings.app.rate_limit_max_tracked_keys,
    )

    if _limiter is None or _limiter_config != config:
        _limiter = InMemoryFixedWindowRateLimiter(
            limit=settings.app.rate_limit_requests,
            window_seconds=settings.app.rate_limit_window_seconds,
            max_tracked_keys=settings.app.rate_limit_max_tracked_keys,
        )
        _limiter_config = config

    return _limiter


def build_client_key(request: Request) -> str:
    """Derive the limiter key for the current request.

    Args:
        request: FastAPI request.

    Returns:
        str: Namespaced limiter key.
    """

    if request.client and request.client.host:
        return f"ip:{request.client.host}"

    forwarded_for = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded_for.split(",")[0].strip()
    if first_hop:
        return f"ip:{first_hop}"

    return "ip:unknown"


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Observability headers describing the caller's current window."""

    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_at_ms),
    }


async def enforce_rate_limit(request: Request, response: Response) -> RateLimitResult | None:
    """FastAPI dependency enforcing the gateway rate limit.

    Consumes one unit from the caller's budget. Admitted requests get the
    X-RateLimit-* headers on their response; denied requests raise.

    Args:
        request: FastAPI request.
        response: Response whose headers are merged into the final reply.

    Returns:
        The admission result, or None when rate limiting is disabled.

    Raises:
        RateLimitAppError: 429 Too Many Requests when the budget is spent.
    """

    if not settings.app.rate_limit_enabled:
        return None

    limiter = get_rate_limiter()
    key = build_client_key(request)
    result = limiter.consume(key)

    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "key_hash": _hash_limiter_key(key),
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        response.headers.update(rate_limit_headers(result))
        return result

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": _hash_limiter_key(key),
            "limit": result.limit,
            "reset_at_ms": result.reset_at_ms,
            "retry_after_s": retry_after,
            "route": request.url.path,
        },
    )

    headers = {"Retry-After": str(retry_after), **rate_limit_headers(result)}
    raise RateLimitAppError(
        code="rate_limited",
        message="Too many requests",
        details={"retry_after": retry_after},
        headers=headers,
    )
