"""Opaque-token identity for library routes.

Users present a per-user token in the ``X-API-Key`` header; tokens map to
user ids through the ``APP_USER_TOKENS`` setting (``"alice:tok1,bob:tok2"``).
The gateway routes stay public; only the per-user library needs identity.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Annotated

from fastapi import Header

from mediashelf.core.config import settings
from mediashelf.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)


def _token_hash(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()[:16]


def parse_user_tokens(tokens_string: str | None) -> dict[str, str]:
    """Parse ``user_id:token`` pairs into a token → user id mapping.

    Examples:
        >>> parse_user_tokens("alice:t1, bob:t2")
        {'t1': 'alice', 't2': 'bob'}
        >>> parse_user_tokens(None)
        {}

    Malformed pairs (no colon, empty user or token) are skipped.
    """
    if not tokens_string:
        return {}

    mapping: dict[str, str] = {}
    for pair in tokens_string.split(","):
        user_id, sep, token = pair.strip().partition(":")
        user_id, token = user_id.strip(), token.strip()
        if sep and user_id and token:
            mapping[token] = user_id
    return mapping


def resolve_user_id(provided_token: str | None) -> str:
    """Return the user id owning ``provided_token``.

    Raises:
        AuthenticationAppError: If no tokens are configured, the token is
            missing, or it matches no user.
    """
    if not provided_token:
        logger.warning("auth.missing_token")
        raise AuthenticationAppError(
            code="missing_token",
            message="Missing user token. Provide X-API-Key header.",
        )

    tokens = parse_user_tokens(settings.app.user_tokens)
    if not tokens:
        logger.error("auth.tokens_not_configured")
        raise AuthenticationAppError(
            code="tokens_not_configured",
            message="User authentication is not configured",
            details={"hint": "Set APP_USER_TOKENS to 'user_id:token' pairs"},
        )

    for token, user_id in tokens.items():
        if hmac.compare_digest(token, provided_token):
            return user_id

    logger.warning("auth.invalid_token", extra={"token_hash": _token_hash(provided_token)})
    raise AuthenticationAppError(code="invalid_token", message="Invalid user token")


async def require_user(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> str:
    """FastAPI dependency resolving the calling user's id.

    Raises:
        AuthenticationAppError: 403 when the token is missing or unknown.
    """
    user_id = resolve_user_id(x_api_key)
    logger.debug("auth.success", extra={"user_id": user_id})
    return user_id
