"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return consistent JSON responses with proper
HTTP status codes and traceability.

Design:
- AppError subclasses → mapped HTTP status (400, 403, 404, 429, 500, upstream)
- Unexpected Exception → generic 500 (safety net)
- Bodies always carry a top-level "error" message string plus code/request_id
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mediashelf.core.errors import (
    AppError,
    AuthenticationAppError,
    ConfigurationAppError,
    NotFoundAppError,
    RateLimitAppError,
    UpstreamAppError,
)
from mediashelf.core.logging import get_request_id

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (AuthenticationAppError, 403),
    (NotFoundAppError, 404),
    (RateLimitAppError, 429),
    (ConfigurationAppError, 500),
    (UpstreamAppError, 502),
)


def status_code_for(exc: AppError) -> int:
    """Resolve the HTTP status for a domain error.

    Upstream errors pass the provider's status through when one is known.
    Anything unmapped (ValidationAppError included) is a client error.
    """
    if isinstance(exc, UpstreamAppError):
        upstream_status = (exc.details or {}).get("http_status")
        if isinstance(upstream_status, int) and 400 <= upstream_status <= 599:
            return upstream_status

    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    All responses include:
    - error: Human-readable message
    - code: Machine-readable error code
    - request_id: For distributed tracing
    - details: Optional structured context

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the mapped status code and any headers the error carries.
    """
    status_code = status_code_for(exc)
    request_id = get_request_id()

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "request_path": request.url.path,
            "request_id": request_id,
        },
    )

    content: dict = {
        "error": exc.message,
        "code": exc.code,
        "request_id": request_id,
    }
    if exc.details:
        content["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content=content,
        headers=exc.headers,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic
    message, so no stack traces or internals reach the client.
    """
    logger.error(
        "unhandled_exception",
        exc_info=exc,
        extra={
            "error_type": type(exc).__name__,
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "An unexpected error occurred. Please try again later.",
            "code": "internal_server_error",
            "request_id": get_request_id(),
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
