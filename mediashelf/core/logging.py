"""Structured logging for the Mediashelf API.

Every record leaves the process as one JSON object carrying the current
request id. Tokens, TMDB keys (including the ``api_key`` query parameter
that httpx prints inside request URLs) and personal notes are masked before
formatting. Output goes to stdout or to an optionally rotating file.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from mediashelf.core.config import LogSettings, settings

_current_request_id: ContextVar[str | None] = ContextVar("mediashelf_request_id", default=None)

REDACTED = "[REDACTED]"

# Structured fields whose values never reach the log output
SENSITIVE_KEYS_DEFAULT: set[str] = {
    "api_key",
    "x-api-key",
    "tmdb_api_key",
    "app_user_tokens",
    "authorization",
    "token",
    "secret",
    "password",
    "cookie",
    "set-cookie",
    "notes",
}

# TMDB authenticates with a query parameter, so URLs in messages carry it
_URL_SECRET_RE = re.compile(r"(?i)(api_key=)[^&\s\"']+")

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "stack",
}


def set_request_id(request_id: str | None) -> None:
    """Store the current request id in a context variable."""

    _current_request_id.set(request_id)


def get_request_id() -> str | None:
    """Fetch the current request id from context."""

    return _current_request_id.get()


def clear_request_id() -> None:
    _current_request_id.set(None)


def scrub_url_secrets(text: str) -> str:
    """Mask ``api_key=...`` query parameters inside free text.

    Args:
        text: Message or URL that may embed a TMDB key.

    Returns:
        The text with every api_key value replaced by "[REDACTED]".
    """

    return _URL_SECRET_RE.sub(rf"\g<1>{REDACTED}", text)


def _redact_value(value: Any, sensitive_keys: set[str]) -> Any:
    """Recursively redact sensitive values within mappings and sequences."""

    if isinstance(value, Mapping):
        return {
            k: REDACTED if str(k).lower() in sensitive_keys else _redact_value(v, sensitive_keys)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(_redact_value(v, sensitive_keys) for v in value)
    if isinstance(value, str):
        return scrub_url_secrets(value)
    return value


def _extract_extras(record: LogRecord, sensitive_keys: set[str]) -> dict[str, Any]:
    """Collect user-supplied extras from a record, redacted."""

    extras: dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _RESERVED_ATTRS or key.startswith("_"):
            continue
        if key.lower() in sensitive_keys:
            extras[key] = REDACTED
        else:
            extras[key] = _redact_value(value, sensitive_keys)
    return extras


class RequestIdFilter(logging.Filter):
    """Attach request_id from context when absent on the record."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Redact sensitive fields and URL-embedded keys before formatting."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive_keys = {k.lower() for k in (sensitive_keys or SENSITIVE_KEYS_DEFAULT)}

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        for key, value in _extract_extras(record, self.sensitive_keys).items():
            setattr(record, key, value)
        # Third-party loggers (httpx) format the request URL into the message
        if record.args:
            record.msg = scrub_url_secrets(record.getMessage())
            record.args = None
        elif isinstance(record.msg, str):
            record.msg = scrub_url_secrets(record.msg)
        return True


class JsonFormatter(logging.Formatter):
    """Format LogRecord as a single JSON object per line."""

    def __init__(
        self,
        *,
        sensitive_keys: Iterable[str] | None = None,
        ensure_ascii: bool = True,
    ) -> None:
        super().__init__()
        self.sensitive_keys = {k.lower() for k in (sensitive_keys or SENSITIVE_KEYS_DEFAULT)}
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": scrub_url_secrets(record.getMessage()),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            payload["request_id"] = request_id

        payload.update(_extract_extras(record, self.sensitive_keys))

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    """Construct the stdout or (rotating) file handler from settings."""

    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/mediashelf.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if log_settings.max_bytes:
        return RotatingFileHandler(
            file_path,
            maxBytes=log_settings.max_bytes,
            backupCount=log_settings.backup_count,
            encoding="utf-8",
        )
    return logging.FileHandler(file_path, encoding="utf-8")


def _build_formatter(fmt: str) -> logging.Formatter:
    if fmt.lower() == "plain":
        return logging.Formatter(
            "%(asctime)s %(levelname)s [%(request_id)s] %(name)s %(message)s",
            defaults={"request_id": "-"},
        )
    return JsonFormatter()


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install one redacting, request-correlated handler on the root logger.

    Args:
        log_settings: Logging section of the settings; the global one by default.

    ``APP_DEBUG`` forces DEBUG regardless of ``LOG_LEVEL``.
    """

    cfg = log_settings or settings.log
    level = logging.DEBUG if settings.app.debug else getattr(logging, cfg.level.upper(), logging.INFO)

    handler = _build_handler(cfg)
    for log_filter in (RequestIdFilter(), SensitiveDataFilter()):
        handler.addFilter(log_filter)
    handler.setFormatter(_build_formatter(cfg.format))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # httpx logs every request line at INFO, including the keyed URL
    logging.getLogger("httpx").setLevel(logging.WARNING)

    # uvicorn installs its own handlers; keep its records off the root handler
    for name in ("uvicorn", "uvicorn.access"):
        logging.getLogger(name).propagate = False
