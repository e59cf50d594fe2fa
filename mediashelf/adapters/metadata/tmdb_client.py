"""TMDB v3 REST client adapter."""

import logging
from typing import Any

import httpx

from mediashelf.adapters.metadata.base import AbstractMetadataClient
from mediashelf.core.errors import UpstreamAppError
from mediashelf.utils.composite_key import MediaKind

logger = logging.getLogger(__name__)

UPSTREAM_FAILED_MESSAGE = "TMDB request failed"
UPSTREAM_TIMEOUT_MESSAGE = "TMDB request timed out"


class TmdbClient(AbstractMetadataClient):
    """Async client for the TMDB search and detail endpoints.

    Every call is bounded by an explicit timeout. Non-2xx answers, transport
    failures and unparseable bodies all surface as UpstreamAppError; nothing
    is retried.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.themoviedb.org/3",
        language: str = "en-US",
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the TMDB client.

        Args:
            api_key: TMDB v3 API key, sent as the ``api_key`` query parameter.
            base_url: REST API base URL.
            language: Language requested for titles and overviews.
            timeout_seconds: Connect/read/write/pool timeout in seconds.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._language = language
        self._timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    def _get_http_client(self) -> httpx.AsyncClient:
        # One pooled client per TmdbClient; closed by aclose() at shutdown
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
                headers={"Accept": "application/json"},
                follow_redirects=True,
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def search(self, query: str, kind: MediaKind | None = None) -> dict[str, Any]:
        path = f"/search/{kind}" if kind else "/search/multi"
        return await self._get(
            path,
            {
                "query": query,
                "include_adult": "false",
                "language": self._language,
                "page": "1",
            },
        )

    async def details(self, kind: MediaKind, external_id: int) -> dict[str, Any]:
        return await self._get(f"/{kind}/{external_id}", {"language": self._language})

    async def _get(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        query = {**params, "api_key": self._api_key}

        try:
            response = await self._get_http_client().get(path, params=query)
        except httpx.TimeoutException as exc:
            logger.warning("tmdb.request_timeout", extra={"upstream_path": path})
            raise UpstreamAppError(
                code="tmdb_timeout",
                message=UPSTREAM_TIMEOUT_MESSAGE,
                details={"http_status": 504, "upstream_path": path},
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "tmdb.request_error",
                extra={"upstream_path": path, "error_type": type(exc).__name__},
            )
            raise UpstreamAppError(
                code="tmdb_unreachable",
                message=UPSTREAM_FAILED_MESSAGE,
                details={"http_status": 502, "upstream_path": path},
            ) from exc

        if not response.is_success:
            logger.warning(
                "tmdb.request_failed",
                extra={"upstream_path": path, "upstream_status": response.status_code},
            )
            raise UpstreamAppError(
                code="tmdb_request_failed",
                message=UPSTREAM_FAILED_MESSAGE,
                details={"http_status": response.status_code, "upstream_path": path},
            )

        try:
            data = response.json() if response.content else None
        except ValueError as exc:
            raise UpstreamAppError(
                code="tmdb_invalid_payload",
                message=UPSTREAM_FAILED_MESSAGE,
                details={"http_status": 502, "upstream_path": path},
            ) from exc

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise UpstreamAppError(
                code="tmdb_invalid_payload",
                message=UPSTREAM_FAILED_MESSAGE,
                details={"http_status": 502, "upstream_path": path},
            )
        return data
