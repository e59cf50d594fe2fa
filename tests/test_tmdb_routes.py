"""Tests for the TMDB gateway routes (search and title detail).

The upstream provider is replaced with ``FakeMetadataClient`` through
FastAPI dependency overrides, so no network traffic happens.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from mediashelf.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from mediashelf.core import rate_limit as rate_limit_module
from mediashelf.core.config import settings
from mediashelf.core.errors import UpstreamAppError

RATE_HEADERS = ("X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset")

DUNE_SEARCH = {
    "page": 1,
    "total_results": 57,
    "results": [
        {
            "id": 438631,
            "media_type": "movie",
            "title": "Dune",
            "release_date": "2021-10-22",
            "poster_path": "/abc.jpg",
            "backdrop_path": "/bd.jpg",
            "vote_average": 7.8,
        },
        {"id": 90228, "media_type": "tv", "name": "Dune: Prophecy", "first_air_date": "2024-11-17"},
        {"id": 1, "media_type": "person", "name": "Frank Herbert"},
    ],
}


@pytest.fixture
def fixed_limiter(monkeypatch: pytest.MonkeyPatch):
    """Install a deterministic limiter with a small budget."""

    def _install(limit: int, clock=lambda: 1000.0) -> InMemoryFixedWindowRateLimiter:
        limiter = InMemoryFixedWindowRateLimiter(limit=limit, window_seconds=60, clock=clock)
        monkeypatch.setattr(rate_limit_module, "get_rate_limiter", lambda: limiter)
        return limiter

    return _install


class TestSearchEndpoint:
    def test_search_returns_normalized_results(self, client: TestClient, fake_tmdb) -> None:
        fake_tmdb.search_payload = DUNE_SEARCH

        response = client.get("/search", params={"q": "  dune  "})

        assert response.status_code == 200
        body = response.json()
        assert body["totalResults"] == 57
        assert [r["tmdbKey"] for r in body["results"]] == ["movie-438631", "tv-90228"]
        first = body["results"][0]
        assert first == {
            "id": 438631,
            "type": "movie",
            "title": "Dune",
            "year": "2021",
            "poster": "https://image.tmdb.org/t/p/w500/abc.jpg",
            "backdrop": "https://image.tmdb.org/t/p/w500/bd.jpg",
            "rating": 7.8,
            "tmdbKey": "movie-438631",
        }
        assert fake_tmdb.search_calls == [("dune", None)]

    def test_total_results_falls_back_to_result_count(self, client: TestClient, fake_tmdb) -> None:
        fake_tmdb.search_payload = {"results": DUNE_SEARCH["results"]}

        response = client.get("/search", params={"q": "dune"})

        assert response.json()["totalResults"] == 2

    @pytest.mark.parametrize(
        ("type_param", "expected_kind"),
        [("movie", "movie"), ("tv", "tv"), ("series", "tv"), ("anime", None), ("", None)],
    )
    def test_type_parameter_selects_kind(
        self, client: TestClient, fake_tmdb, type_param: str, expected_kind
    ) -> None:
        response = client.get("/search", params={"q": "dune", "type": type_param})

        assert response.status_code == 200
        assert fake_tmdb.search_calls == [("dune", expected_kind)]

    def test_requested_kind_fills_missing_media_type(self, client: TestClient, fake_tmdb) -> None:
        fake_tmdb.search_payload = {
            "results": [{"id": 1399, "name": "Game of Thrones", "first_air_date": "2011-04-17"}],
            "total_results": 1,
        }

        body = client.get("/search", params={"q": "thrones", "type": "series"}).json()

        assert body["results"][0]["type"] == "tv"
        assert body["results"][0]["title"] == "Game of Thrones"

    @pytest.mark.parametrize("params", [{}, {"q": ""}, {"q": "a"}, {"q": "  b  "}, {"q": "   "}])
    def test_short_query_is_rejected_without_upstream_call(
        self, client: TestClient, fake_tmdb, params: dict
    ) -> None:
        response = client.get("/search", params=params)

        assert response.status_code == 400
        assert response.json()["error"] == "Query must be at least 2 characters"
        assert fake_tmdb.search_calls == []

    def test_short_query_does_not_consume_budget(self, client: TestClient, fake_tmdb, fixed_limiter) -> None:
        fixed_limiter(1)

        assert client.get("/search", params={"q": "x"}).status_code == 400
        assert client.get("/search", params={"q": "dune"}).status_code == 200

    def test_missing_api_key_is_server_error(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings.tmdb, "api_key", None)

        response = client.get("/search", params={"q": "dune"})

        assert response.status_code == 500
        assert response.json()["error"] == "TMDB API key not configured"

    @pytest.mark.parametrize("status_code", [401, 404, 503])
    def test_upstream_status_is_passed_through(self, client: TestClient, fake_tmdb, status_code: int) -> None:
        fake_tmdb.error = UpstreamAppError(
            code="tmdb_request_failed",
            message="TMDB request failed",
            details={"http_status": status_code},
        )

        response = client.get("/search", params={"q": "dune"})

        assert response.status_code == status_code
        assert response.json()["error"] == "TMDB request failed"

    def test_success_carries_rate_limit_headers(self, client: TestClient, fake_tmdb) -> None:
        response = client.get("/search", params={"q": "dune"})

        assert response.headers["X-RateLimit-Limit"] == str(settings.app.rate_limit_requests)
        assert response.headers["X-RateLimit-Remaining"] == str(settings.app.rate_limit_requests - 1)
        assert int(response.headers["X-RateLimit-Reset"]) > 0


class TestRateLimiting:
    def test_thirty_first_request_is_throttled(self, client: TestClient, fake_tmdb, fixed_limiter) -> None:
        fixed_limiter(30)

        for i in range(30):
            response = client.get("/search", params={"q": "dune"})
            assert response.status_code == 200
            assert response.headers["X-RateLimit-Remaining"] == str(29 - i)

        blocked = client.get("/search", params={"q": "dune"})

        assert blocked.status_code == 429
        assert blocked.json()["error"] == "Too many requests"
        assert blocked.headers["Retry-After"] == "60"
        assert blocked.headers["X-RateLimit-Limit"] == "30"
        assert blocked.headers["X-RateLimit-Remaining"] == "0"
        assert blocked.headers["X-RateLimit-Reset"] == "1060000"
        assert len(fake_tmdb.search_calls) == 30

    def test_budget_is_shared_between_search_and_detail(
        self, client: TestClient, fake_tmdb, fixed_limiter
    ) -> None:
        fixed_limiter(2)
        fake_tmdb.details_payload = {"id": 1, "title": "A"}

        assert client.get("/search", params={"q": "dune"}).status_code == 200
        assert client.get("/title/movie-1").status_code == 200
        assert client.get("/title/movie-1").status_code == 429
        assert fake_tmdb.details_calls == [("movie", 1)]

    def test_window_reset_restores_budget(self, client: TestClient, fake_tmdb, fixed_limiter) -> None:
        now = [1000.0]
        fixed_limiter(1, clock=lambda: now[0])

        assert client.get("/search", params={"q": "dune"}).status_code == 200
        assert client.get("/search", params={"q": "dune"}).status_code == 429

        now[0] = 1061.0
        response = client.get("/search", params={"q": "dune"})
        assert response.status_code == 200
        assert response.headers["X-RateLimit-Remaining"] == "0"

    def test_disabled_rate_limit_emits_no_headers(
        self, client: TestClient, fake_tmdb, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_enabled", False)

        response = client.get("/search", params={"q": "dune"})

        assert response.status_code == 200
        for header in RATE_HEADERS:
            assert header not in response.headers

    def test_forwarded_for_used_when_client_address_missing(self) -> None:
        request = type(
            "FakeRequest",
            (),
            {"client": None, "headers": {"x-forwarded-for": "203.0.113.9, 10.0.0.1"}},
        )()

        assert rate_limit_module.build_client_key(request) == "ip:203.0.113.9"

    def test_unknown_client_fallback(self) -> None:
        request = type("FakeRequest", (), {"client": None, "headers": {}})()

        assert rate_limit_module.build_client_key(request) == "ip:unknown"


class TestTitleEndpoint:
    def test_movie_detail(self, client: TestClient, fake_tmdb) -> None:
        fake_tmdb.details_payload = {
            "id": 438631,
            "title": "Dune",
            "release_date": "2021-09-15",
            "runtime": 155,
            "genres": [{"id": 878, "name": "Science Fiction"}],
            "overview": "Spice.",
            "vote_average": 7.8,
        }

        response = client.get("/title/movie-438631")

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == 438631
        assert body["type"] == "movie"
        assert body["runtime"] == 155
        assert body["genres"] == ["Science Fiction"]
        assert body["seasons"] is None
        assert body["episodes"] is None
        assert body["raw"]["overview"] == "Spice."
        assert fake_tmdb.details_calls == [("movie", 438631)]
        for header in RATE_HEADERS:
            assert header in response.headers

    def test_series_detail(self, client: TestClient, fake_tmdb) -> None:
        fake_tmdb.details_payload = {
            "id": 1399,
            "name": "Game of Thrones",
            "first_air_date": "2011-04-17",
            "episode_run_time": [],
            "number_of_seasons": 8,
            "number_of_episodes": 73,
        }

        body = client.get("/title/tv-1399").json()

        assert body["title"] == "Game of Thrones"
        assert body["runtime"] is None
        assert body["seasons"] == 8
        assert body["episodes"] == 73

    @pytest.mark.parametrize(
        ("key", "message"),
        [
            ("movie-abc", "Invalid tmdb id"),
            ("movie-0", "Invalid tmdb id"),
            ("series-12", "tmdbKey must be formatted as 'movie-123' or 'tv-123'"),
            ("movie-1-2", "tmdbKey must be formatted as 'movie-123' or 'tv-123'"),
            ("movie", "tmdbKey must be formatted as 'movie-123' or 'tv-123'"),
            ("%20", "Missing tmdbKey"),
        ],
    )
    def test_invalid_keys_never_reach_upstream(
        self, client: TestClient, fake_tmdb, key: str, message: str
    ) -> None:
        response = client.get(f"/title/{key}")

        assert response.status_code == 400
        assert response.json()["error"] == message
        assert fake_tmdb.details_calls == []

    def test_upstream_not_found_is_passed_through(self, client: TestClient, fake_tmdb) -> None:
        fake_tmdb.error = UpstreamAppError(
            code="tmdb_request_failed",
            message="TMDB request failed",
            details={"http_status": 404},
        )

        response = client.get("/title/tv-999999999")

        assert response.status_code == 404
        assert response.json()["error"] == "TMDB request failed"

    def test_missing_api_key_is_server_error(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings.tmdb, "api_key", None)

        response = client.get("/title/movie-1")

        assert response.status_code == 500
        assert response.json()["error"] == "TMDB API key not configured"

    def test_end_to_end_with_real_client(self, client: TestClient) -> None:
        """Route → TmdbClient → mock transport, without dependency overrides."""
        import httpx

        from mediashelf.adapters.metadata.tmdb_client import TmdbClient

        def _handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith("/movie/550")
            return httpx.Response(200, json={"id": 550, "title": "Fight Club", "runtime": 139})

        real = TmdbClient("k", transport=httpx.MockTransport(_handler))
        with patch("mediashelf.adapters.metadata.factory.create_metadata_client", return_value=real):
            response = client.get("/title/movie-550")

        assert response.status_code == 200
        assert response.json()["title"] == "Fight Club"
