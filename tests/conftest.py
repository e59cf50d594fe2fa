"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any ``mediashelf`` import so the global
settings object is built from them.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("TMDB_API_KEY", "test-tmdb-key")
os.environ.setdefault("APP_USER_TOKENS", "alice:alice-token,bob:bob-token")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")

from typing import Any

import pytest
from fastapi.testclient import TestClient

from mediashelf.adapters.metadata import factory as metadata_factory
from mediashelf.adapters.metadata.base import AbstractMetadataClient
from mediashelf.core import rate_limit as rate_limit_module
from mediashelf.main import app
from mediashelf.services import library_service as library_module


class FakeMetadataClient(AbstractMetadataClient):
    """Records upstream calls and answers with canned payloads."""

    def __init__(
        self,
        *,
        search_payload: dict[str, Any] | None = None,
        details_payload: dict[str, Any] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.search_payload = search_payload or {"results": [], "total_results": 0}
        self.details_payload = details_payload or {}
        self.error = error
        self.search_calls: list[tuple[str, str | None]] = []
        self.details_calls: list[tuple[str, int]] = []

    async def search(self, query, kind=None):
        self.search_calls.append((query, kind))
        if self.error:
            raise self.error
        return self.search_payload

    async def details(self, kind, external_id):
        self.details_calls.append((kind, external_id))
        if self.error:
            raise self.error
        return self.details_payload


@pytest.fixture(autouse=True)
def reset_process_state():
    """Drop module-level singletons so tests never share budget or data."""
    rate_limit_module._limiter = None
    rate_limit_module._limiter_config = None
    metadata_factory._client = None
    metadata_factory._client_config = None
    library_module._store = None
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def fake_tmdb() -> FakeMetadataClient:
    client = FakeMetadataClient()
    app.dependency_overrides[metadata_factory.get_metadata_client] = lambda: client
    return client


@pytest.fixture
def client() -> TestClient:
    """Create FastAPI test client."""
    return TestClient(app)
