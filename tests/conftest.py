"""Shared pytest fixtures for the search service."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest

from marketsearch.application.search.search_engine import ListingSearchEngine
from marketsearch.core.config import Settings, get_settings
from marketsearch.infrastructure.providers.search_provider import shutdown_search_engine
from tests.mocks.mock_services import MockCacheService, MockListingIndex


@pytest.fixture(autouse=True)
async def reset_provider_state() -> AsyncIterator[None]:
    """Ensure each test starts with a clean search engine singleton."""
    get_settings.cache_clear()
    await shutdown_search_engine()
    yield
    await shutdown_search_engine()
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults only (no .env, no Redis)."""
    return Settings(_env_file=None, REDIS_URL=None)


@pytest.fixture
def mock_cache() -> MockCacheService:
    return MockCacheService()


@pytest.fixture
def mock_index() -> MockListingIndex:
    return MockListingIndex()


@pytest.fixture
def search_engine(mock_index, mock_cache, settings) -> ListingSearchEngine:
    """Search engine wired to in-memory index and cache mocks."""
    return ListingSearchEngine(index=mock_index, cache_service=mock_cache, settings=settings)
