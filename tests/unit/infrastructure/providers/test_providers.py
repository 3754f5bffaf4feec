"""Unit tests for the cache, index and search engine providers."""

from unittest.mock import AsyncMock, patch

import pytest

from marketsearch.application.search.search_engine import ListingSearchEngine
from marketsearch.core.config import Settings
from marketsearch.infrastructure.adapters.memory_cache_adapter import MemoryCacheService
from marketsearch.infrastructure.adapters.redis_cache_adapter import RedisCacheService
from marketsearch.infrastructure.providers import search_provider
from marketsearch.infrastructure.providers.cache_provider import create_cache_service
from marketsearch.infrastructure.providers.index_provider import create_listing_index
from marketsearch.infrastructure.providers.search_provider import get_search_engine, shutdown_search_engine


class TestCacheProvider:

    @pytest.mark.asyncio
    async def test_memory_cache_without_redis_url(self, settings):
        cache = await create_cache_service(settings)

        try:
            assert isinstance(cache, MemoryCacheService)
            assert cache.max_size == settings.MEMORY_CACHE_MAX_SIZE
        finally:
            await cache.close()

    @pytest.mark.asyncio
    async def test_redis_cache_with_redis_url(self):
        settings = Settings(_env_file=None, REDIS_URL="redis://cache:6379/0")
        redis_cache = RedisCacheService(redis_client=None)

        with patch.object(RedisCacheService, "create", AsyncMock(return_value=redis_cache)) as create:
            cache = await create_cache_service(settings)

        assert cache is redis_cache
        create.assert_awaited_once_with("redis://cache:6379/0")


class TestIndexProvider:

    @pytest.mark.asyncio
    async def test_index_from_settings(self, mock_index):
        settings = Settings(_env_file=None, ELASTICSEARCH_URL="http://es:9200", ELASTICSEARCH_INDEX="listings_v2")

        with patch(
            "marketsearch.infrastructure.providers.index_provider.ElasticsearchListingIndex.create",
            AsyncMock(return_value=mock_index),
        ) as create:
            index = await create_listing_index(settings)

        assert index is mock_index
        create.assert_awaited_once_with("http://es:9200", index_name="listings_v2", request_timeout=10.0)


class TestSearchProvider:

    @pytest.fixture
    def connect(self, search_engine):
        with patch.object(
            ListingSearchEngine, "connect", AsyncMock(return_value=search_engine)
        ) as connect, patch.object(search_provider, "configure_logging"):
            yield connect

    @pytest.mark.asyncio
    async def test_singleton(self, connect, search_engine):
        first = await get_search_engine()
        second = await get_search_engine()

        assert first is second is search_engine
        connect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_shutdown_closes_and_resets(self, connect, search_engine):
        await get_search_engine()

        await shutdown_search_engine()

        assert search_engine.closed is True
        await get_search_engine()
        assert connect.await_count == 2

    @pytest.mark.asyncio
    async def test_shutdown_without_engine(self):
        await shutdown_search_engine()
