"""Unit tests for SearchResultCache and cache key derivation."""

from unittest.mock import AsyncMock, Mock

import pytest
from hypothesis import given, strategies as st

from marketsearch.api.schemas.search_schemas import SearchParameters
from marketsearch.application.search.result_cache import (
    SearchResultCache,
    canonical_json,
    search_cache_key,
    suggestions_cache_key,
    trending_cache_key,
)
from marketsearch.core.interfaces import ICacheService


@pytest.fixture
def failing_cache_service():
    """Cache service whose every call raises."""
    service = Mock(spec=ICacheService)
    service.get = AsyncMock(side_effect=ConnectionError("redis down"))
    service.set = AsyncMock(side_effect=ConnectionError("redis down"))
    service.clear = AsyncMock(side_effect=ConnectionError("redis down"))
    return service


class TestCacheKeys:

    def test_search_key_has_search_prefix(self):
        key = search_cache_key(SearchParameters(query="bike"))

        assert key.startswith("search:")
        assert len(key) == len("search:") + 64

    def test_different_parameters_give_different_keys(self):
        assert search_cache_key(SearchParameters(query="bike")) != search_cache_key(SearchParameters(query="car"))
        assert search_cache_key(SearchParameters(page=1)) != search_cache_key(SearchParameters(page=2))

    def test_filter_order_does_not_matter(self):
        first = SearchParameters(filters={"condition": "new", "bedrooms": 2, "featured": "true"})
        second = SearchParameters(filters={"featured": "true", "bedrooms": 2, "condition": "new"})

        assert search_cache_key(first) == search_cache_key(second)

    def test_tag_order_does_not_matter(self):
        first = SearchParameters(tags=["bike", "outdoor"])
        second = SearchParameters(tags="outdoor,bike")

        assert search_cache_key(first) == search_cache_key(second)

    def test_alias_and_field_names_give_same_key(self):
        by_alias = SearchParameters.model_validate({"priceMin": 10, "sortBy": "price"})
        by_name = SearchParameters(price_min=10, sort_by="price")

        assert search_cache_key(by_alias) == search_cache_key(by_name)

    def test_derived_keys(self):
        assert suggestions_cache_key("bik", 5) == "suggestions:bik:5"
        assert trending_cache_key(10) == "trending_searches:10"

    def test_canonical_json_is_compact_and_sorted(self):
        assert canonical_json({"b": 1, "a": {"d": 2, "c": 3}}) == '{"a":{"c":3,"d":2},"b":1}'


class TestCacheKeyProperties:
    """Property-based tests using Hypothesis."""

    @given(
        filters=st.dictionaries(
            keys=st.text(min_size=1, max_size=10),
            values=st.one_of(st.integers(), st.text(max_size=10), st.booleans()),
            max_size=6,
        )
    )
    def test_key_is_independent_of_filter_insertion_order(self, filters):
        """Property: equal parameter values map to the same key."""
        reversed_filters = dict(reversed(list(filters.items())))

        assert search_cache_key(SearchParameters(filters=filters)) == search_cache_key(
            SearchParameters(filters=reversed_filters)
        )


class TestSearchResultCache:

    async def test_round_trip_through_cache_service(self, mock_cache):
        cache = SearchResultCache(mock_cache)

        assert await cache.set("search:abc", {"total": 1}, ttl=300) is True
        assert await cache.get("search:abc") == {"total": 1}
        assert mock_cache.call_log[0] == ("set", "search:abc", {"total": 1}, 300)

    async def test_ttls_default_and_override(self):
        cache = SearchResultCache(None, {"search": 30})

        assert cache.ttl_for("search") == 30
        assert cache.ttl_for("suggestions") == 60
        assert cache.ttl_for("trending") == 3600

    async def test_without_cache_service(self):
        cache = SearchResultCache(None)

        assert await cache.get("search:abc") is None
        assert await cache.set("search:abc", {}, ttl=300) is False
        assert await cache.invalidate("search:*") == 0

    async def test_read_failure_is_a_miss(self, failing_cache_service):
        cache = SearchResultCache(failing_cache_service)

        assert await cache.get("search:abc") is None

    async def test_write_failure_is_skipped(self, failing_cache_service):
        cache = SearchResultCache(failing_cache_service)

        assert await cache.set("search:abc", {"total": 1}, ttl=300) is False

    async def test_invalidation_failure_is_skipped(self, failing_cache_service):
        cache = SearchResultCache(failing_cache_service)

        assert await cache.invalidate_searches() == 0

    async def test_invalidate_searches_keeps_other_entries(self, mock_cache):
        cache = SearchResultCache(mock_cache)
        await cache.set("search:abc", {}, ttl=300)
        await cache.set("search:facets:def", {}, ttl=300)
        await cache.set("suggestions:bik:5", [], ttl=60)
        await cache.set("trending_searches:10", [], ttl=3600)

        removed = await cache.invalidate_searches()

        assert removed == 2
        assert sorted(mock_cache.data) == ["suggestions:bik:5", "trending_searches:10"]
