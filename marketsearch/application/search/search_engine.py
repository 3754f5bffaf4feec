"""
Listing Search Engine

Orchestrates the public search operations over the listing index:
- Primary search: cache lookup, query/sort/facet assembly, execution,
  result shaping and cache store
- Autocomplete suggestions, similar listings and trending terms
- Facet sidebar aggregations, facet suggestions and filter recommendations
- Index writes (index/update/delete) followed by search cache invalidation
- Connection lifecycle

Failure policy differs by path: a failed primary search raises
SearchUnavailableError, while suggestions, similar listings and trending
terms degrade to an empty result. Write failures always propagate and leave
the cache untouched.
"""

from __future__ import annotations

import copy
import hashlib
import time
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Union

import structlog
from pydantic import ValidationError

from marketsearch.api.schemas.search_schemas import (
    ListingHit,
    SearchParameters,
    SearchResult,
    Suggestion,
    TrendingTerm,
)
from marketsearch.application.search.facet_builder import FacetBuilder, HistoryEntry
from marketsearch.application.search.filter_sanitizer import FilterSanitizer
from marketsearch.application.search.query_builder import ACTIVE_STATUS, QueryBuilder
from marketsearch.application.search.result_cache import (
    SEARCH_PREFIX,
    SearchResultCache,
    canonical_json,
    search_cache_key,
    suggestions_cache_key,
    trending_cache_key,
)
from marketsearch.application.search.sort_builder import SortBuilder, describe_sort
from marketsearch.core.config import Settings, get_settings
from marketsearch.core.interfaces import ICacheService, IListingIndex
from marketsearch.domain.entities.facet import FacetSuggestions, FilterRecommendation
from marketsearch.domain.entities.listing import IndexHit, ListingDocument
from marketsearch.domain.exceptions import IndexWriteError, SearchUnavailableError
from marketsearch.domain.filter_spec import LISTING_FILTER_SPEC, FilterSpec

logger = structlog.get_logger(__name__)

SUGGEST_FIELD = "title.suggest"
HIGHLIGHT_FIELDS = ("title", "description")
SIMILARITY_FIELDS = ["title", "description", "category", "tags"]

# Fields excluded from cached results; recomputed from total and limit
_DERIVED_RESULT_FIELDS = {"total_pages", "has_next_page", "has_prev_page"}


class ListingSearchEngine:
    """
    Search orchestrator for marketplace listings.

    The index and cache clients are long-lived and shared by all requests;
    requests hold no locks, so concurrent identical misses may each query
    the index and populate the cache.
    """

    def __init__(
        self,
        index: IListingIndex,
        cache_service: Optional[ICacheService] = None,
        settings: Optional[Settings] = None,
        filter_spec: FilterSpec = LISTING_FILTER_SPEC
    ):
        self.settings = settings or get_settings()
        self.index = index
        self.cache_service = cache_service

        self.filter_sanitizer = FilterSanitizer(filter_spec)
        self.query_builder = QueryBuilder(self.filter_sanitizer)
        self.sort_builder = SortBuilder()
        self.facet_builder = FacetBuilder()
        self.result_cache = SearchResultCache(cache_service, self.settings.get_cache_ttls())

        self._closed = False
        self._search_stats = {
            "total_searches": 0,
            "cached_searches": 0,
            "failed_searches": 0,
            "index_writes": 0,
            "average_search_time_ms": 0.0
        }

    @classmethod
    async def connect(cls, settings: Optional[Settings] = None) -> "ListingSearchEngine":
        """Open the cache and index connections described by settings."""
        # Imported here so the application layer does not pull in client libraries
        from marketsearch.infrastructure.providers.cache_provider import create_cache_service
        from marketsearch.infrastructure.providers.index_provider import create_listing_index

        settings = settings or get_settings()
        cache_service = await create_cache_service(settings)

        try:
            index = await create_listing_index(settings)
        except Exception:
            await cache_service.close()
            raise

        logger.info(
            "Search engine connected",
            index=settings.ELASTICSEARCH_INDEX,
            cache=type(cache_service).__name__
        )
        return cls(index=index, cache_service=cache_service, settings=settings)

    async def __aenter__(self) -> "ListingSearchEngine":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Primary search
    # ------------------------------------------------------------------

    async def search(self, params: SearchParameters) -> SearchResult:
        """
        Execute a listing search.

        Args:
            params: Search parameters from the routing layer

        Returns:
            Ranked, paginated and faceted result

        Raises:
            SearchUnavailableError: the index could not answer
        """
        search_start_time = time.perf_counter()
        params = self._with_defaults(params)
        cache_key = search_cache_key(params)

        cached = await self._get_cached_result(cache_key)
        if cached is not None:
            self._search_stats["cached_searches"] += 1
            self._update_search_stats((time.perf_counter() - search_start_time) * 1000)
            logger.debug("Returning cached search results", cache_key=cache_key)
            return cached

        body = self.build_search_request(params)

        try:
            response = await self.index.search(body)
        except Exception as e:
            self._search_stats["failed_searches"] += 1
            logger.error(
                "Search execution failed",
                error=str(e),
                query=params.query[:100],
                duration_ms=(time.perf_counter() - search_start_time) * 1000
            )
            raise SearchUnavailableError() from e

        result = SearchResult(
            listings=[self._to_listing_hit(hit) for hit in response.hits],
            total=response.total,
            aggregations=response.aggregations,
            page=params.page,
            limit=params.limit
        )

        await self.result_cache.set(
            cache_key,
            result.model_dump(mode="json", exclude=_DERIVED_RESULT_FIELDS),
            ttl=self.result_cache.ttl_for("search")
        )

        search_duration = (time.perf_counter() - search_start_time) * 1000
        self._update_search_stats(search_duration)

        logger.info(
            "Search completed",
            total=result.total,
            returned=len(result.listings),
            page=result.page,
            sort=describe_sort(body["sort"]),
            duration_ms=round(search_duration, 2)
        )

        return result

    def build_search_request(self, params: SearchParameters) -> Dict[str, Any]:
        """Assemble the index request body for a primary search."""
        params = self._with_defaults(params)
        sanitized_filters = self.filter_sanitizer.sanitize(params.filters)

        return {
            "query": self._build_query(params, sanitized_filters),
            "sort": self.sort_builder.build(params.sort_by, params.sort_order),
            "from": params.offset,
            "size": params.limit,
            "highlight": {
                "fields": {field: {} for field in HIGHLIGHT_FIELDS}
            },
            "aggs": self.facet_builder.build_search_aggregations()
        }

    def _with_defaults(self, params: SearchParameters) -> SearchParameters:
        """Fill page size and radius from settings when the caller left them unset."""
        updates: Dict[str, Any] = {}
        if "limit" not in params.model_fields_set and params.limit != self.settings.DEFAULT_PAGE_SIZE:
            updates["limit"] = self.settings.DEFAULT_PAGE_SIZE
        if "radius" not in params.model_fields_set and params.radius != self.settings.DEFAULT_SEARCH_RADIUS_KM:
            updates["radius"] = self.settings.DEFAULT_SEARCH_RADIUS_KM
        return params.model_copy(update=updates) if updates else params

    def _build_query(self, params: SearchParameters, sanitized_filters: Mapping[str, Any]) -> Dict[str, Any]:
        return self.query_builder.build(
            text=params.query,
            category=params.category,
            price_min=params.price_min,
            price_max=params.price_max,
            location=params.location,
            radius=params.radius,
            tags=params.tags,
            sanitized_filters=sanitized_filters
        )

    async def _get_cached_result(self, cache_key: str) -> Optional[SearchResult]:
        cached = await self.result_cache.get(cache_key)
        if cached is None:
            return None

        try:
            return SearchResult.model_validate(cached)
        except ValidationError as e:
            logger.warning("Discarding malformed cached search result", cache_key=cache_key, error=str(e))
            return None

    # ------------------------------------------------------------------
    # Derived read paths
    # ------------------------------------------------------------------

    async def get_suggestions(self, query: str, limit: int = 10) -> List[Suggestion]:
        """Autocomplete options for a title prefix; empty on backend failure."""
        cache_key = suggestions_cache_key(query, limit)

        cached = await self.result_cache.get(cache_key)
        if cached is not None:
            try:
                return [Suggestion.model_validate(item) for item in cached]
            except (ValidationError, TypeError) as e:
                logger.warning("Discarding malformed cached suggestions", cache_key=cache_key, error=str(e))

        try:
            options = await self.index.suggest(query, SUGGEST_FIELD, limit)
        except Exception as e:
            logger.error("Suggestions error", query=query, error=str(e))
            return []

        suggestions = [Suggestion(text=option.text, score=option.score) for option in options]

        await self.result_cache.set(
            cache_key,
            [suggestion.model_dump(mode="json") for suggestion in suggestions],
            ttl=self.result_cache.ttl_for("suggestions")
        )
        return suggestions

    async def get_similar_listings(self, listing_id: str, limit: int = 5) -> List[ListingHit]:
        """Listings resembling the given one; empty when it is missing or on backend failure."""
        try:
            listing = await self.index.get(listing_id)
            if listing is None:
                logger.info("Similar listings requested for unknown listing", listing_id=listing_id)
                return []

            response = await self.index.more_like_this(
                listing_id,
                fields=list(SIMILARITY_FIELDS),
                size=limit,
                min_term_freq=1,
                max_query_terms=12
            )
        except Exception as e:
            logger.error("Similar listings error", listing_id=listing_id, error=str(e))
            return []

        return [self._to_listing_hit(hit, include_highlights=False) for hit in response.hits]

    async def get_trending_searches(self, limit: int = 10) -> List[TrendingTerm]:
        """Most populated categories among active listings; empty on backend failure."""
        cache_key = trending_cache_key(limit)

        cached = await self.result_cache.get(cache_key)
        if cached is not None:
            try:
                return [TrendingTerm.model_validate(item) for item in cached]
            except (ValidationError, TypeError) as e:
                logger.warning("Discarding malformed cached trending terms", cache_key=cache_key, error=str(e))

        try:
            response = await self.index.search({
                "size": 0,
                "query": {"term": {"status": ACTIVE_STATUS}},
                "aggs": {
                    "trending_categories": {
                        "terms": {"field": "category", "size": limit}
                    }
                }
            })

            buckets = (response.aggregations.get("trending_categories") or {}).get("buckets") or []
            trending = [
                TrendingTerm(term=str(bucket["key"]), count=bucket.get("doc_count") or 0)
                for bucket in buckets
                if isinstance(bucket, dict) and bucket.get("key") is not None
            ]
        except Exception as e:
            logger.error("Trending searches error", error=str(e))
            return []

        await self.result_cache.set(
            cache_key,
            [term.model_dump(mode="json") for term in trending],
            ttl=self.result_cache.ttl_for("trending")
        )
        return trending

    async def get_facets(self, params: SearchParameters) -> Dict[str, Any]:
        """
        Filter sidebar aggregations for the listings matching params.

        Cached under the search prefix so index writes invalidate it.

        Raises:
            SearchUnavailableError: the index could not answer
        """
        params = self._with_defaults(params)
        sanitized_filters = self.filter_sanitizer.sanitize(params.filters)
        query = self._build_query(params, sanitized_filters)
        request_hash = hashlib.sha256(canonical_json(query).encode()).hexdigest()
        cache_key = f"{SEARCH_PREFIX}:facets:{request_hash}"

        cached = await self.result_cache.get(cache_key)
        if isinstance(cached, dict):
            return copy.deepcopy(cached)

        try:
            response = await self.index.search({
                "query": query,
                "size": 0,
                "aggs": self.facet_builder.build_facet_aggregations()
            })
        except Exception as e:
            logger.error("Facet aggregation failed", error=str(e))
            raise SearchUnavailableError() from e

        await self.result_cache.set(cache_key, response.aggregations, ttl=self.result_cache.ttl_for("search"))
        return copy.deepcopy(response.aggregations)

    def suggest_facets(self, params: SearchParameters, result: SearchResult) -> FacetSuggestions:
        current_filters = {**params.filters, "category": params.category or None}
        return self.facet_builder.suggest_facets(current_filters, result.aggregations)

    def recommend_filters(
        self,
        user_history: Sequence[HistoryEntry],
        current_search: Optional[SearchParameters] = None
    ) -> List[FilterRecommendation]:
        return self.facet_builder.recommend(user_history, current_search)

    def validate_filters(self, raw_filters: Mapping[str, Any]) -> List[str]:
        """Cross-field filter problems; the caller decides whether to block."""
        return self.filter_sanitizer.validate_combinations(raw_filters)

    # ------------------------------------------------------------------
    # Index writes
    # ------------------------------------------------------------------

    async def index_listing(self, listing: Union[ListingDocument, Mapping[str, Any]]) -> None:
        """Create or replace a listing document, then invalidate cached searches."""
        if isinstance(listing, ListingDocument):
            listing_id, document = listing.id, listing.to_index_document()
        else:
            listing_id = str(listing["id"])
            document = {key: value for key, value in listing.items() if key != "id"}

        await self._write("index", listing_id, lambda: self.index.index(listing_id, document))

    async def update_listing(self, listing_id: str, updates: Mapping[str, Any]) -> None:
        """Merge a partial document into a listing, then invalidate cached searches."""
        await self._write("update", listing_id, lambda: self.index.update(listing_id, dict(updates)))

    async def delete_listing(self, listing_id: str) -> None:
        """Remove a listing from the index, then invalidate cached searches."""
        await self._write("delete", listing_id, lambda: self.index.delete(listing_id))

    async def _write(
        self,
        operation: str,
        listing_id: str,
        write: Callable[[], Awaitable[None]]
    ) -> None:
        try:
            await write()
        except IndexWriteError as e:
            logger.error("Index write failed", operation=operation, listing_id=listing_id, error=str(e))
            raise
        except Exception as e:
            logger.error("Index write failed", operation=operation, listing_id=listing_id, error=str(e))
            raise IndexWriteError(operation, listing_id, str(e)) from e

        self._search_stats["index_writes"] += 1
        logger.info("Listing written", operation=operation, listing_id=listing_id)
        await self.clear_search_cache()

    async def clear_search_cache(self) -> int:
        """Drop every cached primary search; returns the number of entries removed."""
        return await self.result_cache.invalidate_searches()

    # ------------------------------------------------------------------
    # Health, stats and lifecycle
    # ------------------------------------------------------------------

    async def check_health(self) -> Dict[str, Any]:
        index_health = await self.index.check_health()
        cache_health = await self.cache_service.check_health() if self.cache_service else {"status": "disabled"}

        return {
            "status": "healthy" if index_health.get("status") == "healthy" else "degraded",
            "service": "ListingSearchEngine",
            "index": index_health,
            "cache": cache_health,
            "stats": self.get_stats()
        }

    def get_stats(self) -> Dict[str, Any]:
        return self._search_stats.copy()

    def _update_search_stats(self, duration_ms: float) -> None:
        self._search_stats["total_searches"] += 1
        count = self._search_stats["total_searches"]
        current_avg = self._search_stats["average_search_time_ms"]
        self._search_stats["average_search_time_ms"] = current_avg + (duration_ms - current_avg) / count

    async def close(self) -> None:
        """Release the cache, then the index connection. Safe to call twice."""
        if self._closed:
            return
        self._closed = True

        if self.cache_service is not None:
            try:
                await self.cache_service.close()
            except Exception as e:
                logger.error("Error closing cache", error=str(e))

        try:
            await self.index.close()
        except Exception as e:
            logger.error("Error closing index", error=str(e))

        logger.info("Search engine closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def _to_listing_hit(self, hit: IndexHit, include_highlights: bool = True) -> ListingHit:
        data: Dict[str, Any] = dict(hit.source)
        data.update({
            "id": hit.id,
            "score": hit.score,
            "highlights": hit.highlight if include_highlights else None
        })
        return ListingHit.model_validate(data)
