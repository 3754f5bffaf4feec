"""
Result Cache

Read-through cache in front of the listing index. Keys are derived from the
request so that equal parameter values always map to the same entry; values
are JSON-compatible payloads stored with a TTL.

The cache is advisory: every backend failure is logged and treated as a miss
or a no-op, so an unavailable cache never fails a request.
"""

import hashlib
import json
from typing import Any, Dict, Optional

import structlog

from marketsearch.api.schemas.search_schemas import SearchParameters
from marketsearch.core.interfaces import ICacheService

logger = structlog.get_logger(__name__)

SEARCH_PREFIX = "search"
SUGGESTIONS_PREFIX = "suggestions"
TRENDING_PREFIX = "trending_searches"

DEFAULT_TTLS = {
    "search": 300,  # 5 minutes
    "suggestions": 60,
    "trending": 3600,  # 1 hour
}


def canonical_json(payload: Any) -> str:
    """JSON encoding independent of mapping insertion order."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


def search_cache_key(params: SearchParameters) -> str:
    request_hash = hashlib.sha256(
        canonical_json(params.cache_payload()).encode()
    ).hexdigest()
    return f"{SEARCH_PREFIX}:{request_hash}"


def suggestions_cache_key(query: str, limit: int) -> str:
    return f"{SUGGESTIONS_PREFIX}:{query}:{limit}"


def trending_cache_key(limit: int) -> str:
    return f"{TRENDING_PREFIX}:{limit}"


class SearchResultCache:
    """Fail-open cache wrapper used by the search engine."""

    def __init__(self, cache_service: Optional[ICacheService], ttls: Optional[Dict[str, int]] = None):
        self.cache_service = cache_service
        self.ttls = {**DEFAULT_TTLS, **(ttls or {})}

    def ttl_for(self, kind: str) -> int:
        return self.ttls[kind]

    async def get(self, key: str) -> Optional[Any]:
        """Cached value or None on miss or cache failure."""
        if self.cache_service is None:
            return None

        try:
            return await self.cache_service.get(key)
        except Exception as e:
            logger.warning("Cache read failed, treating as miss", key=key, error=str(e))
            return None

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        """Store a value; False when the cache did not accept it."""
        if self.cache_service is None:
            return False

        try:
            return bool(await self.cache_service.set(key, value, ttl=ttl))
        except Exception as e:
            logger.warning("Cache write failed, skipping", key=key, error=str(e))
            return False

    async def invalidate(self, pattern: str) -> int:
        """Remove every entry matching a glob pattern; number removed."""
        if self.cache_service is None:
            return 0

        try:
            removed = await self.cache_service.clear(pattern)
            logger.info("Cache invalidated", pattern=pattern, count=removed)
            return removed
        except Exception as e:
            logger.warning("Cache invalidation failed", pattern=pattern, error=str(e))
            return 0

    async def invalidate_searches(self) -> int:
        """Drop all primary-search entries; suggestions and trending are kept."""
        return await self.invalidate(f"{SEARCH_PREFIX}:*")
