"""
Memory Cache Service - In-memory cache implementation for local development and tests
"""

import asyncio
import copy
import fnmatch
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog

from marketsearch.core.interfaces import ICacheService

logger = structlog.get_logger(__name__)


@dataclass
class CacheItem:
    """Cache item with expiration"""
    value: Any
    expires_at: float
    created_at: float


class MemoryCacheService(ICacheService):
    """
    In-memory cache service; must be created inside a running event loop.

    Values are copied on the way in and out, so callers never share state
    with the stored entry.
    """

    def __init__(self, max_size: int = 10000, cleanup_interval: float = 60):
        self.max_size = max_size
        self.cleanup_interval = cleanup_interval
        self._cache: Dict[str, CacheItem] = {}
        self._lock = asyncio.Lock()
        self._stats = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "deletes": 0,
            "evictions": 0
        }

        # Start cleanup task
        self._cleanup_task: Optional[asyncio.Task] = asyncio.create_task(self._cleanup_expired())

    async def check_health(self) -> Dict[str, Any]:
        """Check service health"""
        return {
            "status": "healthy",
            "service": "MemoryCacheService",
            "cache_size": len(self._cache),
            "max_size": self.max_size,
            "stats": self._stats.copy()
        }

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        async with self._lock:
            item = self._cache.get(key)

            if item is None:
                self._stats["misses"] += 1
                logger.debug("Cache miss", key=key)
                return None

            if time.monotonic() > item.expires_at:
                del self._cache[key]
                self._stats["misses"] += 1
                logger.debug("Cache expired", key=key)
                return None

            self._stats["hits"] += 1
            logger.debug("Cache hit", key=key)
            return copy.deepcopy(item.value)

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set value in cache with TTL"""
        async with self._lock:
            if len(self._cache) >= self.max_size and key not in self._cache:
                self._evict_oldest()

            now = time.monotonic()
            self._cache[key] = CacheItem(
                value=copy.deepcopy(value),
                expires_at=now + ttl,
                created_at=now
            )

            self._stats["sets"] += 1
            logger.debug("Cache set", key=key, ttl=ttl)
            return True

    async def delete(self, key: str) -> bool:
        """Delete key from cache"""
        async with self._lock:
            if key in self._cache:
                del self._cache[key]
                self._stats["deletes"] += 1
                logger.debug("Cache delete", key=key)
                return True
            return False

    async def exists(self, key: str) -> bool:
        """Check if key exists"""
        async with self._lock:
            item = self._cache.get(key)
            if item is None:
                return False

            if time.monotonic() > item.expires_at:
                del self._cache[key]
                return False

            return True

    async def clear(self, pattern: str = "*") -> int:
        """Clear keys matching a glob pattern (Redis MATCH semantics)"""
        async with self._lock:
            keys_to_delete = [key for key in self._cache if fnmatch.fnmatchcase(key, pattern)]

            for key in keys_to_delete:
                del self._cache[key]

            self._stats["deletes"] += len(keys_to_delete)
            logger.info("Cache pattern clear", pattern=pattern, count=len(keys_to_delete))
            return len(keys_to_delete)

    def _evict_oldest(self) -> None:
        """Evict the oldest item; caller holds the lock"""
        if not self._cache:
            return

        oldest_key = min(self._cache.keys(), key=lambda k: self._cache[k].created_at)
        del self._cache[oldest_key]
        self._stats["evictions"] += 1

        logger.debug("Cache eviction", key=oldest_key)

    async def _cleanup_expired(self) -> None:
        """Periodic cleanup of expired items"""
        while True:
            try:
                await asyncio.sleep(self.cleanup_interval)

                async with self._lock:
                    current_time = time.monotonic()
                    expired_keys = [
                        key for key, item in self._cache.items()
                        if current_time > item.expires_at
                    ]

                    for key in expired_keys:
                        del self._cache[key]

                    if expired_keys:
                        logger.debug("Cache cleanup", expired_count=len(expired_keys))

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Cache cleanup error", error=str(e))

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        return {
            **self._stats,
            "cache_size": len(self._cache),
            "max_size": self.max_size,
            "hit_rate": self._stats["hits"] / max(1, self._stats["hits"] + self._stats["misses"])
        }

    async def close(self) -> None:
        """Stop the cleanup task and drop all entries"""
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

        async with self._lock:
            self._cache.clear()

        logger.info("Memory cache closed")
