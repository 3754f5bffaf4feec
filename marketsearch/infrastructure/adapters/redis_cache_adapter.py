"""
Redis Cache Service - Redis-based cache implementation for production environments
"""

import json
from typing import Any, Dict, Optional

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError

from marketsearch.core.interfaces import ICacheService
from marketsearch.domain.exceptions import CacheUnavailableError

logger = structlog.get_logger(__name__)

DELETE_BATCH_SIZE = 100
SCAN_COUNT = 500


class RedisCacheService(ICacheService):
    """Redis-based cache service storing JSON values with SETEX expiry"""

    def __init__(self, redis_client: Optional[Any] = None):
        self.redis = redis_client
        self._stats = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "deletes": 0,
            "errors": 0
        }

    @classmethod
    async def create(cls, redis_url: str = "redis://localhost:6379/0") -> "RedisCacheService":
        """Create Redis cache service with connection pool"""
        redis_client = aioredis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30
        )

        try:
            # Test connection
            await redis_client.ping()

            logger.info("Redis cache service initialized", redis_url=redis_url)
            return cls(redis_client)

        except Exception as e:
            logger.error("Failed to initialize Redis cache", error=str(e))
            await redis_client.aclose()
            raise CacheUnavailableError(f"Redis unreachable at {redis_url}: {e}") from e

    async def check_health(self) -> Dict[str, Any]:
        """Check Redis service health"""
        try:
            await self.redis.ping()
            info = await self.redis.info()

            return {
                "status": "healthy",
                "service": "RedisCacheService",
                "redis_version": info.get("redis_version"),
                "connected_clients": info.get("connected_clients"),
                "used_memory": info.get("used_memory"),
                "stats": self._stats.copy()
            }

        except Exception as e:
            logger.error("Redis health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "service": "RedisCacheService",
                "error": str(e),
                "stats": self._stats.copy()
            }

    async def get(self, key: str) -> Optional[Any]:
        """Get value from Redis cache"""
        try:
            raw_value = await self.redis.get(key)

            if raw_value is None:
                self._stats["misses"] += 1
                logger.debug("Cache miss", key=key)
                return None

            value = json.loads(raw_value)

            self._stats["hits"] += 1
            logger.debug("Cache hit", key=key)
            return value

        except RedisError as e:
            self._stats["errors"] += 1
            logger.error("Redis get failed", key=key, error=str(e))
            return None
        except (json.JSONDecodeError, TypeError) as e:
            self._stats["errors"] += 1
            logger.error("Cache value undecodable", key=key, error=str(e))
            return None

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set value in Redis cache with TTL"""
        try:
            serialized_value = json.dumps(value, default=str)
            result = await self.redis.setex(key, ttl, serialized_value)

            if result:
                self._stats["sets"] += 1
                logger.debug("Cache set", key=key, ttl=ttl)
                return True

            return False

        except RedisError as e:
            self._stats["errors"] += 1
            logger.error("Redis set failed", key=key, error=str(e))
            return False
        except (TypeError, ValueError) as e:
            self._stats["errors"] += 1
            logger.error("Cache value not serializable", key=key, error=str(e))
            return False

    async def delete(self, key: str) -> bool:
        """Delete key from Redis cache"""
        try:
            result = await self.redis.delete(key)

            if result > 0:
                self._stats["deletes"] += 1
                logger.debug("Cache delete", key=key)
                return True

            return False

        except RedisError as e:
            self._stats["errors"] += 1
            logger.error("Redis delete failed", key=key, error=str(e))
            return False

    async def exists(self, key: str) -> bool:
        """Check if key exists in Redis"""
        try:
            result = await self.redis.exists(key)
            return result > 0

        except RedisError as e:
            self._stats["errors"] += 1
            logger.error("Redis exists check failed", key=key, error=str(e))
            return False

    async def clear(self, pattern: str = "*") -> int:
        """Delete keys matching a glob pattern, found with SCAN"""
        try:
            deleted_count = 0
            batch = []

            async for key in self.redis.scan_iter(match=pattern, count=SCAN_COUNT):
                batch.append(key)
                if len(batch) >= DELETE_BATCH_SIZE:
                    deleted_count += await self.redis.delete(*batch)
                    batch = []

            if batch:
                deleted_count += await self.redis.delete(*batch)

            self._stats["deletes"] += deleted_count
            logger.info("Cache pattern clear", pattern=pattern, count=deleted_count)
            return deleted_count

        except RedisError as e:
            self._stats["errors"] += 1
            logger.error("Redis clear failed", pattern=pattern, error=str(e))
            return 0

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        return {
            **self._stats,
            "hit_rate": self._stats["hits"] / max(1, self._stats["hits"] + self._stats["misses"]),
            "error_rate": self._stats["errors"] / max(1, sum(self._stats.values()))
        }

    async def close(self) -> None:
        """Close Redis connection and its pool"""
        if self.redis is None:
            return

        try:
            await self.redis.aclose()
            logger.info("Redis cache closed")
        except Exception as e:
            logger.error("Error closing Redis cache", error=str(e))
        finally:
            self.redis = None
