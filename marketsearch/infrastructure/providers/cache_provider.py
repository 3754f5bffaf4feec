"""Cache service construction (Redis when configured, in-memory otherwise)."""

from __future__ import annotations

from typing import Optional

import structlog

from marketsearch.core.config import Settings, get_settings
from marketsearch.core.interfaces import ICacheService
from marketsearch.infrastructure.adapters.memory_cache_adapter import MemoryCacheService
from marketsearch.infrastructure.adapters.redis_cache_adapter import RedisCacheService

logger = structlog.get_logger(__name__)


async def create_cache_service(settings: Optional[Settings] = None) -> ICacheService:
    """Create the cache service selected by settings."""
    settings = settings or get_settings()

    if settings.is_redis_configured():
        return await RedisCacheService.create(settings.REDIS_URL)

    if settings.is_production():
        logger.warning("REDIS_URL not set in production, using in-memory cache")
    return MemoryCacheService(max_size=settings.MEMORY_CACHE_MAX_SIZE)
