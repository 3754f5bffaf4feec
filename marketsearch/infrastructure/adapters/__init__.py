"""Infrastructure adapters for the cache and index backends."""

from .elasticsearch_index_adapter import ElasticsearchListingIndex
from .memory_cache_adapter import MemoryCacheService
from .redis_cache_adapter import RedisCacheService

__all__ = [
    "ElasticsearchListingIndex",
    "MemoryCacheService",
    "RedisCacheService",
]
