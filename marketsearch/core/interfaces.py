"""
Abstract Service Interfaces - Contracts for the cache and index backends
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from marketsearch.domain.entities.listing import CompletionOption, IndexSearchResponse


class IHealthCheck:
    """Health check interface mixin"""

    @abstractmethod
    async def check_health(self) -> Dict[str, Any]:
        """Check service health"""
        pass


class ICacheService(IHealthCheck, ABC):
    """Cache service interface"""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set value in cache with TTL"""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete key from cache"""
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if key exists"""
        pass

    @abstractmethod
    async def clear(self, pattern: str = "*") -> int:
        """Clear keys matching pattern"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release connections"""
        pass


class IListingIndex(IHealthCheck, ABC):
    """Listing document index interface"""

    @abstractmethod
    async def search(self, body: Dict[str, Any]) -> IndexSearchResponse:
        """Run a search request (query, sort, pagination, highlight, aggregations)"""
        pass

    @abstractmethod
    async def suggest(self, prefix: str, field: str, size: int) -> List[CompletionOption]:
        """Completion suggestions for a prefix"""
        pass

    @abstractmethod
    async def more_like_this(
        self,
        listing_id: str,
        fields: List[str],
        size: int,
        min_term_freq: int = 1,
        max_query_terms: int = 12
    ) -> IndexSearchResponse:
        """Listings similar to the given one"""
        pass

    @abstractmethod
    async def get(self, listing_id: str) -> Optional[Dict[str, Any]]:
        """Get a source document by id, None when missing"""
        pass

    @abstractmethod
    async def index(self, listing_id: str, document: Dict[str, Any]) -> None:
        """Create or replace a document"""
        pass

    @abstractmethod
    async def update(self, listing_id: str, partial: Dict[str, Any]) -> None:
        """Merge a partial document into an existing one"""
        pass

    @abstractmethod
    async def delete(self, listing_id: str) -> None:
        """Delete a document by id"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release connections"""
        pass
