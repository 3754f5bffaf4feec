"""
Domain-level exceptions for the search service.

Propagation policy:
- cache failures never halt a request (fail-open)
- index read failures halt only the primary search path
- index write failures always halt
- filter sanitization never raises (fail-narrow)
"""


class DomainException(Exception):
    """Base exception for all domain-level errors."""
    pass


class CacheUnavailableError(DomainException):
    """Raised by cache adapters when the cache backend cannot be reached."""
    pass


class SearchError(DomainException):
    """Base exception for search read failures."""
    pass


class IndexQueryError(SearchError):
    """Raised when the index rejects or fails a read request."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Index {operation} failed: {reason}")


class SearchUnavailableError(SearchError):
    """Raised to callers when the primary search backend cannot answer."""

    def __init__(self, message: str = "Search service unavailable"):
        super().__init__(message)


class IndexWriteError(DomainException):
    """Raised when indexing, updating or deleting a listing fails."""

    def __init__(self, operation: str, listing_id: str, reason: str):
        self.operation = operation
        self.listing_id = listing_id
        self.reason = reason
        super().__init__(f"Index {operation} failed for listing {listing_id}: {reason}")
