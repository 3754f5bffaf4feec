"""Request/response schemas shared with the routing layer."""

from .search_schemas import (
    GeoLocation,
    ListingHit,
    SearchParameters,
    SearchResult,
    Suggestion,
    TrendingTerm,
)

__all__ = [
    "GeoLocation",
    "ListingHit",
    "SearchParameters",
    "SearchResult",
    "Suggestion",
    "TrendingTerm",
]
