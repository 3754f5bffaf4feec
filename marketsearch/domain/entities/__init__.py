"""Domain entities."""

from .facet import (
    CategorySuggestion,
    FacetSuggestions,
    FilterRecommendation,
    PriceRangeSuggestion,
    PriceWindow,
    RecommendationType,
)
from .listing import CompletionOption, GeoPoint, IndexHit, IndexSearchResponse, ListingDocument

__all__ = [
    "CategorySuggestion",
    "CompletionOption",
    "FacetSuggestions",
    "FilterRecommendation",
    "GeoPoint",
    "IndexHit",
    "IndexSearchResponse",
    "ListingDocument",
    "PriceRangeSuggestion",
    "PriceWindow",
    "RecommendationType",
]
