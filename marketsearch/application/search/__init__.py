"""Listing search application services."""

from .facet_builder import FacetBuilder
from .filter_sanitizer import FilterSanitizer
from .query_builder import QueryBuilder
from .result_cache import SearchResultCache
from .search_engine import ListingSearchEngine
from .sort_builder import SortBuilder

__all__ = [
    "FacetBuilder",
    "FilterSanitizer",
    "ListingSearchEngine",
    "QueryBuilder",
    "SearchResultCache",
    "SortBuilder",
]
