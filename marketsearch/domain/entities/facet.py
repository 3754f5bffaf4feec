"""
Domain entities for facet suggestions and filter recommendations.

Facet suggestions are derived from the aggregation buckets of a search
response and drive the filter UI. Recommendations are derived from a user's
prior searches.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class RecommendationType(str, Enum):
    """Kinds of filter recommendation."""

    CATEGORY = "category"
    PRICE_RANGE = "price_range"


@dataclass
class CategorySuggestion:
    """Category bucket offered as a next filter."""

    value: str
    count: int
    label: str


@dataclass
class PriceRangeSuggestion:
    """Non-empty price bucket with its bounds."""

    key: str
    count: int
    from_value: Optional[Union[int, float]] = None
    to_value: Optional[Union[int, float]] = None


@dataclass
class FacetSuggestions:
    """Facet suggestions derived from one search response."""

    categories: List[CategorySuggestion] = field(default_factory=list)
    price_ranges: List[PriceRangeSuggestion] = field(default_factory=list)
    locations: List[Dict[str, Any]] = field(default_factory=list)
    tags: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class PriceWindow:
    """Averaged price window derived from search history."""

    min: int
    max: int


@dataclass
class FilterRecommendation:
    """Personalised filter recommendation."""

    type: RecommendationType
    value: Union[str, PriceWindow]
    reason: str
    confidence: float
