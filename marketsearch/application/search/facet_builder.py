"""
Facet / Aggregation Builder

Declares the bucketed aggregations attached to listing searches and turns the
returned buckets into UI-facing suggestions:
- Compact aggregation set sent with every primary search
- Rich aggregation set for the filter sidebar
- Facet suggestions (next categories, non-empty price ranges)
- Personalised filter recommendations from search history
"""

import math
from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import structlog
from pydantic import BaseModel

from marketsearch.application.search.filter_sanitizer import parse_number
from marketsearch.domain.entities.facet import (
    CategorySuggestion,
    FacetSuggestions,
    FilterRecommendation,
    PriceRangeSuggestion,
    PriceWindow,
    RecommendationType,
)

logger = structlog.get_logger(__name__)

MAX_CATEGORY_SUGGESTIONS = 5
MAX_RECOMMENDATIONS = 3
MIN_CATEGORY_FREQUENCY = 0.2
PRICE_WINDOW_CONFIDENCE = 0.7
PRICE_WINDOW_LOWER_FACTOR = 0.8
PRICE_WINDOW_UPPER_FACTOR = 1.2

HistoryEntry = Union[Mapping[str, Any], BaseModel]


class FacetBuilder:
    """Aggregation declarations and bucket post-processing."""

    def build_search_aggregations(self) -> Dict[str, Any]:
        """Aggregations sent with every primary search."""
        return {
            "categories": {
                "terms": {"field": "category", "size": 20}
            },
            "price_ranges": {
                "range": {
                    "field": "price",
                    "ranges": [
                        {"to": 100},
                        {"from": 100, "to": 500},
                        {"from": 500, "to": 1000},
                        {"from": 1000}
                    ]
                }
            },
            "popular_tags": {
                "terms": {"field": "tags", "size": 10}
            }
        }

    def build_facet_aggregations(self) -> Dict[str, Any]:
        """Rich aggregation set for the filter UI."""
        return {
            "categories": {
                "terms": {"field": "category", "size": 50}
            },
            "status": {
                "terms": {"field": "status"}
            },
            "condition": {
                "terms": {"field": "condition"}
            },
            "price_ranges": {
                "range": {
                    "field": "price",
                    "ranges": [
                        {"key": "0-100", "to": 100},
                        {"key": "100-500", "from": 100, "to": 500},
                        {"key": "500-1000", "from": 500, "to": 1000},
                        {"key": "1000-5000", "from": 1000, "to": 5000},
                        {"key": "5000+", "from": 5000}
                    ]
                }
            },
            "rating_ranges": {
                "range": {
                    "field": "rating",
                    "ranges": [
                        {"key": "4-5", "from": 4, "to": 5},
                        {"key": "3-4", "from": 3, "to": 4},
                        {"key": "2-3", "from": 2, "to": 3},
                        {"key": "1-2", "from": 1, "to": 2}
                    ]
                }
            },
            "bedrooms": {
                "terms": {"field": "bedrooms", "size": 10}
            },
            "bathrooms": {
                "terms": {"field": "bathrooms", "size": 10}
            },
            "amenities": {
                "terms": {"field": "amenities", "size": 20}
            },
            "featured": {
                "terms": {"field": "featured"}
            },
            "creation_date": {
                "date_histogram": {
                    "field": "created_at",
                    "calendar_interval": "month",
                    "format": "yyyy-MM"
                }
            }
        }

    @staticmethod
    def format_category_label(category: str) -> str:
        """home_garden -> Home Garden"""
        return " ".join(
            word[:1].upper() + word[1:] for word in str(category).split("_")
        )

    def suggest_facets(
        self,
        current_filters: Optional[Mapping[str, Any]],
        aggregations: Optional[Mapping[str, Any]]
    ) -> FacetSuggestions:
        """
        Derive next-step facet suggestions from a search response.

        Args:
            current_filters: Filters currently applied (the "category" key is consulted)
            aggregations: Aggregation buckets returned with the search

        Returns:
            Up to five other categories and every non-empty price range
        """
        suggestions = FacetSuggestions()
        if not aggregations:
            return suggestions

        current_category = (current_filters or {}).get("category")

        category_buckets = self._buckets(aggregations, "categories")
        suggestions.categories = [
            CategorySuggestion(
                value=str(bucket.get("key")),
                count=int(bucket.get("doc_count", 0)),
                label=self.format_category_label(bucket.get("key", ""))
            )
            for bucket in category_buckets
            if bucket.get("key") != current_category
        ][:MAX_CATEGORY_SUGGESTIONS]

        suggestions.price_ranges = [
            PriceRangeSuggestion(
                key=str(bucket.get("key")),
                count=int(bucket.get("doc_count", 0)),
                from_value=bucket.get("from"),
                to_value=bucket.get("to")
            )
            for bucket in self._buckets(aggregations, "price_ranges")
            if bucket.get("doc_count", 0) > 0
        ]

        return suggestions

    def recommend(
        self,
        user_history: Optional[Sequence[HistoryEntry]],
        current_search: Optional[HistoryEntry] = None
    ) -> List[FilterRecommendation]:
        """
        Recommend filters from a user's prior searches.

        Best effort: malformed history yields no recommendations rather than an error.
        """
        if not user_history:
            return []

        try:
            history = [self._as_mapping(entry) for entry in user_history]
            current = self._as_mapping(current_search) if current_search is not None else {}
            recommendations: List[FilterRecommendation] = []

            current_category = current.get("category")
            for value, frequency in self._common_values(history, "category"):
                if value == current_category:
                    continue
                recommendations.append(FilterRecommendation(
                    type=RecommendationType.CATEGORY,
                    value=value,
                    reason=f"You often search in {value}",
                    confidence=frequency
                ))

            window = self._common_price_window(history)
            if window is not None:
                recommendations.append(FilterRecommendation(
                    type=RecommendationType.PRICE_RANGE,
                    value=window,
                    reason="Based on your usual price range",
                    confidence=PRICE_WINDOW_CONFIDENCE
                ))

            recommendations.sort(key=lambda r: r.confidence, reverse=True)
            return recommendations[:MAX_RECOMMENDATIONS]

        except Exception as e:
            logger.warning("Filter recommendation failed", error=str(e))
            return []

    def _common_values(self, history: List[Mapping[str, Any]], field: str) -> List[tuple]:
        """(value, frequency) pairs above the frequency threshold, most frequent first."""
        counts = Counter(entry[field] for entry in history if entry.get(field))
        common = [
            (value, count / len(history))
            for value, count in counts.items()
            if count / len(history) > MIN_CATEGORY_FREQUENCY
        ]
        return sorted(common, key=lambda item: item[1], reverse=True)

    def _common_price_window(self, history: List[Mapping[str, Any]]) -> Optional[PriceWindow]:
        ranges = []
        for entry in history:
            low = self._first(entry, "price_min", "priceMin")
            high = self._first(entry, "price_max", "priceMax")
            if low is None or high is None:
                continue
            try:
                low, high = parse_number(low), parse_number(high)
            except (ValueError, TypeError):
                continue
            if low is not None and high is not None:
                ranges.append((low, high))

        if not ranges:
            return None

        avg_min = sum(low for low, _ in ranges) / len(ranges)
        avg_max = sum(high for _, high in ranges) / len(ranges)
        return PriceWindow(
            min=math.floor(avg_min * PRICE_WINDOW_LOWER_FACTOR),
            max=math.ceil(avg_max * PRICE_WINDOW_UPPER_FACTOR)
        )

    @staticmethod
    def _buckets(aggregations: Mapping[str, Any], name: str) -> List[Mapping[str, Any]]:
        aggregation = aggregations.get(name) or {}
        buckets = aggregation.get("buckets") or []
        # keyed range aggregations come back as a mapping
        if isinstance(buckets, Mapping):
            return [dict(bucket, key=key) for key, bucket in buckets.items()]
        return list(buckets)

    @staticmethod
    def _as_mapping(entry: HistoryEntry) -> Mapping[str, Any]:
        if isinstance(entry, BaseModel):
            return entry.model_dump()
        return entry

    @staticmethod
    def _first(entry: Mapping[str, Any], *names: str) -> Any:
        for name in names:
            if entry.get(name) is not None:
                return entry[name]
        return None
