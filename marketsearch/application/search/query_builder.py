"""
Query Builder

Composes the boolean query for a listing search:
- Full-text relevance across title, description and tags with fuzziness
- Exact title phrase boosting
- Category, price range, geo radius and tag filters
- Sanitized attribute filters
- Mandatory active-status gate
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

import structlog

from marketsearch.api.schemas.search_schemas import DEFAULT_PRICE_MAX, DEFAULT_PRICE_MIN, GeoLocation
from marketsearch.application.search.filter_sanitizer import FilterSanitizer

logger = structlog.get_logger(__name__)

TEXT_FIELDS = ["title^3", "description^1", "tags^2"]
TITLE_PHRASE_BOOST = 5
ACTIVE_STATUS = "active"


class QueryBuilder:
    """Builds index boolean queries from search parameters."""

    def __init__(self, filter_sanitizer: Optional[FilterSanitizer] = None):
        self.filter_sanitizer = filter_sanitizer or FilterSanitizer()

    def build(
        self,
        text: str = "",
        category: str = "",
        price_min: Optional[float] = None,
        price_max: Optional[float] = None,
        location: Optional[GeoLocation] = None,
        radius: float = 10,
        tags: Optional[Sequence[str]] = None,
        sanitized_filters: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Build the bool query.

        Filter clauses are ANDed; the text match and phrase boost only rank.
        The price range is not checked for min <= max here.

        Returns:
            Query of the form {"bool": {...}}
        """
        must: List[Dict[str, Any]] = []
        should: List[Dict[str, Any]] = []
        filters: List[Dict[str, Any]] = []

        text = (text or "").strip()
        if text:
            must.append({
                "multi_match": {
                    "query": text,
                    "fields": list(TEXT_FIELDS),
                    "type": "best_fields",
                    "fuzziness": "AUTO"
                }
            })
            should.append({
                "match_phrase": {
                    "title": {
                        "query": text,
                        "boost": TITLE_PHRASE_BOOST
                    }
                }
            })

        if category:
            filters.append({"term": {"category": category}})

        filters.append({
            "range": {
                "price": {
                    "gte": DEFAULT_PRICE_MIN if price_min is None else price_min,
                    "lte": DEFAULT_PRICE_MAX if price_max is None else price_max
                }
            }
        })

        if location is not None and location.is_complete:
            filters.append({
                "geo_distance": {
                    "distance": f"{radius:g}km",
                    "location": {
                        "lat": location.lat,
                        "lon": location.lon
                    }
                }
            })

        if tags:
            filters.append({"terms": {"tags": list(tags)}})

        filters.extend(self.filter_sanitizer.build_filter_clauses(sanitized_filters))

        # Only active listings are searchable
        filters.append({"term": {"status": ACTIVE_STATUS}})

        bool_query: Dict[str, Any] = {
            "must": must or [{"match_all": {}}],
            "filter": filters
        }
        if should:
            bool_query["should"] = should
            bool_query["minimum_should_match"] = 1

        logger.debug(
            "Built search query",
            has_text=bool(text),
            filter_count=len(filters)
        )

        return {"bool": bool_query}
