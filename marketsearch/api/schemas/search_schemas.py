"""
Search API Schemas

Request/response models exchanged with the routing layer:
- Search parameters (text, category, price, geo radius, tags, sort, paging, filters)
- Paginated, faceted search results with highlights
- Autocomplete suggestions and trending terms
"""

import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_PRICE_MIN = 0
DEFAULT_PRICE_MAX = 999999


class GeoLocation(BaseModel):
    """Search origin for radius filtering"""
    lat: Optional[float] = Field(None, ge=-90, le=90, description="Latitude")
    lon: Optional[float] = Field(None, ge=-180, le=180, description="Longitude")

    @property
    def is_complete(self) -> bool:
        return self.lat is not None and self.lon is not None


class SearchParameters(BaseModel):
    """
    Listing search request.

    Field names are snake_case; the camelCase names used on the query string
    (priceMin, sortBy, ...) are accepted as aliases. priceMin <= priceMax is
    not enforced here, see FilterSanitizer.validate_combinations.
    """

    query: str = Field(default="", description="Free-text query")
    category: str = Field(default="", description="Category keyword")
    price_min: Optional[float] = Field(default=DEFAULT_PRICE_MIN, description="Lower price bound")
    price_max: Optional[float] = Field(default=DEFAULT_PRICE_MAX, description="Upper price bound")
    location: Optional[GeoLocation] = Field(default=None, description="Search origin")
    radius: float = Field(default=10, gt=0, description="Search radius in km")
    tags: List[str] = Field(default_factory=list, description="Required tags (any of)")
    sort_by: str = Field(default="relevance", description="relevance/price/date/popularity/rating")
    sort_order: str = Field(default="desc", description="asc/desc")
    page: int = Field(default=1, ge=1, description="Page number")
    limit: int = Field(default=20, gt=0, description="Listings per page")
    filters: Dict[str, Any] = Field(default_factory=dict, description="Additional raw filters")

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "query": "mountain bike",
                "category": "sports",
                "priceMin": 100,
                "priceMax": 500,
                "location": {"lat": 52.52, "lon": 13.405},
                "radius": 25,
                "tags": ["bike", "outdoor"],
                "sortBy": "price",
                "sortOrder": "asc",
                "page": 1,
                "limit": 20,
                "filters": {"condition": "good", "negotiable": "true"}
            }
        }
    )

    @field_validator('query', 'category', mode='before')
    @classmethod
    def strip_text(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    @field_validator('tags', mode='before')
    @classmethod
    def normalize_tags(cls, v):
        """Accept a comma separated string and drop blanks and duplicates."""
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        tags: List[str] = []
        for tag in v:
            if tag is None:
                continue
            tag = str(tag).strip()
            if tag and tag not in tags:
                tags.append(tag)
        return tags

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def cache_payload(self) -> Dict[str, Any]:
        """Parameter values in a form whose JSON encoding is order independent."""
        payload = self.model_dump(mode="json")
        payload["tags"] = sorted(payload["tags"])
        return payload


class ListingHit(BaseModel):
    """
    One ranked listing.

    Source document fields (title, price, location, ...) are carried as extra
    attributes next to the id, score and highlights.
    """
    id: str = Field(..., description="Listing id")
    score: Optional[float] = Field(None, description="Relevance score")
    highlights: Optional[Dict[str, List[str]]] = Field(None, description="Highlighted snippets per field")

    model_config = ConfigDict(extra="allow")

    @property
    def source(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class SearchResult(BaseModel):
    """Paginated, faceted search result"""

    listings: List[ListingHit] = Field(default_factory=list, description="Ranked listings for this page")
    total: int = Field(..., ge=0, description="Total matching listings")
    aggregations: Dict[str, Any] = Field(default_factory=dict, description="Facet buckets")
    page: int = Field(..., ge=1, description="Current page number")
    limit: int = Field(..., gt=0, description="Listings per page")

    @computed_field
    @property
    def total_pages(self) -> int:
        """Always derived from total and limit"""
        return math.ceil(self.total / self.limit)

    @computed_field
    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @computed_field
    @property
    def has_prev_page(self) -> bool:
        return self.page > 1


class Suggestion(BaseModel):
    """Autocomplete option"""
    text: str = Field(..., description="Completed title text")
    score: float = Field(default=0.0, description="Completion score")


class TrendingTerm(BaseModel):
    """Trending search term with its listing count"""
    term: str = Field(..., description="Trending term")
    count: int = Field(..., ge=0, description="Number of active listings")
