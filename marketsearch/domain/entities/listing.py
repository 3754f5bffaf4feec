"""
Domain entities for indexed listings.

The index holds a read/search projection of each listing; the system of record
lives elsewhere. These types describe what goes into the index and what the
index hands back for a query.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class GeoPoint:
    """Latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lon": self.lon}


@dataclass
class ListingDocument:
    """Indexed projection of a marketplace listing."""

    id: str
    title: str
    description: str = ""
    category: str = ""
    price: float = 0.0
    location: Optional[GeoPoint] = None
    tags: List[str] = field(default_factory=list)
    status: str = "active"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user_id: Optional[str] = None
    views: int = 0
    rating: float = 0.0

    # Vertical-specific fields (condition, bedrooms, amenities, ...)
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Tags are a set; keep first-seen order for stable documents."""
        seen = set()
        unique = []
        for tag in self.tags:
            if tag not in seen:
                seen.add(tag)
                unique.append(tag)
        self.tags = unique

    def to_index_document(self) -> Dict[str, Any]:
        """Serialize to the index source document (id excluded)."""
        document: Dict[str, Any] = dict(self.extra)
        document.update({
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "price": self.price,
            "tags": list(self.tags),
            "status": self.status,
            "user_id": self.user_id,
            "views": self.views,
            "rating": self.rating,
        })
        if self.location is not None:
            document["location"] = self.location.to_dict()
        if self.created_at is not None:
            document["created_at"] = self.created_at.isoformat()
        if self.updated_at is not None:
            document["updated_at"] = self.updated_at.isoformat()
        return document


@dataclass
class IndexHit:
    """Single hit returned by the index."""

    id: str
    score: Optional[float]
    source: Dict[str, Any] = field(default_factory=dict)
    highlight: Optional[Dict[str, List[str]]] = None


@dataclass
class IndexSearchResponse:
    """Index answer to a search request."""

    hits: List[IndexHit] = field(default_factory=list)
    total: int = 0
    aggregations: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CompletionOption:
    """One ranked completion for an autocomplete prefix."""

    text: str
    score: float
