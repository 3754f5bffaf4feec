"""
Filter schema for listing searches.

The table maps each filterable field to its type and constraints. It is built
once at import time and exposed read-only; the sanitizer and query builder
receive it by reference.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple, Union


class FilterType(str, Enum):
    """Value kinds a filter can hold."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"


@dataclass(frozen=True)
class FilterRule:
    """Type plus type-specific constraints for one filter."""

    filter_type: FilterType
    allowed_values: Optional[Tuple[str, ...]] = None  # STRING only
    min_value: Optional[Union[int, float]] = None  # NUMBER only
    max_value: Optional[Union[int, float]] = None  # NUMBER only

    def allows(self, value: str) -> bool:
        return self.allowed_values is None or value in self.allowed_values

    def in_bounds(self, value: Union[int, float]) -> bool:
        if self.min_value is not None and value < self.min_value:
            return False
        if self.max_value is not None and value > self.max_value:
            return False
        return True


FilterSpec = Mapping[str, FilterRule]

LISTING_STATUSES = ("active", "inactive", "pending", "sold")
LISTING_CONDITIONS = ("new", "like_new", "good", "fair", "poor")


def build_filter_spec() -> FilterSpec:
    """Build the read-only listing filter table."""
    return MappingProxyType({
        # String filters
        "status": FilterRule(FilterType.STRING, allowed_values=LISTING_STATUSES),
        "condition": FilterRule(FilterType.STRING, allowed_values=LISTING_CONDITIONS),
        "user_id": FilterRule(FilterType.STRING),

        # Numeric filters
        "views": FilterRule(FilterType.NUMBER, min_value=0),
        "rating": FilterRule(FilterType.NUMBER, min_value=0, max_value=5),
        "bedrooms": FilterRule(FilterType.NUMBER, min_value=0, max_value=20),
        "bathrooms": FilterRule(FilterType.NUMBER, min_value=0, max_value=20),
        "area": FilterRule(FilterType.NUMBER, min_value=0),

        # Boolean filters
        "featured": FilterRule(FilterType.BOOLEAN),
        "negotiable": FilterRule(FilterType.BOOLEAN),
        "urgent": FilterRule(FilterType.BOOLEAN),

        # Date filters (range bounds on created_at / updated_at)
        "created_after": FilterRule(FilterType.DATE),
        "created_before": FilterRule(FilterType.DATE),
        "updated_after": FilterRule(FilterType.DATE),
        "updated_before": FilterRule(FilterType.DATE),

        # Array filters
        "amenities": FilterRule(FilterType.ARRAY),
        "payment_methods": FilterRule(FilterType.ARRAY),
    })


LISTING_FILTER_SPEC: FilterSpec = build_filter_spec()
