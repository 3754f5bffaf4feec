"""Domain layer package exposing pure search abstractions."""

from . import entities
from .filter_spec import LISTING_FILTER_SPEC, FilterRule, FilterSpec, FilterType

__all__ = [
    "entities",
    "LISTING_FILTER_SPEC",
    "FilterRule",
    "FilterSpec",
    "FilterType",
]
