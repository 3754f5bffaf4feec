"""Maps a sort key and direction to an index ordering."""

from typing import Any, Dict, List, Optional, Tuple, Union

RELEVANCE_SORT = "_score"

SortSpec = List[Union[str, Dict[str, Dict[str, str]]]]

_SORT_FIELDS: Dict[str, Tuple[str, ...]] = {
    "price": ("price",),
    "date": ("created_at",),
    "popularity": ("views", "rating"),  # views first, rating breaks ties
    "rating": ("rating",),
}


class SortBuilder:
    """Builds the sort clause for a listing search."""

    @staticmethod
    def normalize_order(sort_order: Optional[str]) -> str:
        return "asc" if sort_order == "asc" else "desc"

    def build(self, sort_by: Optional[str], sort_order: Optional[str] = None) -> SortSpec:
        """
        Unknown or missing sort keys fall back to relevance ordering.
        """
        order = self.normalize_order(sort_order)
        fields = _SORT_FIELDS.get(sort_by or "")
        if fields is None:
            return [RELEVANCE_SORT]
        return [{field: {"order": order}} for field in fields]


def describe_sort(sort: SortSpec) -> List[Any]:
    """Field names of a sort spec, for logging."""
    return [entry if isinstance(entry, str) else next(iter(entry)) for entry in sort]
