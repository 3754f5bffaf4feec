"""
Filter Sanitizer

Guards the query builder from malformed filter input:
- Coerces raw key/value filters against the listing FilterSpec
- Drops unknown keys and values failing their type/range/enum check
- Reports cross-field problems (price and date ordering, numeric bounds)
- Turns sanitized filters into index filter clauses

Sanitization never fails, it only narrows. Only validate_combinations
surfaces problems, as human-readable messages.
"""

import math
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import structlog
from dateutil import parser as date_parser

from marketsearch.domain.filter_spec import LISTING_FILTER_SPEC, FilterRule, FilterSpec, FilterType

logger = structlog.get_logger(__name__)

Number = Union[int, float]

_RANGE_SUFFIXES = {
    "_after": "gte",
    "_before": "lte",
}

# (filter name, label used in messages)
_BOUNDED_FIELDS = (
    ("bedrooms", "Bedrooms"),
    ("bathrooms", "Bathrooms"),
    ("rating", "Rating"),
)


def parse_number(value: Any) -> Optional[Number]:
    """Parse a finite number, None when the value is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        parsed = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        parsed = float(text)
    if math.isnan(parsed) or math.isinf(parsed):
        return None
    if parsed.is_integer():
        return int(parsed)
    return parsed


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a timestamp into an aware UTC datetime.

    Accepts datetimes (naive ones are taken as UTC), dates, epoch milliseconds
    and date strings: ISO-8601 first, then free-form ("2024/05/01",
    "May 1, 2024", RFC 2822). Returns None when the value is not a timestamp.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = date_parser.isoparse(text)
        except ValueError:
            parsed = date_parser.parse(text)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """UTC ISO-8601 instant with millisecond precision, e.g. 2024-05-01T10:00:00.000Z"""
    value = value.astimezone(timezone.utc)
    return value.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


class FilterSanitizer:
    """Coerces raw filters against a FilterSpec and builds index filter clauses."""

    def __init__(self, filter_spec: FilterSpec = LISTING_FILTER_SPEC):
        self.filter_spec = filter_spec
        self._coercers: Dict[FilterType, Callable[[Any, FilterRule], Any]] = {
            FilterType.STRING: self._coerce_string,
            FilterType.NUMBER: self._coerce_number,
            FilterType.BOOLEAN: self._coerce_boolean,
            FilterType.DATE: self._coerce_date,
            FilterType.ARRAY: self._coerce_array,
        }

    def sanitize(self, raw_filters: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Keep only known filters whose values pass their type check.

        Args:
            raw_filters: Arbitrary filter mapping from the caller

        Returns:
            Mapping of filter name to coerced value
        """
        sanitized: Dict[str, Any] = {}
        if not raw_filters:
            return sanitized

        for key, value in raw_filters.items():
            rule = self.filter_spec.get(key)
            if rule is None or value is None or (isinstance(value, str) and value == ""):
                continue

            coerced = self.sanitize_value(value, rule)
            if coerced is not None:
                sanitized[key] = coerced
            else:
                logger.debug("Filter value rejected", filter=key, filter_type=rule.filter_type.value)

        return sanitized

    def sanitize_value(self, value: Any, rule: FilterRule) -> Any:
        """Coerce one value, None when it is rejected."""
        try:
            return self._coercers[rule.filter_type](value, rule)
        except (ValueError, TypeError, OverflowError, ArithmeticError, OSError) as e:
            logger.debug(
                "Filter sanitization error",
                filter_type=rule.filter_type.value,
                error=str(e)
            )
            return None

    def _coerce_string(self, value: Any, rule: FilterRule) -> Optional[str]:
        text = str(value).strip()
        if not text or not rule.allows(text):
            return None
        return text

    def _coerce_number(self, value: Any, rule: FilterRule) -> Optional[Number]:
        number = parse_number(value)
        if number is None or not rule.in_bounds(number):
            return None
        return number

    def _coerce_boolean(self, value: Any, rule: FilterRule) -> bool:
        if isinstance(value, bool):
            return value
        return str(value).lower() in ("true", "1")

    def _coerce_date(self, value: Any, rule: FilterRule) -> Optional[str]:
        parsed = parse_timestamp(value)
        if parsed is None:
            return None
        return format_timestamp(parsed)

    def _coerce_array(self, value: Any, rule: FilterRule) -> Optional[List[Any]]:
        if isinstance(value, Mapping):
            return None
        if isinstance(value, (list, tuple, set, frozenset)):
            return [item for item in value if item is not None and item != ""]
        parts = (part.strip() for part in str(value).split(","))
        return [part for part in parts if part]

    def validate_combinations(self, raw_filters: Optional[Mapping[str, Any]]) -> List[str]:
        """
        Check cross-field rules on raw (unsanitized) input.

        Accepts both price_min/price_max and priceMin/priceMax. Values that
        cannot be parsed are skipped; the sanitizer drops them anyway.

        Returns:
            Human-readable error messages, empty when the combination is valid
        """
        errors: List[str] = []
        if not raw_filters:
            return errors

        price_min = self._lenient_number(raw_filters.get("price_min", raw_filters.get("priceMin")))
        price_max = self._lenient_number(raw_filters.get("price_max", raw_filters.get("priceMax")))
        if price_min is not None and price_max is not None and price_min > price_max:
            errors.append("Minimum price cannot be greater than maximum price")

        created_after = self._lenient_timestamp(raw_filters.get("created_after"))
        created_before = self._lenient_timestamp(raw_filters.get("created_before"))
        if created_after is not None and created_before is not None and created_after > created_before:
            errors.append("Start date cannot be after end date")

        for name, label in _BOUNDED_FIELDS:
            number = self._lenient_number(raw_filters.get(name))
            rule = self.filter_spec.get(name)
            if number is None or rule is None:
                continue
            if not rule.in_bounds(number):
                errors.append(
                    f"{label} must be between {rule.min_value:g} and {rule.max_value:g}"
                )

        return errors

    def build_filter_clauses(self, sanitized_filters: Optional[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """
        Translate sanitized filters into index filter clauses.

        string/boolean/number -> term, non-empty array -> terms,
        *_after/*_before dates -> inclusive range on the base field.
        """
        clauses: List[Dict[str, Any]] = []
        if not sanitized_filters:
            return clauses

        for key, value in sanitized_filters.items():
            rule = self.filter_spec.get(key)
            if rule is None:
                continue

            if rule.filter_type in (FilterType.STRING, FilterType.BOOLEAN, FilterType.NUMBER):
                clauses.append({"term": {key: value}})
            elif rule.filter_type == FilterType.ARRAY:
                if isinstance(value, list) and value:
                    clauses.append({"terms": {key: list(value)}})
            elif rule.filter_type == FilterType.DATE:
                for suffix, operator in _RANGE_SUFFIXES.items():
                    if key.endswith(suffix):
                        field_name = key[:-len(suffix)]
                        clauses.append({"range": {field_name: {operator: value}}})
                        break

        return clauses

    @staticmethod
    def _lenient_number(value: Any) -> Optional[Number]:
        if value is None:
            return None
        try:
            return parse_number(value)
        except (ValueError, TypeError, ArithmeticError):
            return None

    @staticmethod
    def _lenient_timestamp(value: Any) -> Optional[datetime]:
        if value is None:
            return None
        try:
            return parse_timestamp(value)
        except (ValueError, TypeError, OverflowError, OSError):
            return None
