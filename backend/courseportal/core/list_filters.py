"""List Filters — pure parsing of data-table column filters into typed predicates.

Invariants:
    - Each raw filter classifies into exactly one predicate type, or is ignored
    - RangeFilter is tested before InFilter ([1, 5] is a range, never an IN list)
    - Booleans are never treated as numbers (bool is an int subclass in Python)
    - Invalid JSON in the query-string form raises ValidationError (400)
    - No IO, no SQL: db/list_query.py maps predicates onto columns

Design Decisions:
    - Frozen dataclasses per predicate kind: pattern-matching in the SQL layer
      stays exhaustive and the classifier is testable without a database
    - Unknown/unsupported shapes are dropped silently, matching data-table UIs
      that send empty values for cleared filters
"""

import json
from dataclasses import dataclass
from typing import Any

from courseportal.core.errors import ValidationError


@dataclass(frozen=True)
class TextFilter:
    """Case-insensitive substring match."""
    column: str
    text: str


@dataclass(frozen=True)
class RangeFilter:
    """Inclusive numeric range; either bound may be None."""
    column: str
    minimum: float | None
    maximum: float | None


@dataclass(frozen=True)
class InFilter:
    column: str
    values: tuple


@dataclass(frozen=True)
class EqualsFilter:
    column: str
    value: Any


ColumnPredicate = TextFilter | RangeFilter | InFilter | EqualsFilter


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_range(value: list) -> bool:
    if len(value) != 2:
        return False
    if not all(v is None or _is_number(v) for v in value):
        return False
    return any(v is not None for v in value)


def parse_filters(raw: str | list | None) -> list[dict]:
    """Parse the `filters` parameter into a list of {id, value} dicts.

    Accepts the JSON string sent in a query string or an already-decoded list.
    Entries that are not objects with a string `id` are skipped.
    """
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValidationError(
                "filters must be a JSON array of {id, value} objects",
                details={"reason": str(e)},
            )
    if not isinstance(raw, list):
        raise ValidationError(
            "filters must be a JSON array of {id, value} objects",
        )
    return [
        {"id": item["id"], "value": item.get("value")}
        for item in raw
        if isinstance(item, dict) and isinstance(item.get("id"), str)
    ]


def classify_filter(column: str, value: Any) -> ColumnPredicate | None:
    """Classify a single filter value. Returns None for ignored shapes."""
    if isinstance(value, str):
        return TextFilter(column, value) if value else None
    if isinstance(value, list):
        if not value:
            return None
        if _is_range(value):
            return RangeFilter(column, value[0], value[1])
        return InFilter(column, tuple(value))
    if isinstance(value, bool) or _is_number(value):
        return EqualsFilter(column, value)
    return None


def classify_filters(
    filters: list[dict], allowed_columns,
) -> list[ColumnPredicate]:
    """Classify filters whose id is in allowed_columns; drop everything else."""
    predicates = []
    for f in filters:
        column = f.get("id")
        if column not in allowed_columns:
            continue
        predicate = classify_filter(column, f.get("value"))
        if predicate is not None:
            predicates.append(predicate)
    return predicates


def calculate_offset(page: int, page_size: int) -> int:
    return (page - 1) * page_size
