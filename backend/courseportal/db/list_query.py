"""List Query Builder — maps parsed column filters onto SQLAlchemy selects.

Invariants:
    - Column names come only from the column map (the allow-list); values are
      always bound parameters
    - The COUNT runs over the exact filtered statement (same joins, same WHERE,
      same GROUP BY) wrapped as a subquery
    - Unknown sort keys fall back to created_at DESC, then id DESC
    - ListParams.all=True returns every row on one page

Design Decisions:
    - Classification lives in core/list_filters.py (pure); this module only
      translates predicates into SQL expressions
    - Text filters on non-string columns cast to String so ILIKE stays valid on
      PostgreSQL for numeric/date/uuid columns
"""

from dataclasses import dataclass
from typing import Iterable, Mapping

from sqlalchemy import Select, String, and_, asc, cast, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from courseportal.core.domain_types import SortOrder
from courseportal.core.list_filters import (
    EqualsFilter, InFilter, RangeFilter, TextFilter,
    calculate_offset, classify_filters,
)
from courseportal.schemas.common import ListParams

ColumnMap = Mapping[str, ColumnElement]


@dataclass
class PageResult:
    rows: list
    total: int
    page: int
    page_size: int


def _as_text(column: ColumnElement) -> ColumnElement:
    if isinstance(column.type, String):
        return column
    return cast(column, String)


def build_filter_conditions(
    filters: Iterable, column_map: ColumnMap,
) -> list[ColumnElement]:
    """Translate raw {id, value} filters into SQL conditions."""
    raw = [
        f if isinstance(f, dict) else {"id": f.id, "value": f.value}
        for f in filters
    ]
    conditions = []
    for predicate in classify_filters(raw, column_map):
        column = column_map[predicate.column]
        if isinstance(predicate, TextFilter):
            conditions.append(_as_text(column).ilike(f"%{predicate.text}%"))
        elif isinstance(predicate, RangeFilter):
            bounds = []
            if predicate.minimum is not None:
                bounds.append(column >= predicate.minimum)
            if predicate.maximum is not None:
                bounds.append(column <= predicate.maximum)
            conditions.append(and_(*bounds) if len(bounds) > 1 else bounds[0])
        elif isinstance(predicate, InFilter):
            conditions.append(column.in_(list(predicate.values)))
        elif isinstance(predicate, EqualsFilter):
            conditions.append(column == predicate.value)
    return conditions


def build_where_clause(conditions: list[ColumnElement]) -> ColumnElement | None:
    if not conditions:
        return None
    if len(conditions) == 1:
        return conditions[0]
    return and_(*conditions)


def build_order_by(
    sort_by: str | None, order: SortOrder | str, column_map: ColumnMap,
) -> ColumnElement | None:
    column = column_map.get(sort_by) if sort_by else None
    if column is None:
        fallback = column_map.get("created_at")
        if fallback is None:
            fallback = column_map.get("id")
        return desc(fallback) if fallback is not None else None
    return asc(column) if SortOrder(order) == SortOrder.ASC else desc(column)


def search_condition(
    search: str | None, columns: Iterable[ColumnElement],
) -> ColumnElement | None:
    """OR of ILIKE over columns; None for empty search."""
    if not search or not search.strip():
        return None
    pattern = f"%{search.strip()}%"
    return or_(*(_as_text(c).ilike(pattern) for c in columns))


async def paginate(
    db: AsyncSession,
    stmt: Select,
    params: ListParams,
    column_map: ColumnMap,
    extra_conditions: Iterable[ColumnElement | None] = (),
) -> PageResult:
    """Filter, sort and page `stmt`; count over the same predicates."""
    conditions = [c for c in extra_conditions if c is not None]
    conditions += build_filter_conditions(params.filters, column_map)
    where = build_where_clause(conditions)
    filtered = stmt.where(where) if where is not None else stmt

    count_stmt = select(func.count()).select_from(
        filtered.order_by(None).subquery(),
    )
    total = (await db.execute(count_stmt)).scalar_one()

    order_by = build_order_by(params.sort_by, params.order, column_map)
    paged = filtered.order_by(order_by) if order_by is not None else filtered
    if params.all:
        page, page_size = 1, max(total, 1)
    else:
        page, page_size = params.page, params.page_size
        paged = paged.limit(page_size).offset(calculate_offset(page, page_size))

    rows = (await db.execute(paged)).all()
    return PageResult(rows=rows, total=total, page=page, page_size=page_size)
