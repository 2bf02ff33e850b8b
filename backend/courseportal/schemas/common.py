"""Common Schemas — list parameters, paged envelope, and shared response shapes.

Invariants:
    - page >= 1, 1 <= page_size <= 100
    - order is "asc" or "desc"; unknown sort keys are resolved by db/list_query.py
    - Page is generic: Page[CourseListItem], Page[PaymentListItem], ...
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from courseportal.core.domain_types import SortOrder

T = TypeVar("T")


class ColumnFilter(BaseModel):
    """One data-table column filter: {"id": column, "value": ...}."""
    id: str
    value: Any = None


class ListParams(BaseModel):
    page: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1, le=100)
    sort_by: str = "created_at"
    order: SortOrder = SortOrder.DESC
    filters: list[ColumnFilter] = Field(default_factory=list)
    search: str | None = None
    all: bool = False


class Page(BaseModel, Generic[T]):
    data: list[T]
    total: int
    page: int
    page_size: int


class ConstraintCheck(BaseModel):
    """Whether a row can be deleted, with blocking reference counts."""
    can_delete: bool
    reason: str | None = None
    counts: dict[str, int] = Field(default_factory=dict)


class DeleteResponse(BaseModel):
    id: Any
    deleted: bool = True
