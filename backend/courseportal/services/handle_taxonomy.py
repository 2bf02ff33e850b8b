"""Taxonomy Handlers — CRUD shared by course categories and affiliations.

Invariants:
    - Names are unique: a duplicate surfaces as UNIQUE_CONSTRAINT_VIOLATION (409)
    - A row referenced by any course cannot be deleted (CONSTRAINT_VIOLATION, 409)
    - constraint_check() and delete() use the same reference count

Design Decisions:
    - One handler parameterized by model + course FK column: categories and
      affiliations have identical lifecycles and differ only in fields
"""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.core.errors import ConflictError
from courseportal.db.list_query import PageResult, paginate, search_condition
from courseportal.models.affiliation import Affiliation
from courseportal.models.course import Course
from courseportal.models.course_category import CourseCategory
from courseportal.schemas.common import ConstraintCheck, ListParams
from courseportal.services.persistence_helpers import (
    commit_or_conflict, count_where, get_or_404,
)

logger = logging.getLogger(__name__)


class TaxonomyHandlers:
    """CRUD for a lookup table referenced by courses."""

    def __init__(self, db: AsyncSession, model, course_fk, resource_type: str):
        self.db = db
        self.model = model
        self.course_fk = course_fk
        self.resource_type = resource_type

    @classmethod
    def categories(cls, db: AsyncSession) -> "TaxonomyHandlers":
        return cls(db, CourseCategory, Course.category_id, "Category")

    @classmethod
    def affiliations(cls, db: AsyncSession) -> "TaxonomyHandlers":
        return cls(db, Affiliation, Course.affiliation_id, "Affiliation")

    def _columns(self) -> dict:
        columns = {
            "id": self.model.id,
            "name": self.model.name,
            "description": self.model.description,
            "created_at": self.model.created_at,
            "updated_at": self.model.updated_at,
        }
        if hasattr(self.model, "type"):
            columns["type"] = self.model.type
        return columns

    async def list_page(self, params: ListParams) -> PageResult:
        """Rows are (entity, course_count)."""
        course_count = (
            select(func.count(Course.id))
            .where(self.course_fk == self.model.id)
            .correlate(self.model)
            .scalar_subquery()
        )
        stmt = select(self.model, course_count.label("course_count"))
        return await paginate(
            self.db, stmt, params, self._columns(),
            extra_conditions=[search_condition(
                params.search, [self.model.name, self.model.description],
            )],
        )

    async def list_all(self) -> list:
        result = await self.db.execute(
            select(self.model).order_by(self.model.name.asc()),
        )
        return list(result.scalars().all())

    async def get(self, entity_id: uuid.UUID):
        return await get_or_404(self.db, self.model, entity_id, self.resource_type)

    async def course_count(self, entity_id: uuid.UUID) -> int:
        return await count_where(self.db, Course.id, self.course_fk == entity_id)

    async def create(self, **fields):
        entity = self.model(**fields)
        self.db.add(entity)
        await commit_or_conflict(
            self.db, f"{self.resource_type} with this name already exists",
        )
        logger.info(f"{self.resource_type} created: {entity.name}")
        return entity

    async def update(self, entity_id: uuid.UUID, **fields):
        entity = await self.get(entity_id)
        for key, value in fields.items():
            setattr(entity, key, value)
        await commit_or_conflict(
            self.db, f"{self.resource_type} with this name already exists",
        )
        return entity

    async def constraint_check(self, entity_id: uuid.UUID) -> ConstraintCheck:
        await self.get(entity_id)
        courses = await self.course_count(entity_id)
        if courses:
            return ConstraintCheck(
                can_delete=False,
                reason=f"{self.resource_type} is used by {courses} course(s)",
                counts={"courses": courses},
            )
        return ConstraintCheck(can_delete=True, counts={"courses": 0})

    async def delete(self, entity_id: uuid.UUID) -> None:
        check = await self.constraint_check(entity_id)
        if not check.can_delete:
            raise ConflictError(
                check.reason, "CONSTRAINT_VIOLATION", details=check.counts,
            )
        entity = await self.get(entity_id)
        await self.db.delete(entity)
        await self.db.commit()
        logger.info(f"{self.resource_type} deleted: {entity_id}")
