"""Course Handlers — admin course CRUD, image management and delete checks.

Invariants:
    - Field rules come from core/course_rules.py for both create and partial update
    - Slug is generated from the title when omitted; a duplicate slug is a 409
    - A course with intakes or enrollments cannot be deleted (CONSTRAINT_VIOLATION)
    - Replacing or deleting an image removes the previous file from storage

Design Decisions:
    - Admin list counts intakes/enrollments with correlated scalar subqueries so the
      COUNT(*) of the paged query stays one row per course
"""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.core.course_rules import resolve_slug, validate_course_fields
from courseportal.core.errors import ConflictError
from courseportal.db.list_query import paginate, search_condition
from courseportal.infrastructure.storage import LocalImageStorage
from courseportal.models.affiliation import Affiliation
from courseportal.models.course import Course
from courseportal.models.course_category import CourseCategory
from courseportal.models.enrollment import Enrollment
from courseportal.models.intake import Intake
from courseportal.schemas.catalog import (
    CourseAdminListItem, CourseCreate, CourseDetail, CourseRead, CourseUpdate,
)
from courseportal.schemas.common import ConstraintCheck, ListParams, Page
from courseportal.schemas.intake import IntakeRead
from courseportal.services.persistence_helpers import (
    commit_or_conflict, count_where, get_or_404,
)

logger = logging.getLogger(__name__)

COURSE_COLUMNS = {
    "id": Course.id,
    "title": Course.title,
    "slug": Course.slug,
    "level": Course.level,
    "price": Course.price,
    "duration_type": Course.duration_type,
    "duration_value": Course.duration_value,
    "category_id": Course.category_id,
    "affiliation_id": Course.affiliation_id,
    "category_name": CourseCategory.name,
    "affiliation_name": Affiliation.name,
    "created_at": Course.created_at,
    "updated_at": Course.updated_at,
}

_DUPLICATE_SLUG = "A course with this slug already exists"


def _intake_count():
    return (
        select(func.count(Intake.id))
        .where(Intake.course_id == Course.id)
        .correlate(Course)
        .scalar_subquery()
    )


def _enrollment_count():
    return (
        select(func.count(Enrollment.id))
        .join(Intake, Intake.id == Enrollment.intake_id)
        .where(Intake.course_id == Course.id)
        .correlate(Course)
        .scalar_subquery()
    )


class CourseHandlers:
    """Admin course management."""

    def __init__(self, db: AsyncSession, storage: LocalImageStorage | None = None):
        self.db = db
        self.storage = storage

    async def admin_list(self, params: ListParams) -> Page[CourseAdminListItem]:
        stmt = (
            select(
                Course,
                _intake_count().label("intake_count"),
                _enrollment_count().label("enrollment_count"),
            )
            .outerjoin(CourseCategory, CourseCategory.id == Course.category_id)
            .outerjoin(Affiliation, Affiliation.id == Course.affiliation_id)
        )
        page = await paginate(
            self.db, stmt, params, COURSE_COLUMNS,
            extra_conditions=[search_condition(
                params.search,
                [Course.title, Course.slug, CourseCategory.name, Affiliation.name],
            )],
        )
        return Page[CourseAdminListItem](
            data=[
                CourseAdminListItem(
                    **CourseRead.model_validate(course).model_dump(),
                    intake_count=intakes or 0,
                    enrollment_count=enrollments or 0,
                )
                for course, intakes, enrollments in page.rows
            ],
            total=page.total, page=page.page, page_size=page.page_size,
        )

    async def get(self, course_id: uuid.UUID) -> Course:
        return await get_or_404(self.db, Course, course_id, "Course")

    async def get_detail(self, course_id: uuid.UUID) -> CourseDetail:
        course = await self.get(course_id)
        intakes = await self.db.execute(
            select(Intake)
            .where(Intake.course_id == course_id)
            .order_by(Intake.start_date.asc()),
        )
        return CourseDetail(
            **CourseRead.model_validate(course).model_dump(),
            intakes=[IntakeRead.model_validate(i) for i in intakes.scalars().all()],
        )

    async def create(self, body: CourseCreate) -> Course:
        title = body.title.strip()
        validate_course_fields(
            title=title, price=body.price,
            duration_value=body.duration_value, level=body.level,
        )
        slug = resolve_slug(title, body.slug)
        await self._check_references(body.category_id, body.affiliation_id)

        course = Course(
            title=title,
            slug=slug,
            category_id=body.category_id,
            affiliation_id=body.affiliation_id,
            course_highlights=body.course_highlights,
            course_overview=body.course_overview,
            image_url=body.image_url,
            level=body.level,
            duration_type=body.duration_type.value,
            duration_value=body.duration_value,
            price=body.price,
        )
        self.db.add(course)
        await commit_or_conflict(self.db, _DUPLICATE_SLUG)
        logger.info(f"Course created: {slug}")
        return await self.get(course.id)

    async def update(self, course_id: uuid.UUID, body: CourseUpdate) -> Course:
        course = await self.get(course_id)
        changes = body.model_dump(exclude_unset=True)
        if "title" in changes and changes["title"] is not None:
            changes["title"] = changes["title"].strip()
        validate_course_fields(
            title=changes.get("title"),
            slug=changes.get("slug") or None,
            price=changes.get("price"),
            duration_value=changes.get("duration_value"),
            level=changes.get("level"),
        )
        await self._check_references(
            changes.get("category_id"), changes.get("affiliation_id"),
        )

        for key, value in changes.items():
            if key == "slug" and not value:
                continue
            if key in ("title", "level", "duration_value", "price") and value is None:
                continue
            if key == "duration_type":
                if value is None:
                    continue
                value = value.value
            setattr(course, key, value)
        await commit_or_conflict(self.db, _DUPLICATE_SLUG)
        logger.info(f"Course updated: {course_id}")
        return await self.get(course_id)

    async def _check_references(
        self, category_id: uuid.UUID | None, affiliation_id: uuid.UUID | None,
    ) -> None:
        if category_id:
            await get_or_404(self.db, CourseCategory, category_id, "Category")
        if affiliation_id:
            await get_or_404(self.db, Affiliation, affiliation_id, "Affiliation")

    # ─── Delete ──────────────────────────────────────────────────

    async def constraint_check(self, course_id: uuid.UUID) -> ConstraintCheck:
        await self.get(course_id)
        intakes = await count_where(self.db, Intake.id, Intake.course_id == course_id)
        enrollments = await count_where(
            self.db, Enrollment.id,
            Enrollment.intake_id.in_(
                select(Intake.id).where(Intake.course_id == course_id),
            ),
        )
        counts = {"intakes": intakes, "enrollments": enrollments}
        if intakes or enrollments:
            return ConstraintCheck(
                can_delete=False,
                reason=(
                    f"Course has {intakes} intake(s) and "
                    f"{enrollments} enrollment(s)"
                ),
                counts=counts,
            )
        return ConstraintCheck(can_delete=True, counts=counts)

    async def delete(self, course_id: uuid.UUID) -> None:
        check = await self.constraint_check(course_id)
        if not check.can_delete:
            raise ConflictError(
                check.reason, "CONSTRAINT_VIOLATION", details=check.counts,
            )
        course = await self.get(course_id)
        image_url = course.image_url
        await self.db.delete(course)
        await self.db.commit()
        if self.storage and image_url:
            await self.storage.delete(image_url)
        logger.info(f"Course deleted: {course_id}")

    # ─── Images ──────────────────────────────────────────────────

    async def upload_image(
        self,
        course_id: uuid.UUID,
        content_type: str | None,
        data: bytes,
    ) -> str:
        course = await self.get(course_id)
        previous = course.image_url
        url = await self.storage.save(content_type, data)
        course.image_url = url
        await self.db.commit()
        if previous and previous != url:
            await self.storage.delete(previous)
        logger.info(f"Course image stored: {url}")
        return url

    async def delete_image(self, course_id: uuid.UUID) -> Course:
        course = await self.get(course_id)
        if course.image_url:
            await self.storage.delete(course.image_url)
            course.image_url = None
            await self.db.commit()
        return await self.get(course_id)
