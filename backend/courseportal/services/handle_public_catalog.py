"""Public Catalog — read-only course, intake and category views for the website.

Invariants:
    - Never exposes admin-only aggregates (enrollment counts, payments)
    - Sort keys outside PUBLIC_SORT_COLUMNS fall back to created_at DESC
    - "Upcoming" means start_date >= start of today (UTC) and the intake is open;
      the list view's next intake is the earliest future start regardless of is_open
    - Related courses: same category, excluding the course itself, at most 3

Design Decisions:
    - Next intake per course is resolved with one IN query over the page's course ids
      rather than a per-row subquery join
"""

import logging
import uuid

from sqlalchemy import and_, exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.core.clock import as_utc, start_of_today, utc_now
from courseportal.core.domain_types import SortOrder
from courseportal.core.errors import ResourceNotFoundError
from courseportal.core.intake_schedule import available_seats, year_bounds
from courseportal.db.list_query import paginate
from courseportal.models.course import Course
from courseportal.models.course_category import CourseCategory
from courseportal.models.intake import Intake
from courseportal.schemas.catalog import (
    CourseDetail, CourseRead, PublicCourseFilters, PublicCourseListItem,
)
from courseportal.schemas.common import ListParams, Page
from courseportal.schemas.intake import IntakeListItem, IntakeRead
from courseportal.services.persistence_helpers import get_or_404

logger = logging.getLogger(__name__)

PUBLIC_SORT_COLUMNS = {
    "created_at": Course.created_at,
    "name": Course.title,
    "category": CourseCategory.name,
    "price": Course.price,
    "duration_type": Course.duration_type,
    "duration_value": Course.duration_value,
}

RELATED_LIMIT = 3
NEW_COURSES_LIMIT = 3
UPCOMING_LIMIT = 5


def public_filter_conditions(filters: PublicCourseFilters) -> list:
    conditions = []
    if filters.title and filters.title.strip():
        conditions.append(Course.title.ilike(f"%{filters.title.strip()}%"))
    if filters.category:
        conditions.append(Course.category_id == filters.category)
    if filters.duration:
        conditions.append(Course.duration_value == filters.duration)
    if filters.intake_date:
        day = as_utc(filters.intake_date)
        conditions.append(exists().where(
            Intake.course_id == Course.id,
            Intake.start_date <= day,
            Intake.end_date >= day,
        ))
    return conditions


def _intake_item(intake: Intake) -> IntakeListItem:
    return IntakeListItem(
        **IntakeRead.model_validate(intake).model_dump(exclude={"available_seats"}),
        course_title=intake.course.title if intake.course else None,
        course_slug=intake.course.slug if intake.course else None,
    )


class PublicCatalogHandlers:
    """Queries behind the public website."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Courses ─────────────────────────────────────────────────

    async def list_courses(
        self,
        filters: PublicCourseFilters,
        page: int = 1,
        page_size: int = 10,
        sort_by: str = "created_at",
        order: SortOrder = SortOrder.DESC,
    ) -> Page[PublicCourseListItem]:
        stmt = select(Course).outerjoin(
            CourseCategory, CourseCategory.id == Course.category_id,
        )
        params = ListParams(
            page=page, page_size=page_size, sort_by=sort_by, order=order,
        )
        result = await paginate(
            self.db, stmt, params, PUBLIC_SORT_COLUMNS,
            extra_conditions=public_filter_conditions(filters),
        )
        courses = [row[0] for row in result.rows]
        next_intakes = await self._next_intakes([c.id for c in courses])

        items = []
        for course in courses:
            item = PublicCourseListItem(**CourseRead.model_validate(course).model_dump())
            intake = next_intakes.get(course.id)
            if intake is not None:
                item.next_intake_id = intake.id
                item.next_intake_date = intake.start_date
                item.available_seats = available_seats(
                    intake.capacity, intake.total_registered,
                )
            items.append(item)
        return Page[PublicCourseListItem](
            data=items, total=result.total,
            page=result.page, page_size=result.page_size,
        )

    async def _next_intakes(self, course_ids: list[uuid.UUID]) -> dict:
        if not course_ids:
            return {}
        result = await self.db.execute(
            select(Intake)
            .where(Intake.course_id.in_(course_ids), Intake.start_date > utc_now())
            .order_by(Intake.start_date.asc()),
        )
        earliest = {}
        for intake in result.scalars().all():
            earliest.setdefault(intake.course_id, intake)
        return earliest

    async def get_course(self, course_id: uuid.UUID) -> CourseRead:
        course = await get_or_404(self.db, Course, course_id, "Course")
        return CourseRead.model_validate(course)

    async def get_course_by_slug(self, slug: str) -> CourseDetail:
        """Course with its current and future intakes (end_date >= now)."""
        result = await self.db.execute(select(Course).where(Course.slug == slug))
        course = result.scalar_one_or_none()
        if course is None:
            raise ResourceNotFoundError("Course", slug)
        intakes = await self.db.execute(
            select(Intake)
            .where(Intake.course_id == course.id, Intake.end_date >= utc_now())
            .order_by(Intake.start_date.asc()),
        )
        return CourseDetail(
            **CourseRead.model_validate(course).model_dump(),
            intakes=[IntakeRead.model_validate(i) for i in intakes.scalars().all()],
        )

    async def related_courses(
        self, course_id: uuid.UUID, category_id: uuid.UUID | None = None,
    ) -> list[CourseRead]:
        if category_id is None:
            course = await get_or_404(self.db, Course, course_id, "Course")
            category_id = course.category_id
        if category_id is None:
            return []
        result = await self.db.execute(
            select(Course)
            .where(Course.category_id == category_id, Course.id != course_id)
            .order_by(Course.created_at.desc())
            .limit(RELATED_LIMIT),
        )
        return [CourseRead.model_validate(c) for c in result.scalars().all()]

    async def new_courses(self) -> list[CourseRead]:
        result = await self.db.execute(
            select(Course).order_by(Course.created_at.desc()).limit(NEW_COURSES_LIMIT),
        )
        return [CourseRead.model_validate(c) for c in result.scalars().all()]

    async def list_categories(self) -> list[CourseCategory]:
        result = await self.db.execute(
            select(CourseCategory).order_by(CourseCategory.name.asc()),
        )
        return list(result.scalars().all())

    # ─── Intakes ─────────────────────────────────────────────────

    def _upcoming(self):
        return and_(Intake.start_date >= start_of_today(), Intake.is_open.is_(True))

    async def active_intakes_for_course(
        self, course_id: uuid.UUID,
    ) -> list[IntakeRead]:
        result = await self.db.execute(
            select(Intake)
            .where(Intake.course_id == course_id, self._upcoming())
            .order_by(Intake.start_date.asc()),
        )
        return [IntakeRead.model_validate(i) for i in result.scalars().all()]

    async def get_intake(self, intake_id: uuid.UUID) -> IntakeListItem:
        intake = await get_or_404(self.db, Intake, intake_id, "Intake")
        return _intake_item(intake)

    async def upcoming_intakes(self, limit: int = UPCOMING_LIMIT) -> list[IntakeListItem]:
        result = await self.db.execute(
            select(Intake)
            .where(self._upcoming())
            .order_by(Intake.start_date.asc())
            .limit(limit),
        )
        return [_intake_item(i) for i in result.scalars().all()]

    async def open_intakes(self) -> list[IntakeListItem]:
        result = await self.db.execute(
            select(Intake).where(self._upcoming()).order_by(Intake.start_date.asc()),
        )
        return [_intake_item(i) for i in result.scalars().all()]

    async def course_intakes_by_slug(
        self, slug: str, year: int | None = None,
    ) -> list[IntakeRead]:
        course_id = (await self.db.execute(
            select(Course.id).where(Course.slug == slug),
        )).scalar_one_or_none()
        if course_id is None:
            raise ResourceNotFoundError("Course", slug)
        start, end = year_bounds(year or utc_now().year)
        result = await self.db.execute(
            select(Intake)
            .where(
                Intake.course_id == course_id,
                Intake.start_date >= start,
                Intake.start_date < end,
            )
            .order_by(Intake.start_date.asc()),
        )
        return [IntakeRead.model_validate(i) for i in result.scalars().all()]
