"""Intake Handlers — admin intake CRUD, open/close, yearly generation.

Invariants:
    - start_date < end_date and 1 <= capacity <= 10000 on every write
    - capacity is never lowered below total_registered (read fresh from the row)
    - An intake with enrollments cannot be deleted (CONSTRAINT_VIOLATION, 409)
    - Generation never duplicates a month that already has an intake for the course

Design Decisions:
    - total_registered is not writable through this handler: it belongs to
      services/seat_reservation.py
    - Year grouping loads rows by [Jan 1, Jan 1 next year) and groups in Python,
      avoiding dialect-specific EXTRACT
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.core.clock import as_utc, start_of_today, utc_now
from courseportal.core.errors import ConflictError
from courseportal.core.intake_schedule import (
    plan_intakes, plan_months, validate_capacity, validate_dates, year_bounds,
)
from courseportal.db.list_query import paginate, search_condition
from courseportal.models.course import Course
from courseportal.models.enrollment import Enrollment
from courseportal.models.intake import Intake
from courseportal.schemas.common import ConstraintCheck, ListParams, Page
from courseportal.schemas.intake import (
    CourseIntakesForYear, IntakeCreate, IntakeDetail, IntakeGenerateRequest,
    IntakeGenerateResult, IntakeListItem, IntakeRead, IntakeUpdate,
)
from courseportal.services.persistence_helpers import count_where, get_or_404

logger = logging.getLogger(__name__)

INTAKE_COLUMNS = {
    "id": Intake.id,
    "course_id": Intake.course_id,
    "start_date": Intake.start_date,
    "end_date": Intake.end_date,
    "capacity": Intake.capacity,
    "is_open": Intake.is_open,
    "total_registered": Intake.total_registered,
    "created_at": Intake.created_at,
    "updated_at": Intake.updated_at,
    "course_title": Course.title,
    "course_slug": Course.slug,
}


def intake_list_item(intake: Intake, title: str | None, slug: str | None) -> IntakeListItem:
    return IntakeListItem(
        **IntakeRead.model_validate(intake).model_dump(exclude={"available_seats"}),
        course_title=title,
        course_slug=slug,
    )


class IntakeHandlers:
    """Admin intake management."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def admin_list(
        self, params: ListParams, course_id: uuid.UUID | None = None,
    ) -> Page[IntakeListItem]:
        stmt = (
            select(Intake, Course.title, Course.slug)
            .join(Course, Course.id == Intake.course_id)
        )
        page = await paginate(
            self.db, stmt, params, INTAKE_COLUMNS,
            extra_conditions=[
                Intake.course_id == course_id if course_id else None,
                search_condition(params.search, [Course.title, Course.slug]),
            ],
        )
        return Page[IntakeListItem](
            data=[intake_list_item(*row) for row in page.rows],
            total=page.total, page=page.page, page_size=page.page_size,
        )

    async def get(self, intake_id: uuid.UUID) -> Intake:
        return await get_or_404(self.db, Intake, intake_id, "Intake")

    async def get_detail(self, intake_id: uuid.UUID) -> IntakeDetail:
        intake = await self.get(intake_id)
        enrollments = await count_where(
            self.db, Enrollment.id, Enrollment.intake_id == intake_id,
        )
        return IntakeDetail(
            **intake_list_item(
                intake, intake.course.title, intake.course.slug,
            ).model_dump(exclude={"available_seats"}),
            enrollment_count=enrollments,
        )

    async def create(self, body: IntakeCreate) -> Intake:
        await get_or_404(self.db, Course, body.course_id, "Course")
        validate_dates(as_utc(body.start_date), as_utc(body.end_date))
        validate_capacity(body.capacity)
        intake = Intake(
            course_id=body.course_id,
            start_date=as_utc(body.start_date),
            end_date=as_utc(body.end_date),
            capacity=body.capacity,
            is_open=body.is_open,
        )
        self.db.add(intake)
        await self.db.commit()
        logger.info("Intake created", extra={"intake_id": intake.id})
        return await self.get(intake.id)

    async def update(self, intake_id: uuid.UUID, body: IntakeUpdate) -> Intake:
        intake = await self.get(intake_id)
        changes = body.model_dump(exclude_unset=True, exclude_none=True)
        if "course_id" in changes:
            await get_or_404(self.db, Course, changes["course_id"], "Course")
        start = as_utc(changes.get("start_date", intake.start_date))
        end = as_utc(changes.get("end_date", intake.end_date))
        validate_dates(start, end)
        if "capacity" in changes:
            validate_capacity(changes["capacity"], intake.total_registered)

        for key, value in changes.items():
            if key in ("start_date", "end_date"):
                value = as_utc(value)
            setattr(intake, key, value)
        await self.db.commit()
        logger.info("Intake updated", extra={"intake_id": intake_id})
        return await self.get(intake_id)

    async def set_open(self, intake_id: uuid.UUID, is_open: bool) -> Intake:
        intake = await self.get(intake_id)
        intake.is_open = is_open
        await self.db.commit()
        logger.info(
            f"Intake {'opened' if is_open else 'closed'}",
            extra={"intake_id": intake_id},
        )
        return intake

    async def constraint_check(self, intake_id: uuid.UUID) -> ConstraintCheck:
        await self.get(intake_id)
        enrollments = await count_where(
            self.db, Enrollment.id, Enrollment.intake_id == intake_id,
        )
        if enrollments:
            return ConstraintCheck(
                can_delete=False,
                reason=f"Intake has {enrollments} enrollment(s)",
                counts={"enrollments": enrollments},
            )
        return ConstraintCheck(can_delete=True, counts={"enrollments": 0})

    async def delete(self, intake_id: uuid.UUID) -> None:
        check = await self.constraint_check(intake_id)
        if not check.can_delete:
            raise ConflictError(
                check.reason, "CONSTRAINT_VIOLATION", details=check.counts,
            )
        intake = await self.get(intake_id)
        await self.db.delete(intake)
        await self.db.commit()
        logger.info("Intake deleted", extra={"intake_id": intake_id})

    # ─── Generation and yearly views ─────────────────────────────

    async def generate_for_course(
        self, course_id: uuid.UUID, body: IntakeGenerateRequest,
    ) -> IntakeGenerateResult:
        await get_or_404(self.db, Course, course_id, "Course")
        year = body.year or utc_now().year
        existing = await self._intakes_in_year(year, course_id)
        existing_months = {as_utc(i.start_date).month for i in existing}

        planned = plan_intakes(year, body.plan, existing_months)
        created = [
            Intake(
                course_id=course_id,
                start_date=p.start_date,
                end_date=p.end_date,
                is_open=True,
            )
            for p in planned
        ]
        self.db.add_all(created)
        await self.db.commit()

        existing_count = len(existing_months & set(plan_months(body.plan)))
        logger.info(
            f"Generated {len(created)} {body.plan.value} intake(s) for {year}",
        )
        return IntakeGenerateResult(
            generated=[IntakeRead.model_validate(i) for i in created],
            generated_count=len(created),
            existing_count=existing_count,
            total_count=len(created) + existing_count,
        )

    async def by_course_and_year(
        self, year: int, course_id: uuid.UUID | None = None,
    ) -> list[CourseIntakesForYear]:
        intakes = await self._intakes_in_year(year, course_id)
        grouped: dict[uuid.UUID, CourseIntakesForYear] = {}
        for intake in intakes:
            group = grouped.get(intake.course_id)
            if group is None:
                group = CourseIntakesForYear(
                    course_id=intake.course_id,
                    course_title=intake.course.title,
                    intakes=[],
                )
                grouped[intake.course_id] = group
            group.intakes.append(IntakeRead.model_validate(intake))
        return list(grouped.values())

    async def list_all(self) -> list[IntakeListItem]:
        return await self._list_with_course()

    async def list_all_active(self) -> list[IntakeListItem]:
        return await self._list_with_course(
            Intake.is_open.is_(True), Intake.start_date >= start_of_today(),
        )

    async def _list_with_course(self, *conditions) -> list[IntakeListItem]:
        result = await self.db.execute(
            select(Intake, Course.title, Course.slug)
            .join(Course, Course.id == Intake.course_id)
            .where(*conditions)
            .order_by(Intake.start_date.asc()),
        )
        return [intake_list_item(*row) for row in result.all()]

    async def _intakes_in_year(
        self, year: int, course_id: uuid.UUID | None = None,
    ) -> list[Intake]:
        start, end = year_bounds(year)
        stmt = (
            select(Intake)
            .where(Intake.start_date >= start, Intake.start_date < end)
            .order_by(Intake.start_date.asc())
        )
        if course_id:
            stmt = stmt.where(Intake.course_id == course_id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

