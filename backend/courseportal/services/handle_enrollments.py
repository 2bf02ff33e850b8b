"""Enrollment Handlers — create, list, move, transition and delete enrollments.

Invariants:
    - Creation = duplicate check + atomic seat reservation + insert, in ONE transaction;
      any failure rolls the whole thing back (no orphan seat, no orphan row)
    - The (user_id, intake_id) unique constraint backs the duplicate pre-check:
      a racing insert surfaces as ALREADY_ENROLLED (409), never a 500
    - Seat accounting follows core/enforce_enrollment.seat_delta for every status
      change, intake move and delete
    - Notifications go out after commit and never fail the request

Design Decisions:
    - Payment sync mutates the loaded Payment objects (not a Core UPDATE) so the
      returned enrollment reflects the synced payment without a reload
    - Admin-created enrollments get a pending cash payment for the course price
      (skipped for free courses)
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.core.clock import utc_now
from courseportal.core.domain_types import (
    EnrollmentStatus, PaymentMethod, PaymentStatus,
)
from courseportal.core.enforce_enrollment import (
    holds_seat, notification_for, payment_status_for, seat_delta,
    validate_deletable, validate_status_transition,
)
from courseportal.core.errors import ConflictError, PortalError
from courseportal.db.list_query import paginate, search_condition
from courseportal.models.course import Course
from courseportal.models.enrollment import Enrollment
from courseportal.models.intake import Intake
from courseportal.models.payment import Payment
from courseportal.models.profile import Profile
from courseportal.schemas.common import ListParams, Page
from courseportal.schemas.enrollment import (
    AdminEnrollmentCreate, BulkFailure, BulkStatusResult, BulkStatusUpdate,
    EnrollmentCourseSummary, EnrollmentDetail, EnrollmentListItem,
    EnrollmentRead, EnrollmentStatusUpdate, EnrollmentUpdate,
    EnrollmentUserSummary, UserEnrollmentItem,
)
from courseportal.schemas.intake import IntakeRead
from courseportal.schemas.payment import PaymentRead
from courseportal.services.notifications import NotificationService
from courseportal.services.persistence_helpers import get_or_404
from courseportal.services.seat_reservation import release_seat, reserve_seat

logger = logging.getLogger(__name__)

ENROLLMENT_COLUMNS = {
    "id": Enrollment.id,
    "status": Enrollment.status,
    "user_id": Enrollment.user_id,
    "intake_id": Enrollment.intake_id,
    "enrollment_date": Enrollment.enrollment_date,
    "created_at": Enrollment.created_at,
    "updated_at": Enrollment.updated_at,
    "user_name": Profile.full_name,
    "user_email": Profile.email,
    "course_id": Course.id,
    "course_title": Course.title,
    "start_date": Intake.start_date,
    "payment_status": Payment.status,
    "payment_amount": Payment.amount,
}


def _already_enrolled() -> ConflictError:
    return ConflictError(
        "User is already enrolled in this intake", "ALREADY_ENROLLED",
    )


def enrollment_list_item(row) -> EnrollmentListItem:
    """Map a row of enrollment_list_select() to its response item."""
    (enrollment, user_name, user_email, course_id, course_title,
     start_date, end_date, payment_id, payment_status, payment_amount) = row
    return EnrollmentListItem(
        **EnrollmentRead.model_validate(enrollment).model_dump(),
        user_name=user_name,
        user_email=user_email,
        course_id=course_id,
        course_title=course_title,
        start_date=start_date,
        end_date=end_date,
        payment_id=payment_id,
        payment_status=payment_status,
        payment_amount=payment_amount,
    )


def enrollment_list_select():
    return (
        select(
            Enrollment, Profile.full_name, Profile.email, Course.id,
            Course.title, Intake.start_date, Intake.end_date,
            Payment.id, Payment.status, Payment.amount,
        )
        .join(Profile, Profile.id == Enrollment.user_id)
        .join(Intake, Intake.id == Enrollment.intake_id)
        .join(Course, Course.id == Intake.course_id)
        .outerjoin(Payment, Payment.enrollment_id == Enrollment.id)
    )


class EnrollmentHandlers:
    """Enrollment use cases for students and admins."""

    def __init__(
        self, db: AsyncSession, notifier: NotificationService | None = None,
    ):
        self.db = db
        self.notifier = notifier

    # ─── Creation ────────────────────────────────────────────────

    async def create_for_user(
        self, user: Profile, intake_id: uuid.UUID, notes: str | None = None,
    ) -> Enrollment:
        """Student self-enrollment: always starts as requested."""
        enrollment = await self._create(
            user.id, intake_id, EnrollmentStatus.REQUESTED, notes,
        )
        logger.info(
            "Enrollment requested",
            extra={"enrollment_id": enrollment.id, "user_id": user.id,
                   "intake_id": intake_id},
        )
        if self.notifier:
            await self.notifier.enrollment_requested(enrollment)
        return enrollment

    async def admin_create(
        self, body: AdminEnrollmentCreate, admin_id: uuid.UUID | None = None,
    ) -> Enrollment:
        await get_or_404(self.db, Profile, body.user_id, "User")
        enrollment = await self._create(
            body.user_id, body.intake_id, body.status, body.notes,
            with_payment=True,
        )
        logger.info(
            "Enrollment created by admin",
            extra={"enrollment_id": enrollment.id, "admin_id": admin_id},
        )
        if self.notifier and body.notify:
            if body.status == EnrollmentStatus.REQUESTED:
                await self.notifier.enrollment_requested(enrollment)
            else:
                target = notification_for(EnrollmentStatus.REQUESTED, body.status)
                if target:
                    await self.notifier.enrollment_status_changed(
                        enrollment, target, admin_id=admin_id,
                    )
        return enrollment

    async def _create(
        self,
        user_id: uuid.UUID,
        intake_id: uuid.UUID,
        status: EnrollmentStatus,
        notes: str | None,
        with_payment: bool = False,
    ) -> Enrollment:
        intake = await get_or_404(self.db, Intake, intake_id, "Intake")
        course_price = intake.course.price
        await self._ensure_not_enrolled(user_id, intake_id)

        try:
            if holds_seat(status):
                await reserve_seat(self.db, intake_id)
            enrollment = Enrollment(
                user_id=user_id, intake_id=intake_id,
                status=status.value, notes=notes,
            )
            self.db.add(enrollment)
            await self.db.flush()
            if with_payment and course_price > 0:
                self._add_initial_payment(enrollment.id, course_price, status)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise _already_enrolled()
        except PortalError:
            await self.db.rollback()
            raise

        return await self._load(enrollment.id)

    def _add_initial_payment(self, enrollment_id, amount, status) -> None:
        payment_status = payment_status_for(status) or PaymentStatus.PENDING
        self.db.add(Payment(
            enrollment_id=enrollment_id,
            amount=amount,
            method=PaymentMethod.CASH.value,
            status=payment_status.value,
            paid_at=utc_now() if payment_status == PaymentStatus.COMPLETED else None,
        ))

    async def _ensure_not_enrolled(
        self, user_id: uuid.UUID, intake_id: uuid.UUID,
    ) -> None:
        existing = await self.db.execute(
            select(Enrollment.id).where(
                Enrollment.user_id == user_id,
                Enrollment.intake_id == intake_id,
            ),
        )
        if existing.first() is not None:
            raise _already_enrolled()

    # ─── Reads ───────────────────────────────────────────────────

    async def list_for_user(self, user_id: uuid.UUID) -> list[UserEnrollmentItem]:
        result = await self.db.execute(
            select(Enrollment, Course.id, Course.title, Course.slug,
                   Intake.start_date, Intake.end_date)
            .join(Intake, Intake.id == Enrollment.intake_id)
            .join(Course, Course.id == Intake.course_id)
            .where(Enrollment.user_id == user_id)
            .order_by(Enrollment.created_at.desc()),
        )
        return [
            UserEnrollmentItem(
                **EnrollmentRead.model_validate(e).model_dump(),
                course_id=course_id, course_title=title, course_slug=slug,
                start_date=start, end_date=end,
            )
            for e, course_id, title, slug, start, end in result.all()
        ]

    async def admin_list(
        self,
        params: ListParams,
        user_id: uuid.UUID | None = None,
        status: EnrollmentStatus | None = None,
    ) -> Page[EnrollmentListItem]:
        page = await paginate(
            self.db, enrollment_list_select(), params, ENROLLMENT_COLUMNS,
            extra_conditions=[
                Enrollment.user_id == user_id if user_id else None,
                Enrollment.status == status.value if status else None,
                search_condition(
                    params.search, [Profile.full_name, Profile.email, Course.title],
                ),
            ],
        )
        return Page[EnrollmentListItem](
            data=[enrollment_list_item(r) for r in page.rows],
            total=page.total, page=page.page, page_size=page.page_size,
        )

    async def get_detail(self, enrollment_id: uuid.UUID) -> EnrollmentDetail:
        enrollment = await self._load(enrollment_id)
        intake = enrollment.intake
        return EnrollmentDetail(
            enrollment=EnrollmentRead.model_validate(enrollment),
            user=EnrollmentUserSummary.model_validate(enrollment.user),
            intake=IntakeRead.model_validate(intake),
            course=EnrollmentCourseSummary.model_validate(intake.course),
            payment=(
                PaymentRead.model_validate(enrollment.payments[0])
                if enrollment.payments else None
            ),
        )

    # ─── Changes ─────────────────────────────────────────────────

    async def update(
        self, enrollment_id: uuid.UUID, body: EnrollmentUpdate,
    ) -> Enrollment:
        """Edit notes and/or move to another intake (seat moves with it)."""
        enrollment = await self._load(enrollment_id)
        old_intake_id = enrollment.intake_id
        try:
            if body.intake_id and body.intake_id != old_intake_id:
                await get_or_404(self.db, Intake, body.intake_id, "Intake")
                await self._ensure_not_enrolled(enrollment.user_id, body.intake_id)
                if holds_seat(EnrollmentStatus(enrollment.status)):
                    await reserve_seat(self.db, body.intake_id)
                    await release_seat(self.db, old_intake_id)
                enrollment.intake_id = body.intake_id
            if body.notes is not None:
                enrollment.notes = body.notes
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise _already_enrolled()
        except PortalError:
            await self.db.rollback()
            raise
        return await self._load(enrollment_id)

    async def update_status(
        self,
        enrollment_id: uuid.UUID,
        body: EnrollmentStatusUpdate,
        admin_id: uuid.UUID | None = None,
    ) -> Enrollment:
        enrollment = await self._load(enrollment_id)
        current = EnrollmentStatus(enrollment.status)
        target = body.status
        if current == target:
            return enrollment
        validate_status_transition(current, target)

        try:
            delta = seat_delta(current, target)
            if delta > 0:
                await reserve_seat(self.db, enrollment.intake_id)
            elif delta < 0:
                await release_seat(self.db, enrollment.intake_id)
            enrollment.status = target.value
            if target == EnrollmentStatus.CANCELLED:
                enrollment.cancelled_reason = body.cancelled_reason
            elif target == EnrollmentStatus.REQUESTED:
                enrollment.cancelled_reason = None
            self._sync_payments(enrollment, target)
            await self.db.commit()
        except PortalError:
            await self.db.rollback()
            raise

        logger.info(
            f"Enrollment status {current.value} -> {target.value}",
            extra={"enrollment_id": enrollment_id, "admin_id": admin_id},
        )
        enrollment = await self._load(enrollment_id)
        notify_status = notification_for(current, target)
        if self.notifier and body.notify and notify_status:
            await self.notifier.enrollment_status_changed(
                enrollment, notify_status, body.cancelled_reason, admin_id,
            )
        return enrollment

    def _sync_payments(
        self, enrollment: Enrollment, target: EnrollmentStatus,
    ) -> None:
        payment_status = payment_status_for(target)
        if payment_status is None:
            return
        for payment in enrollment.payments:
            if payment.status == PaymentStatus.REFUNDED.value:
                continue
            payment.status = payment_status.value
            if payment_status == PaymentStatus.COMPLETED and payment.paid_at is None:
                payment.paid_at = utc_now()

    async def bulk_update_status(
        self, body: BulkStatusUpdate, admin_id: uuid.UUID | None = None,
    ) -> BulkStatusResult:
        succeeded, failed = [], []
        single = EnrollmentStatusUpdate(
            status=body.status, cancelled_reason=body.cancelled_reason,
            notify=body.notify,
        )
        for enrollment_id in body.ids:
            try:
                await self.update_status(enrollment_id, single, admin_id)
                succeeded.append(enrollment_id)
            except PortalError as e:
                failed.append(BulkFailure(
                    id=enrollment_id, code=e.code, message=e.message,
                ))
        return BulkStatusResult(succeeded=succeeded, failed=failed)

    async def delete(self, enrollment_id: uuid.UUID) -> None:
        enrollment = await self._load(enrollment_id)
        status = EnrollmentStatus(enrollment.status)
        validate_deletable(status)
        try:
            if holds_seat(status):
                await release_seat(self.db, enrollment.intake_id)
            await self.db.delete(enrollment)
            await self.db.commit()
        except PortalError:
            await self.db.rollback()
            raise
        logger.info("Enrollment deleted", extra={"enrollment_id": enrollment_id})

    async def _load(self, enrollment_id: uuid.UUID) -> Enrollment:
        return await get_or_404(self.db, Enrollment, enrollment_id, "Enrollment")

