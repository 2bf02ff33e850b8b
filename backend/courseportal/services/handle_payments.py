"""Payment Handlers — payments, refunds, and the student's payment history.

Invariants:
    - Amount and transition rules come from core/enforce_payment.py
    - A refund inserts the refund row AND updates the payment totals in ONE commit
    - The refunded total grows through ONE conditional UPDATE (status completed AND
      refunded_amount + refund <= amount); zero affected rows => refused
    - amount is never lowered below refunded_amount
    - Moving a payment to completed stamps paid_at (once)
    - Students can only pay for their own enrollments

Design Decisions:
    - Refund validation runs first against freshly loaded totals (populate_existing)
      for precise error codes; the conditional UPDATE settles concurrent refunds
"""

import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.core.clock import utc_now
from courseportal.core.domain_types import PaymentStatus
from courseportal.core.enforce_payment import (
    status_after_refund, validate_amount_covers_refunds, validate_initial_status,
    validate_payment_amount, validate_payment_transition, validate_refund,
)
from courseportal.core.errors import (
    ConflictError, PermissionDeniedError, ResourceNotFoundError,
)
from courseportal.db.list_query import paginate, search_condition
from courseportal.models.course import Course
from courseportal.models.enrollment import Enrollment
from courseportal.models.intake import Intake
from courseportal.models.payment import Payment
from courseportal.models.profile import Profile
from courseportal.models.refund import Refund
from courseportal.schemas.common import ListParams, Page
from courseportal.schemas.payment import (
    PaymentCreate, PaymentListItem, PaymentRead, PaymentUpdate,
    RefundCreate, RefundListItem, RefundRead, RefundResult,
    UserPaymentCreate, UserPaymentItem,
)
from courseportal.services.persistence_helpers import get_or_404

logger = logging.getLogger(__name__)

PAYMENT_COLUMNS = {
    "id": Payment.id,
    "status": Payment.status,
    "method": Payment.method,
    "amount": Payment.amount,
    "enrollment_id": Payment.enrollment_id,
    "is_refunded": Payment.is_refunded,
    "paid_at": Payment.paid_at,
    "created_at": Payment.created_at,
    "updated_at": Payment.updated_at,
    "user_id": Profile.id,
    "user_name": Profile.full_name,
    "user_email": Profile.email,
    "course_title": Course.title,
    "enrollment_status": Enrollment.status,
}

USER_PAYMENT_COLUMNS = {
    key: PAYMENT_COLUMNS[key]
    for key in (
        "id", "status", "method", "amount", "enrollment_id",
        "paid_at", "created_at", "course_title",
    )
}

REFUND_COLUMNS = {
    "id": Refund.id,
    "amount": Refund.amount,
    "reason": Refund.reason,
    "payment_id": Refund.payment_id,
    "user_id": Refund.user_id,
    "created_at": Refund.created_at,
    "user_name": Profile.full_name,
    "user_email": Profile.email,
}


def payment_list_select():
    return (
        select(
            Payment, Profile.id, Profile.full_name, Profile.email,
            Course.title, Enrollment.status,
        )
        .join(Enrollment, Enrollment.id == Payment.enrollment_id)
        .join(Profile, Profile.id == Enrollment.user_id)
        .join(Intake, Intake.id == Enrollment.intake_id)
        .join(Course, Course.id == Intake.course_id)
    )


def payment_list_item(row) -> PaymentListItem:
    payment, user_id, user_name, user_email, course_title, enrollment_status = row
    return PaymentListItem(
        **PaymentRead.model_validate(payment).model_dump(),
        user_id=user_id, user_name=user_name, user_email=user_email,
        course_title=course_title, enrollment_status=enrollment_status,
    )


class PaymentHandlers:
    """Admin payment/refund management and student payments."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Admin: payments ─────────────────────────────────────────

    async def admin_list(
        self, params: ListParams, status: PaymentStatus | None = None,
    ) -> Page[PaymentListItem]:
        page = await paginate(
            self.db, payment_list_select(), params, PAYMENT_COLUMNS,
            extra_conditions=[
                Payment.status == status.value if status else None,
                search_condition(
                    params.search,
                    [Profile.full_name, Profile.email, Course.title],
                ),
            ],
        )
        return Page[PaymentListItem](
            data=[payment_list_item(r) for r in page.rows],
            total=page.total, page=page.page, page_size=page.page_size,
        )

    async def get_detail(self, payment_id: uuid.UUID) -> PaymentListItem:
        result = await self.db.execute(
            payment_list_select().where(Payment.id == payment_id),
        )
        row = result.first()
        if row is None:
            raise ResourceNotFoundError("Payment", str(payment_id))
        return payment_list_item(row)

    async def get_by_enrollment(
        self, enrollment_id: uuid.UUID,
    ) -> PaymentListItem:
        result = await self.db.execute(
            payment_list_select()
            .where(Payment.enrollment_id == enrollment_id)
            .order_by(Payment.created_at.desc())
            .limit(1),
        )
        row = result.first()
        if row is None:
            raise ResourceNotFoundError(
                "Payment", f"for enrollment {enrollment_id}",
            )
        return payment_list_item(row)

    async def create(self, body: PaymentCreate) -> Payment:
        validate_payment_amount(body.amount)
        validate_initial_status(body.status)
        await get_or_404(self.db, Enrollment, body.enrollment_id, "Enrollment")
        payment = Payment(
            enrollment_id=body.enrollment_id,
            amount=body.amount,
            method=body.method.value,
            status=body.status.value,
            remarks=body.remarks,
            paid_at=utc_now() if body.status == PaymentStatus.COMPLETED else None,
        )
        self.db.add(payment)
        await self.db.commit()
        logger.info("Payment created", extra={"payment_id": payment.id})
        return payment

    async def update(self, payment_id: uuid.UUID, body: PaymentUpdate) -> Payment:
        payment = await get_or_404(self.db, Payment, payment_id, "Payment")
        if body.amount is not None:
            validate_payment_amount(body.amount)
            validate_amount_covers_refunds(body.amount, payment.refunded_amount)
            payment.amount = body.amount
        if body.method is not None:
            payment.method = body.method.value
        if body.remarks is not None:
            payment.remarks = body.remarks
        await self.db.commit()
        return payment

    async def update_status(
        self, payment_id: uuid.UUID, target: PaymentStatus,
    ) -> Payment:
        payment = await get_or_404(self.db, Payment, payment_id, "Payment")
        current = PaymentStatus(payment.status)
        validate_payment_transition(current, target)
        payment.status = target.value
        if target == PaymentStatus.COMPLETED and payment.paid_at is None:
            payment.paid_at = utc_now()
        await self.db.commit()
        logger.info(
            f"Payment status {current.value} -> {target.value}",
            extra={"payment_id": payment_id},
        )
        return payment

    async def delete(self, payment_id: uuid.UUID) -> None:
        payment = await get_or_404(self.db, Payment, payment_id, "Payment")
        refunds = await self.db.execute(
            select(Refund).where(Refund.payment_id == payment_id),
        )
        for refund in refunds.scalars().all():
            await self.db.delete(refund)
        await self.db.delete(payment)
        await self.db.commit()
        logger.info("Payment deleted", extra={"payment_id": payment_id})

    # ─── Admin: refunds ──────────────────────────────────────────

    async def refund(
        self, payment_id: uuid.UUID, body: RefundCreate,
    ) -> RefundResult:
        payment = await get_or_404(self.db, Payment, payment_id, "Payment")
        validate_refund(
            PaymentStatus(payment.status), payment.amount,
            payment.refunded_amount, body.amount, body.reason,
        )
        await self._add_to_refunded_total(payment_id, body)

        # Row is locked until commit; reload the totals the UPDATE produced
        payment = await get_or_404(self.db, Payment, payment_id, "Payment")
        payment.status = status_after_refund(
            payment.amount, payment.refunded_amount,
        ).value
        user_id = (await self.db.execute(
            select(Enrollment.user_id).where(Enrollment.id == payment.enrollment_id),
        )).scalar_one_or_none()

        refund = Refund(
            payment_id=payment.id,
            enrollment_id=payment.enrollment_id,
            user_id=user_id,
            reason=body.reason.strip(),
            amount=body.amount,
        )
        self.db.add(refund)
        await self.db.commit()

        logger.info(
            f"Refund of {body.amount} recorded",
            extra={"payment_id": payment_id},
        )
        return RefundResult(
            refund=RefundRead.model_validate(refund),
            payment=PaymentRead.model_validate(payment),
        )

    async def _add_to_refunded_total(
        self, payment_id: uuid.UUID, body: RefundCreate,
    ) -> None:
        new_total = Payment.refunded_amount + body.amount
        result = await self.db.execute(
            update(Payment)
            .where(
                Payment.id == payment_id,
                Payment.status == PaymentStatus.COMPLETED.value,
                new_total <= Payment.amount,
            )
            .values(
                refunded_amount=new_total,
                is_refunded=True,
                refunded_at=utc_now(),
            )
            .execution_options(synchronize_session=False),
        )
        if result.rowcount == 1:
            return

        await self.db.rollback()
        fresh = await get_or_404(self.db, Payment, payment_id, "Payment")
        validate_refund(
            PaymentStatus(fresh.status), fresh.amount,
            fresh.refunded_amount, body.amount, body.reason,
        )
        logger.warning(
            "Refund refused: payment changed concurrently",
            extra={"payment_id": payment_id},
        )
        raise ConflictError(
            "Payment changed while the refund was being recorded",
            "REFUND_CONFLICT", details={"payment_id": str(payment_id)},
        )

    async def list_refunds(self, params: ListParams) -> Page[RefundListItem]:
        stmt = (
            select(Refund, Profile.full_name, Profile.email, Payment.amount)
            .outerjoin(Profile, Profile.id == Refund.user_id)
            .outerjoin(Payment, Payment.id == Refund.payment_id)
        )
        page = await paginate(
            self.db, stmt, params, REFUND_COLUMNS,
            extra_conditions=[search_condition(
                params.search, [Refund.reason, Profile.full_name, Profile.email],
            )],
        )
        return Page[RefundListItem](
            data=[
                RefundListItem(
                    **RefundRead.model_validate(refund).model_dump(),
                    user_name=name, user_email=email, payment_amount=amount,
                )
                for refund, name, email, amount in page.rows
            ],
            total=page.total, page=page.page, page_size=page.page_size,
        )

    async def get_refund(self, refund_id: uuid.UUID) -> Refund:
        return await get_or_404(self.db, Refund, refund_id, "Refund")

    # ─── Student ─────────────────────────────────────────────────

    async def list_for_user(
        self, user_id: uuid.UUID, params: ListParams,
    ) -> Page[UserPaymentItem]:
        stmt = (
            select(Payment, Course.title)
            .join(Enrollment, Enrollment.id == Payment.enrollment_id)
            .join(Intake, Intake.id == Enrollment.intake_id)
            .join(Course, Course.id == Intake.course_id)
        )
        page = await paginate(
            self.db, stmt, params, USER_PAYMENT_COLUMNS,
            extra_conditions=[Enrollment.user_id == user_id],
        )
        return Page[UserPaymentItem](
            data=[
                UserPaymentItem(
                    **PaymentRead.model_validate(p).model_dump(),
                    course_title=title,
                )
                for p, title in page.rows
            ],
            total=page.total, page=page.page, page_size=page.page_size,
        )

    async def create_for_user(
        self, user: Profile, body: UserPaymentCreate,
    ) -> Payment:
        enrollment = await get_or_404(
            self.db, Enrollment, body.enrollment_id, "Enrollment",
        )
        if enrollment.user_id != user.id:
            raise PermissionDeniedError(
                "You can only pay for your own enrollments",
            )
        return await self.create(PaymentCreate(
            enrollment_id=body.enrollment_id, amount=body.amount,
            method=body.method, status=PaymentStatus.PENDING,
            remarks=body.remarks,
        ))
