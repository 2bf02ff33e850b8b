"""Admin Payment & Refund Routes.

Invariants:
    - Every route depends on require_admin
    - POST /payments/{id}/refund records the refund and updates the payment totals
      in one transaction
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.api.dependencies import list_params, require_admin
from courseportal.core.domain_types import PaymentStatus
from courseportal.infrastructure.database import get_db
from courseportal.schemas.common import DeleteResponse, ListParams, Page
from courseportal.schemas.payment import (
    PaymentCreate, PaymentListItem, PaymentRead, PaymentStatusUpdate,
    PaymentUpdate, RefundCreate, RefundListItem, RefundRead, RefundResult,
)
from courseportal.services.handle_payments import PaymentHandlers

router = APIRouter(
    prefix="/api/v1/admin", tags=["admin: payments"],
    dependencies=[Depends(require_admin)],
)


# ─── Payments ────────────────────────────────────────────────────

@router.get("/payments", response_model=Page[PaymentListItem])
async def list_payments(
    params: ListParams = Depends(list_params),
    status_filter: PaymentStatus | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
):
    return await PaymentHandlers(db).admin_list(params, status_filter)


@router.post(
    "/payments", response_model=PaymentRead, status_code=status.HTTP_201_CREATED,
)
async def create_payment(body: PaymentCreate, db: AsyncSession = Depends(get_db)):
    return await PaymentHandlers(db).create(body)


@router.get(
    "/payments/by-enrollment/{enrollment_id}", response_model=PaymentListItem,
)
async def get_payment_by_enrollment(
    enrollment_id: UUID, db: AsyncSession = Depends(get_db),
):
    return await PaymentHandlers(db).get_by_enrollment(enrollment_id)


@router.get("/payments/{payment_id}", response_model=PaymentListItem)
async def get_payment(payment_id: UUID, db: AsyncSession = Depends(get_db)):
    return await PaymentHandlers(db).get_detail(payment_id)


@router.patch("/payments/{payment_id}", response_model=PaymentRead)
async def update_payment(
    payment_id: UUID, body: PaymentUpdate, db: AsyncSession = Depends(get_db),
):
    return await PaymentHandlers(db).update(payment_id, body)


@router.patch("/payments/{payment_id}/status", response_model=PaymentRead)
async def update_payment_status(
    payment_id: UUID, body: PaymentStatusUpdate, db: AsyncSession = Depends(get_db),
):
    return await PaymentHandlers(db).update_status(payment_id, body.status)


@router.delete("/payments/{payment_id}", response_model=DeleteResponse)
async def delete_payment(payment_id: UUID, db: AsyncSession = Depends(get_db)):
    await PaymentHandlers(db).delete(payment_id)
    return DeleteResponse(id=payment_id)


@router.post(
    "/payments/{payment_id}/refund", response_model=RefundResult,
    status_code=status.HTTP_201_CREATED,
)
async def refund_payment(
    payment_id: UUID, body: RefundCreate, db: AsyncSession = Depends(get_db),
):
    return await PaymentHandlers(db).refund(payment_id, body)


# ─── Refunds ─────────────────────────────────────────────────────

@router.get("/refunds", response_model=Page[RefundListItem])
async def list_refunds(
    params: ListParams = Depends(list_params),
    db: AsyncSession = Depends(get_db),
):
    return await PaymentHandlers(db).list_refunds(params)


@router.get("/refunds/{refund_id}", response_model=RefundRead)
async def get_refund(refund_id: UUID, db: AsyncSession = Depends(get_db)):
    return await PaymentHandlers(db).get_refund(refund_id)
