"""Payment Schemas — payments, refunds, and the user's payment history.

Invariants:
    - Amounts enter as Decimal (exact) and leave as float
    - Amount range and refund limits are enforced by core/enforce_payment.py
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from courseportal.core.domain_types import PaymentMethod, PaymentStatus


class PaymentCreate(BaseModel):
    enrollment_id: UUID
    amount: Decimal
    method: PaymentMethod = PaymentMethod.CASH
    status: PaymentStatus = PaymentStatus.PENDING
    remarks: str | None = Field(None, max_length=2000)


class UserPaymentCreate(BaseModel):
    enrollment_id: UUID
    amount: Decimal
    method: PaymentMethod = PaymentMethod.CASH
    remarks: str | None = Field(None, max_length=2000)


class PaymentUpdate(BaseModel):
    amount: Decimal | None = None
    method: PaymentMethod | None = None
    remarks: str | None = Field(None, max_length=2000)


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus


class RefundCreate(BaseModel):
    amount: Decimal
    reason: str = Field(max_length=2000)


class PaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    enrollment_id: UUID
    amount: float
    status: PaymentStatus
    method: PaymentMethod
    remarks: str | None = None
    is_refunded: bool
    refunded_amount: float
    refunded_at: datetime | None = None
    paid_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class PaymentListItem(PaymentRead):
    user_id: UUID | None = None
    user_name: str | None = None
    user_email: str | None = None
    course_title: str | None = None
    enrollment_status: str | None = None


class UserPaymentItem(PaymentRead):
    course_title: str | None = None


class RefundRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payment_id: UUID
    enrollment_id: UUID | None = None
    user_id: UUID | None = None
    reason: str
    amount: float
    created_at: datetime
    updated_at: datetime


class RefundListItem(RefundRead):
    user_name: str | None = None
    user_email: str | None = None
    payment_amount: float | None = None


class RefundResult(BaseModel):
    refund: RefundRead
    payment: PaymentRead
