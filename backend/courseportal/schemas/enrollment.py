"""Enrollment Schemas — user and admin enrollment shapes.

Invariants:
    - status values are EnrollmentStatus enum members
    - Bulk updates carry at least one id and at most 100
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from courseportal.core.domain_types import EnrollmentStatus
from courseportal.schemas.intake import IntakeRead
from courseportal.schemas.payment import PaymentRead


class EnrollmentCreate(BaseModel):
    intake_id: UUID
    notes: str | None = Field(None, max_length=2000)


class AdminEnrollmentCreate(BaseModel):
    user_id: UUID
    intake_id: UUID
    status: EnrollmentStatus = EnrollmentStatus.REQUESTED
    notes: str | None = Field(None, max_length=2000)
    notify: bool = True


class EnrollmentUpdate(BaseModel):
    intake_id: UUID | None = None
    notes: str | None = Field(None, max_length=2000)


class EnrollmentStatusUpdate(BaseModel):
    status: EnrollmentStatus
    cancelled_reason: str | None = Field(None, max_length=2000)
    notify: bool = True


class BulkStatusUpdate(EnrollmentStatusUpdate):
    ids: list[UUID] = Field(min_length=1, max_length=100)


class BulkFailure(BaseModel):
    id: UUID
    code: str
    message: str


class BulkStatusResult(BaseModel):
    succeeded: list[UUID]
    failed: list[BulkFailure]


class EnrollmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    intake_id: UUID
    status: EnrollmentStatus
    notes: str | None = None
    cancelled_reason: str | None = None
    enrollment_date: datetime
    created_at: datetime
    updated_at: datetime


class EnrollmentListItem(EnrollmentRead):
    user_name: str | None = None
    user_email: str | None = None
    course_id: UUID | None = None
    course_title: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    payment_id: UUID | None = None
    payment_status: str | None = None
    payment_amount: float | None = None


class UserEnrollmentItem(EnrollmentRead):
    course_id: UUID
    course_title: str
    course_slug: str
    start_date: datetime
    end_date: datetime


class UserEnrollmentList(BaseModel):
    data: list[UserEnrollmentItem]
    total: int


class EnrollmentUserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str
    email: str
    phone: str | None = None


class EnrollmentCourseSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    slug: str
    price: float
    category_name: str | None = None


class EnrollmentDetail(BaseModel):
    enrollment: EnrollmentRead
    user: EnrollmentUserSummary
    intake: IntakeRead
    course: EnrollmentCourseSummary
    payment: PaymentRead | None = None
