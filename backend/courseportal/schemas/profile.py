"""Profile Schemas — admin user management and soft deletion.

Invariants:
    - role is "authenticated" or "service_role"
    - A scheduled deletion date must lie in the future (checked in the service)
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from courseportal.schemas.contact import EMAIL_PATTERN
from courseportal.schemas.enrollment import EnrollmentListItem
from courseportal.schemas.payment import PaymentListItem, RefundRead

Role = Literal["authenticated", "service_role"]


class ProfileCreate(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    phone: str | None = Field(None, max_length=50)
    role: Role = "authenticated"


class ProfileUpdate(BaseModel):
    full_name: str | None = Field(None, min_length=1, max_length=255)
    email: str | None = Field(None, max_length=255, pattern=EMAIL_PATTERN)
    phone: str | None = Field(None, max_length=50)
    role: Role | None = None


class ProfileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str
    email: str
    phone: str | None = None
    role: str
    deleted_at: datetime | None = None
    deletion_scheduled_for: datetime | None = None
    deletion_count: int
    created_at: datetime
    updated_at: datetime


class UserDetail(BaseModel):
    profile: ProfileRead
    enrollments: list[EnrollmentListItem]
    payments: list[PaymentListItem]
    refunds: list[RefundRead]


class UserDeleteRequest(BaseModel):
    reason: str | None = Field(None, max_length=2000)
    scheduled_for: datetime | None = None
    notify: bool = True


class DeletionHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    deleted_at: datetime | None = None
    deleted_by: UUID | None = None
    restored_at: datetime | None = None
    restored_by: UUID | None = None
    deletion_reason: str | None = None
    scheduled_deletion_date: datetime | None = None
    email_notification_sent: bool
    restoration_count: int
    created_at: datetime
