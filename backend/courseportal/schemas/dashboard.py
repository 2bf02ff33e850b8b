"""Dashboard & Email Log Schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class StatusCountRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: str
    count: int


class PaymentStatusTotalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: str
    count: int
    total_amount: float


class DashboardSummaryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_users: int
    total_enrollments: int
    total_income: float
    enrollments_by_status: list[StatusCountRead]
    payments_by_status: list[PaymentStatusTotalRead]


class EmailLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    provider_email_id: str | None = None
    batch_id: UUID | None = None
    from_email: str
    to_emails: list[str]
    subject: str
    status: str
    email_type: str
    error_message: str | None = None
    user_id: UUID | None = None
    admin_id: UUID | None = None
    related_entity_type: str | None = None
    related_entity_id: UUID | None = None
    sent_at: datetime | None = None
    created_at: datetime


class EmailLogDetail(EmailLogRead):
    html_content: str | None = None
