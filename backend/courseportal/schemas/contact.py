"""Contact Schemas — public contact form, admin replies and batch replies.

Invariants:
    - message <= 1000 chars on the public form
    - email must look like an address (local@domain.tld)
    - Batch replies target 1..100 contact requests
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from courseportal.core.domain_types import ContactStatus, EmailStatus

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class ContactRequestCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    phone: str | None = Field(None, max_length=50)
    message: str = Field(min_length=1, max_length=1000)

    @field_validator("name", "message")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty or whitespace")
        return v


class ContactStatusUpdate(BaseModel):
    status: ContactStatus


class ContactReplyCreate(BaseModel):
    subject: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1, max_length=10_000)
    reply_to_email: str | None = Field(None, max_length=255, pattern=EMAIL_PATTERN)
    reply_to_name: str | None = Field(None, max_length=255)


class BatchReplyCreate(BaseModel):
    contact_request_ids: list[UUID] = Field(min_length=1, max_length=100)
    subject: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1, max_length=10_000)


class ContactReplyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    contact_request_id: UUID
    subject: str
    message: str
    reply_to_email: str
    reply_to_name: str | None = None
    provider_email_id: str | None = None
    email_status: EmailStatus
    error_message: str | None = None
    batch_id: UUID | None = None
    is_batch_reply: bool
    admin_id: UUID | None = None
    admin_email: str | None = None
    sent_at: datetime | None = None
    created_at: datetime


class ContactReplyListItem(ContactReplyRead):
    request_name: str | None = None
    request_email: str | None = None


class ContactRequestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    phone: str | None = None
    message: str
    status: ContactStatus
    created_at: datetime
    updated_at: datetime


class ContactRequestDetail(ContactRequestRead):
    replies: list[ContactReplyRead] = Field(default_factory=list)


class BatchReplyFailure(BaseModel):
    contact_request_id: UUID
    error: str


class BatchReplyResult(BaseModel):
    batch_id: UUID
    total: int
    sent: int
    failed: int
    failures: list[BatchReplyFailure]
