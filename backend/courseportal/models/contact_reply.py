"""ContactReply ORM — an admin's emailed answer to a contact request.

Invariants:
    - email_status starts at "sending" and ends at "sent" or "failed"
    - batch replies share one batch_id and have is_batch_reply=True
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from courseportal.core.clock import utc_now
from courseportal.db.base import Base


class ContactReply(Base):
    __tablename__ = "customer_contact_replies"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    contact_request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("customer_contact_requests.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    reply_to_email: Mapped[str] = mapped_column(String(255), nullable=False)
    reply_to_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    provider_email_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True,
    )
    email_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="sending",
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    batch_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True, index=True,
    )
    is_batch_reply: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    admin_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=True,
    )
    admin_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        default=utc_now, onupdate=utc_now,
    )

    contact_request: Mapped["ContactRequest"] = relationship(
        "ContactRequest", back_populates="replies",
    )
