"""ContactRequest ORM — a message submitted through the public contact form.

Invariants:
    - message <= 1000 chars (validated at the schema boundary)
    - status in pending|resolved|closed; a successful reply resolves it
    - deleting a request deletes its replies (cascade)
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from courseportal.core.clock import utc_now
from courseportal.db.base import Base


class ContactRequest(Base):
    __tablename__ = "customer_contact_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        default=utc_now, onupdate=utc_now,
    )

    replies: Mapped[list["ContactReply"]] = relationship(
        "ContactReply", back_populates="contact_request",
        cascade="all, delete-orphan", lazy="selectin",
        order_by="ContactReply.created_at",
    )
