"""Enrollment ORM — a user's request to join an intake.

Invariants:
    - (user_id, intake_id) is unique: one enrollment per user per intake
    - status in requested|enrolled|cancelled|completed (core/enforce_enrollment.py)
    - Every non-cancelled enrollment holds one seat of its intake

Design Decisions:
    - Unique constraint backs the friendly duplicate pre-check against races
    - user/intake/payments loaded with selectin: details views and notifications need them
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from courseportal.core.clock import utc_now
from courseportal.db.base import Base


class Enrollment(Base):
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("user_id", "intake_id", name="uq_enrollments_user_intake"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"),
        nullable=False, index=True,
    )
    intake_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("intakes.id"),
        nullable=False, index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="requested",
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    enrollment_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        default=utc_now, onupdate=utc_now,
    )

    user: Mapped["Profile"] = relationship("Profile", lazy="selectin")
    intake: Mapped["Intake"] = relationship("Intake", lazy="selectin")
    payments: Mapped[list["Payment"]] = relationship(
        "Payment", lazy="selectin", order_by="Payment.created_at",
        cascade="all, delete-orphan",
    )
