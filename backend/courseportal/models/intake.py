"""Intake ORM — a scheduled cohort of a course with a seat capacity.

Invariants:
    - start_date < end_date
    - 0 <= total_registered <= capacity (seat counter, maintained atomically by
      services/seat_reservation.py — never read-modify-write in Python)
    - is_open=False refuses new enrollments regardless of free seats
"""

import uuid
from datetime import datetime

from sqlalchemy import Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from courseportal.core.clock import utc_now
from courseportal.db.base import Base


class Intake(Base):
    __tablename__ = "intakes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    course_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("courses.id"),
        nullable=False, index=True,
    )
    start_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    end_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=20)
    is_open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    total_registered: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        default=utc_now, onupdate=utc_now,
    )

    course: Mapped["Course"] = relationship("Course", lazy="selectin")
