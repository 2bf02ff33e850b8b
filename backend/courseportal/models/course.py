"""Course ORM — a training course offered in one or more intakes.

Invariants:
    - slug is unique and matches ^[a-z0-9_-]+$ (core/course_rules.py)
    - price >= 0 (Numeric, never float), duration_value > 0, level >= 1
    - category and affiliation are optional; their rows cannot be deleted while referenced

Design Decisions:
    - category/affiliation loaded with selectin: every course view shows their names
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, Text, Integer, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from courseportal.core.clock import utc_now
from courseportal.db.base import Base


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("course_categories.id"),
        nullable=True, index=True,
    )
    affiliation_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("affiliations.id"),
        nullable=True, index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    course_highlights: Mapped[str | None] = mapped_column(Text, nullable=True)
    course_overview: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    duration_type: Mapped[str] = mapped_column(
        String(10), nullable=False, default="month",
    )
    duration_value: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1,
    )
    price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0"),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        default=utc_now, onupdate=utc_now,
    )

    category: Mapped["CourseCategory | None"] = relationship(
        "CourseCategory", lazy="selectin",
    )
    affiliation: Mapped["Affiliation | None"] = relationship(
        "Affiliation", lazy="selectin",
    )

    @property
    def category_name(self) -> str | None:
        return self.category.name if self.category else None

    @property
    def affiliation_name(self) -> str | None:
        return self.affiliation.name if self.affiliation else None
