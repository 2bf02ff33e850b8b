"""Catalog Schemas — categories, affiliations and courses (admin and public shapes).

Invariants:
    - Money is accepted as Decimal and returned as float
    - Course field rules (title, slug, price, duration, level) are enforced by
      core/course_rules.py so create and partial update share one rule set
    - Names are stripped; blank names are rejected
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from courseportal.core.domain_types import DurationType
from courseportal.schemas.intake import IntakeRead


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("cannot be empty or whitespace")
    return v


# ─── Categories ──────────────────────────────────────────────────

class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_required(v)


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        return _strip_required(v) if v is not None else v


class CategoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    created_at: datetime
    updated_at: datetime


class CategoryListItem(CategoryRead):
    course_count: int = 0


# ─── Affiliations ────────────────────────────────────────────────

class AffiliationCreate(BaseModel):
    name: str = Field(min_length=3, max_length=255)
    type: str = Field(min_length=1, max_length=100)
    description: str | None = Field(None, max_length=5000)

    @field_validator("name", "type")
    @classmethod
    def strip_required(cls, v: str) -> str:
        return _strip_required(v)


class AffiliationUpdate(BaseModel):
    name: str | None = Field(None, min_length=3, max_length=255)
    type: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=5000)

    @field_validator("name", "type")
    @classmethod
    def strip_optional(cls, v: str | None) -> str | None:
        return _strip_required(v) if v is not None else v


class AffiliationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    type: str
    description: str | None = None
    created_at: datetime
    updated_at: datetime


class AffiliationListItem(AffiliationRead):
    course_count: int = 0


# ─── Courses ─────────────────────────────────────────────────────

class CourseCreate(BaseModel):
    title: str
    slug: str | None = None
    category_id: UUID | None = None
    affiliation_id: UUID | None = None
    course_highlights: str | None = None
    course_overview: str | None = None
    image_url: str | None = Field(None, max_length=500)
    level: int = 1
    duration_type: DurationType = DurationType.MONTH
    duration_value: int = 1
    price: Decimal = Decimal("0")


class CourseUpdate(BaseModel):
    title: str | None = None
    slug: str | None = None
    category_id: UUID | None = None
    affiliation_id: UUID | None = None
    course_highlights: str | None = None
    course_overview: str | None = None
    image_url: str | None = Field(None, max_length=500)
    level: int | None = None
    duration_type: DurationType | None = None
    duration_value: int | None = None
    price: Decimal | None = None


class CourseRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    slug: str
    category_id: UUID | None = None
    affiliation_id: UUID | None = None
    category_name: str | None = None
    affiliation_name: str | None = None
    course_highlights: str | None = None
    course_overview: str | None = None
    image_url: str | None = None
    level: int
    duration_type: str
    duration_value: int
    price: float
    created_at: datetime
    updated_at: datetime


class CourseAdminListItem(CourseRead):
    intake_count: int = 0
    enrollment_count: int = 0


class CourseDetail(CourseRead):
    intakes: list[IntakeRead] = Field(default_factory=list)


class PublicCourseListItem(CourseRead):
    next_intake_id: UUID | None = None
    next_intake_date: datetime | None = None
    available_seats: int | None = None


class ImageUploadResponse(BaseModel):
    url: str


class PublicCourseFilters(BaseModel):
    """Public catalog filters: {"title", "category", "duration", "intake_date"}."""
    title: str | None = None
    category: UUID | None = None
    duration: int | None = None
    intake_date: datetime | None = None
