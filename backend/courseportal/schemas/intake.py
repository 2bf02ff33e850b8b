"""Intake Schemas — admin CRUD, generation, and public intake views.

Invariants:
    - capacity 1..10000 at the boundary; the registered-count floor is checked in core
    - start_date < end_date checked by core/intake_schedule.py (shared with updates)
    - available_seats = max(0, capacity - total_registered)
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

from courseportal.core.domain_types import IntakePlan
from courseportal.core.intake_schedule import DEFAULT_CAPACITY, MAX_CAPACITY, available_seats


class IntakeCreate(BaseModel):
    course_id: UUID
    start_date: datetime
    end_date: datetime
    capacity: int = Field(DEFAULT_CAPACITY, ge=1, le=MAX_CAPACITY)
    is_open: bool = True


class IntakeUpdate(BaseModel):
    course_id: UUID | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    capacity: int | None = Field(None, ge=1, le=MAX_CAPACITY)
    is_open: bool | None = None


class IntakeStatusUpdate(BaseModel):
    is_open: bool


class IntakeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    start_date: datetime
    end_date: datetime
    capacity: int
    is_open: bool
    total_registered: int
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def available_seats(self) -> int:
        return available_seats(self.capacity, self.total_registered)


class IntakeListItem(IntakeRead):
    course_title: str | None = None
    course_slug: str | None = None


class IntakeDetail(IntakeListItem):
    enrollment_count: int = 0


class IntakeGenerateRequest(BaseModel):
    plan: IntakePlan = IntakePlan.STANDARD
    year: int | None = Field(None, ge=2000, le=2100)


class IntakeGenerateResult(BaseModel):
    generated: list[IntakeRead]
    generated_count: int
    existing_count: int
    total_count: int


class CourseIntakesForYear(BaseModel):
    course_id: UUID
    course_title: str
    intakes: list[IntakeRead]
