"""Public Catalog Routes — course, intake and category browsing for the website.

Invariants:
    - No authentication: every route here is read-only
    - `filters` is a JSON object {"title", "category", "duration", "intake_date"};
      invalid JSON is a 400
"""

import json
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.core.domain_types import SortOrder
from courseportal.core.errors import ValidationError
from courseportal.infrastructure.database import get_db
from courseportal.schemas.catalog import (
    CategoryRead, CourseDetail, CourseRead, PublicCourseFilters,
    PublicCourseListItem,
)
from courseportal.schemas.common import Page
from courseportal.schemas.intake import IntakeListItem, IntakeRead
from courseportal.services.handle_public_catalog import PublicCatalogHandlers

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/public", tags=["public"])


def _parse_course_filters(raw: str | None) -> PublicCourseFilters:
    if not raw:
        return PublicCourseFilters()
    try:
        return PublicCourseFilters.model_validate(json.loads(raw))
    except (json.JSONDecodeError, PydanticValidationError) as e:
        raise ValidationError(
            "filters must be a JSON object with title, category, duration "
            "or intake_date",
            details={"reason": str(e)},
        )


# ─── Courses ─────────────────────────────────────────────────────

@router.get("/courses", response_model=Page[PublicCourseListItem])
async def list_courses(
    page: int = Query(1, ge=1, le=1000),
    page_size: int = Query(10, ge=1, le=100),
    sort_by: str = Query("created_at"),
    order: SortOrder = Query(SortOrder.DESC),
    filters: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await PublicCatalogHandlers(db).list_courses(
        _parse_course_filters(filters), page, page_size, sort_by, order,
    )


@router.get("/courses/new", response_model=list[CourseRead])
async def new_courses(db: AsyncSession = Depends(get_db)):
    return await PublicCatalogHandlers(db).new_courses()


@router.get("/courses/slug/{slug}", response_model=CourseDetail)
async def get_course_by_slug(slug: str, db: AsyncSession = Depends(get_db)):
    return await PublicCatalogHandlers(db).get_course_by_slug(slug)


@router.get("/courses/slug/{slug}/intakes", response_model=list[IntakeRead])
async def course_intakes_by_slug(
    slug: str,
    year: int | None = Query(None, ge=2000, le=2100),
    db: AsyncSession = Depends(get_db),
):
    """Intakes of the course for a calendar year (default: current year)."""
    return await PublicCatalogHandlers(db).course_intakes_by_slug(slug, year)


@router.get("/courses/{course_id}", response_model=CourseRead)
async def get_course(course_id: UUID, db: AsyncSession = Depends(get_db)):
    return await PublicCatalogHandlers(db).get_course(course_id)


@router.get("/courses/{course_id}/related", response_model=list[CourseRead])
async def related_courses(
    course_id: UUID,
    category_id: UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await PublicCatalogHandlers(db).related_courses(course_id, category_id)


@router.get("/courses/{course_id}/intakes", response_model=list[IntakeRead])
async def active_intakes_for_course(
    course_id: UUID, db: AsyncSession = Depends(get_db),
):
    return await PublicCatalogHandlers(db).active_intakes_for_course(course_id)


@router.get("/categories", response_model=list[CategoryRead])
async def list_categories(db: AsyncSession = Depends(get_db)):
    return await PublicCatalogHandlers(db).list_categories()


# ─── Intakes ─────────────────────────────────────────────────────

@router.get("/intakes", response_model=list[IntakeListItem])
async def open_intakes(db: AsyncSession = Depends(get_db)):
    return await PublicCatalogHandlers(db).open_intakes()


@router.get("/intakes/upcoming", response_model=list[IntakeListItem])
async def upcoming_intakes(db: AsyncSession = Depends(get_db)):
    return await PublicCatalogHandlers(db).upcoming_intakes()


@router.get("/intakes/{intake_id}", response_model=IntakeListItem)
async def get_intake(intake_id: UUID, db: AsyncSession = Depends(get_db)):
    return await PublicCatalogHandlers(db).get_intake(intake_id)
