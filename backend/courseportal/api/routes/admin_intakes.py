"""Admin Intake Routes — intake CRUD, open/close, generation and yearly views."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.api.dependencies import list_params, require_admin
from courseportal.core.clock import utc_now
from courseportal.infrastructure.database import get_db
from courseportal.schemas.common import ConstraintCheck, DeleteResponse, ListParams, Page
from courseportal.schemas.intake import (
    CourseIntakesForYear, IntakeCreate, IntakeDetail, IntakeGenerateRequest,
    IntakeGenerateResult, IntakeListItem, IntakeRead, IntakeStatusUpdate,
    IntakeUpdate,
)
from courseportal.services.handle_intakes import IntakeHandlers

router = APIRouter(
    prefix="/api/v1/admin/intakes", tags=["admin: intakes"],
    dependencies=[Depends(require_admin)],
)


@router.get("", response_model=Page[IntakeListItem])
async def list_intakes(
    params: ListParams = Depends(list_params),
    course_id: UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await IntakeHandlers(db).admin_list(params, course_id)


@router.get("/all", response_model=list[IntakeListItem])
async def list_all_intakes(db: AsyncSession = Depends(get_db)):
    return await IntakeHandlers(db).list_all()


@router.get("/active", response_model=list[IntakeListItem])
async def list_active_intakes(db: AsyncSession = Depends(get_db)):
    """Open intakes starting today or later."""
    return await IntakeHandlers(db).list_all_active()


@router.get("/by-year", response_model=list[CourseIntakesForYear])
async def intakes_by_course_and_year(
    year: int | None = Query(None, ge=1900, le=2100),
    course_id: UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await IntakeHandlers(db).by_course_and_year(
        year or utc_now().year, course_id,
    )


@router.post("", response_model=IntakeRead, status_code=status.HTTP_201_CREATED)
async def create_intake(body: IntakeCreate, db: AsyncSession = Depends(get_db)):
    return await IntakeHandlers(db).create(body)


@router.post(
    "/generate/{course_id}", response_model=IntakeGenerateResult,
    status_code=status.HTTP_201_CREATED,
)
async def generate_intakes(
    course_id: UUID,
    body: IntakeGenerateRequest,
    db: AsyncSession = Depends(get_db),
):
    return await IntakeHandlers(db).generate_for_course(course_id, body)


@router.get("/{intake_id}", response_model=IntakeDetail)
async def get_intake(intake_id: UUID, db: AsyncSession = Depends(get_db)):
    return await IntakeHandlers(db).get_detail(intake_id)


@router.patch("/{intake_id}", response_model=IntakeRead)
async def update_intake(
    intake_id: UUID, body: IntakeUpdate, db: AsyncSession = Depends(get_db),
):
    return await IntakeHandlers(db).update(intake_id, body)


@router.patch("/{intake_id}/status", response_model=IntakeRead)
async def update_intake_status(
    intake_id: UUID, body: IntakeStatusUpdate, db: AsyncSession = Depends(get_db),
):
    return await IntakeHandlers(db).set_open(intake_id, body.is_open)


@router.get("/{intake_id}/constraints", response_model=ConstraintCheck)
async def check_intake_constraints(
    intake_id: UUID, db: AsyncSession = Depends(get_db),
):
    return await IntakeHandlers(db).constraint_check(intake_id)


@router.delete("/{intake_id}", response_model=DeleteResponse)
async def delete_intake(intake_id: UUID, db: AsyncSession = Depends(get_db)):
    await IntakeHandlers(db).delete(intake_id)
    return DeleteResponse(id=intake_id)
