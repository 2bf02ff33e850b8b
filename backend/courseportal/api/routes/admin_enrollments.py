"""Admin Enrollment Routes — list, create, move, transition and delete enrollments.

Invariants:
    - Every route depends on require_admin; the acting admin id is recorded in logs
      and email_logs
    - Status changes follow core/enforce_enrollment.VALID_TRANSITIONS
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.api.dependencies import get_notifier, list_params, require_admin
from courseportal.core.domain_types import EnrollmentStatus
from courseportal.infrastructure.database import get_db
from courseportal.models.profile import Profile
from courseportal.schemas.common import DeleteResponse, ListParams, Page
from courseportal.schemas.enrollment import (
    AdminEnrollmentCreate, BulkStatusResult, BulkStatusUpdate, EnrollmentDetail,
    EnrollmentListItem, EnrollmentRead, EnrollmentStatusUpdate, EnrollmentUpdate,
)
from courseportal.services.handle_enrollments import EnrollmentHandlers
from courseportal.services.notifications import NotificationService

router = APIRouter(prefix="/api/v1/admin/enrollments", tags=["admin: enrollments"])


@router.get("", response_model=Page[EnrollmentListItem])
async def list_enrollments(
    params: ListParams = Depends(list_params),
    user_id: UUID | None = Query(None),
    status_filter: EnrollmentStatus | None = Query(None, alias="status"),
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await EnrollmentHandlers(db).admin_list(params, user_id, status_filter)


@router.post("", response_model=EnrollmentRead, status_code=status.HTTP_201_CREATED)
async def create_enrollment(
    body: AdminEnrollmentCreate,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    return await EnrollmentHandlers(db, notifier).admin_create(body, admin.id)


@router.post("/bulk-status", response_model=BulkStatusResult)
async def bulk_update_status(
    body: BulkStatusUpdate,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    return await EnrollmentHandlers(db, notifier).bulk_update_status(body, admin.id)


@router.get("/{enrollment_id}", response_model=EnrollmentDetail)
async def get_enrollment(
    enrollment_id: UUID,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await EnrollmentHandlers(db).get_detail(enrollment_id)


@router.patch("/{enrollment_id}", response_model=EnrollmentRead)
async def update_enrollment(
    enrollment_id: UUID,
    body: EnrollmentUpdate,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await EnrollmentHandlers(db).update(enrollment_id, body)


@router.patch("/{enrollment_id}/status", response_model=EnrollmentRead)
async def update_enrollment_status(
    enrollment_id: UUID,
    body: EnrollmentStatusUpdate,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    return await EnrollmentHandlers(db, notifier).update_status(
        enrollment_id, body, admin.id,
    )


@router.delete("/{enrollment_id}", response_model=DeleteResponse)
async def delete_enrollment(
    enrollment_id: UUID,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await EnrollmentHandlers(db).delete(enrollment_id)
    return DeleteResponse(id=enrollment_id)
