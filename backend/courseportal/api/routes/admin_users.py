"""Admin User Routes — profiles, soft deletion, restoration and deletion history.

Invariants:
    - Every route depends on require_admin
    - Soft-deleted users are hidden from GET /users unless include_deleted=true
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.api.dependencies import get_notifier, list_params, require_admin
from courseportal.config import get_settings
from courseportal.infrastructure.database import get_db
from courseportal.models.profile import Profile
from courseportal.schemas.common import ListParams, Page
from courseportal.schemas.profile import (
    DeletionHistoryRead, ProfileCreate, ProfileRead, ProfileUpdate,
    Role, UserDeleteRequest, UserDetail,
)
from courseportal.services.handle_users import UserHandlers
from courseportal.services.notifications import NotificationService

router = APIRouter(prefix="/api/v1/admin/users", tags=["admin: users"])


def _handlers(db: AsyncSession, notifier: NotificationService | None = None) -> UserHandlers:
    return UserHandlers(
        db, notifier, max_restorations=get_settings().max_user_restorations,
    )


@router.get("", response_model=Page[ProfileRead])
async def list_users(
    params: ListParams = Depends(list_params),
    include_deleted: bool = Query(False),
    role: Role | None = Query(None),
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await _handlers(db).admin_list(params, include_deleted, role)


@router.get("/deleted", response_model=Page[ProfileRead])
async def list_deleted_users(
    params: ListParams = Depends(list_params),
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await _handlers(db).list_deleted(params)


@router.post("", response_model=ProfileRead, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: ProfileCreate,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await _handlers(db).create(body)


@router.get("/{user_id}", response_model=UserDetail)
async def get_user(
    user_id: UUID,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await _handlers(db).get_detail(user_id)


@router.patch("/{user_id}", response_model=ProfileRead)
async def update_user(
    user_id: UUID,
    body: ProfileUpdate,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await _handlers(db).update(user_id, body)


@router.post("/{user_id}/delete", response_model=ProfileRead)
async def soft_delete_user(
    user_id: UUID,
    body: UserDeleteRequest,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    """Deactivate now, or schedule deactivation when scheduled_for is given."""
    return await _handlers(db, notifier).soft_delete(user_id, body, admin)


@router.post("/{user_id}/restore", response_model=ProfileRead)
async def restore_user(
    user_id: UUID,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    return await _handlers(db, notifier).restore(user_id, admin)


@router.post("/{user_id}/cancel-deletion", response_model=ProfileRead)
async def cancel_scheduled_deletion(
    user_id: UUID,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await _handlers(db).cancel_scheduled_deletion(user_id)


@router.get("/{user_id}/deletion-history", response_model=list[DeletionHistoryRead])
async def deletion_history(
    user_id: UUID,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await _handlers(db).deletion_history(user_id)
