"""Admin Contact Routes — contact request triage and emailed replies.

Invariants:
    - Every route depends on require_admin
    - Reply endpoints return the finalized reply (email_status sent or failed),
      never "sending"
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.api.dependencies import get_notifier, list_params, require_admin
from courseportal.core.domain_types import ContactStatus
from courseportal.infrastructure.database import get_db
from courseportal.models.profile import Profile
from courseportal.schemas.common import DeleteResponse, ListParams, Page
from courseportal.schemas.contact import (
    BatchReplyCreate, BatchReplyResult, ContactReplyCreate, ContactReplyListItem,
    ContactReplyRead, ContactRequestDetail, ContactRequestRead,
    ContactStatusUpdate,
)
from courseportal.services.handle_contacts import ContactHandlers
from courseportal.services.notifications import NotificationService

router = APIRouter(prefix="/api/v1/admin", tags=["admin: contact"])


# ─── Requests ────────────────────────────────────────────────────

@router.get("/contact-requests", response_model=Page[ContactRequestRead])
async def list_contact_requests(
    params: ListParams = Depends(list_params),
    status_filter: ContactStatus | None = Query(None, alias="status"),
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await ContactHandlers(db).admin_list(params, status_filter)


@router.post("/contact-requests/batch-reply", response_model=BatchReplyResult)
async def batch_reply(
    body: BatchReplyCreate,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    return await ContactHandlers(db, notifier).batch_reply(body, admin)


@router.get("/contact-requests/{request_id}", response_model=ContactRequestDetail)
async def get_contact_request(
    request_id: UUID,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await ContactHandlers(db).get(request_id)


@router.patch(
    "/contact-requests/{request_id}/status", response_model=ContactRequestRead,
)
async def update_contact_status(
    request_id: UUID,
    body: ContactStatusUpdate,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await ContactHandlers(db).update_status(request_id, body.status)


@router.delete("/contact-requests/{request_id}", response_model=DeleteResponse)
async def delete_contact_request(
    request_id: UUID,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await ContactHandlers(db).delete(request_id)
    return DeleteResponse(id=request_id)


@router.post(
    "/contact-requests/{request_id}/replies", response_model=ContactReplyRead,
    status_code=status.HTTP_201_CREATED,
)
async def reply_to_contact_request(
    request_id: UUID,
    body: ContactReplyCreate,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    return await ContactHandlers(db, notifier).reply(request_id, body, admin)


# ─── Replies ─────────────────────────────────────────────────────

@router.get("/contact-replies", response_model=Page[ContactReplyListItem])
async def list_contact_replies(
    params: ListParams = Depends(list_params),
    request_id: UUID | None = Query(None),
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await ContactHandlers(db).list_replies(params, request_id)


@router.get("/contact-replies/{reply_id}", response_model=ContactReplyRead)
async def get_contact_reply(
    reply_id: UUID,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await ContactHandlers(db).get_reply(reply_id)
