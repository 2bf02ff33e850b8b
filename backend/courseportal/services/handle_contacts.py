"""Contact Handlers — public contact form, admin triage and emailed replies.

Invariants:
    - A reply row is committed as "sending" BEFORE the email goes out, then finalized
      as "sent" (with provider id) or "failed" (with the error)
    - A contact request becomes "resolved" only after a reply was actually sent
    - Batch replies share one batch_id; one failing recipient never stops the batch
    - The public acknowledgement email never fails the contact submission

Design Decisions:
    - Replies are sent sequentially: batches are capped at 100 and the email client
      already retries with backoff
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.core.clock import utc_now
from courseportal.core.domain_types import ContactStatus, EmailStatus
from courseportal.core.email_templates import reply_subject
from courseportal.core.errors import PortalError
from courseportal.db.list_query import paginate, search_condition
from courseportal.models.contact_reply import ContactReply
from courseportal.models.contact_request import ContactRequest
from courseportal.models.profile import Profile
from courseportal.schemas.common import ListParams, Page
from courseportal.schemas.contact import (
    BatchReplyCreate, BatchReplyFailure, BatchReplyResult, ContactReplyCreate,
    ContactReplyListItem, ContactReplyRead, ContactRequestCreate,
    ContactRequestRead,
)
from courseportal.services.notifications import NotificationService
from courseportal.services.persistence_helpers import get_or_404

logger = logging.getLogger(__name__)

CONTACT_COLUMNS = {
    "id": ContactRequest.id,
    "name": ContactRequest.name,
    "email": ContactRequest.email,
    "phone": ContactRequest.phone,
    "message": ContactRequest.message,
    "status": ContactRequest.status,
    "created_at": ContactRequest.created_at,
    "updated_at": ContactRequest.updated_at,
}

REPLY_COLUMNS = {
    "id": ContactReply.id,
    "subject": ContactReply.subject,
    "email_status": ContactReply.email_status,
    "batch_id": ContactReply.batch_id,
    "is_batch_reply": ContactReply.is_batch_reply,
    "admin_email": ContactReply.admin_email,
    "contact_request_id": ContactReply.contact_request_id,
    "sent_at": ContactReply.sent_at,
    "created_at": ContactReply.created_at,
    "request_name": ContactRequest.name,
    "request_email": ContactRequest.email,
}


class ContactHandlers:
    """Customer contact workflow."""

    def __init__(self, db: AsyncSession, notifier: NotificationService | None = None):
        self.db = db
        self.notifier = notifier

    # ─── Public ──────────────────────────────────────────────────

    async def submit(self, body: ContactRequestCreate) -> ContactRequest:
        request = ContactRequest(
            name=body.name,
            email=body.email.strip().lower(),
            phone=body.phone,
            message=body.message,
            status=ContactStatus.PENDING.value,
        )
        self.db.add(request)
        await self.db.commit()
        logger.info(
            "Contact request received",
            extra={"contact_request_id": request.id},
        )
        if self.notifier:
            await self.notifier.contact_received(request)
        return request

    # ─── Admin: requests ─────────────────────────────────────────

    async def admin_list(
        self, params: ListParams, status: ContactStatus | None = None,
    ) -> Page[ContactRequestRead]:
        page = await paginate(
            self.db, select(ContactRequest), params, CONTACT_COLUMNS,
            extra_conditions=[
                ContactRequest.status == status.value if status else None,
                search_condition(
                    params.search,
                    [ContactRequest.name, ContactRequest.email, ContactRequest.message],
                ),
            ],
        )
        return Page[ContactRequestRead](
            data=[ContactRequestRead.model_validate(r[0]) for r in page.rows],
            total=page.total, page=page.page, page_size=page.page_size,
        )

    async def get(self, request_id: uuid.UUID) -> ContactRequest:
        return await get_or_404(
            self.db, ContactRequest, request_id, "Contact request",
        )

    async def update_status(
        self, request_id: uuid.UUID, status: ContactStatus,
    ) -> ContactRequest:
        request = await self.get(request_id)
        request.status = status.value
        await self.db.commit()
        logger.info(
            f"Contact request marked {status.value}",
            extra={"contact_request_id": request_id},
        )
        return await self.get(request_id)

    async def delete(self, request_id: uuid.UUID) -> None:
        request = await self.get(request_id)
        await self.db.delete(request)
        await self.db.commit()
        logger.info(
            "Contact request deleted", extra={"contact_request_id": request_id},
        )

    # ─── Admin: replies ──────────────────────────────────────────

    async def reply(
        self, request_id: uuid.UUID, body: ContactReplyCreate, admin: Profile,
    ) -> ContactReply:
        request = await self.get(request_id)
        reply = ContactReply(
            contact_request_id=request.id,
            subject=reply_subject(body.subject),
            message=body.message,
            reply_to_email=body.reply_to_email or self.notifier.settings.contact_email,
            reply_to_name=body.reply_to_name,
            email_status=EmailStatus.SENDING.value,
            is_batch_reply=False,
            admin_id=admin.id,
            admin_email=admin.email,
        )
        self.db.add(reply)
        await self.db.commit()

        outcome = await self.notifier.contact_reply(
            request, reply.subject, reply.message,
            admin_id=admin.id, reply_to=reply.reply_to_email,
        )
        self._finalize(reply, request, outcome)
        await self.db.commit()
        logger.info(
            f"Contact reply {reply.email_status}",
            extra={"contact_request_id": request_id, "admin_id": admin.id},
        )
        return reply

    async def batch_reply(
        self, body: BatchReplyCreate, admin: Profile,
    ) -> BatchReplyResult:
        batch_id = uuid.uuid4()
        subject = reply_subject(body.subject)
        reply_to = self.notifier.settings.contact_email
        failures: list[BatchReplyFailure] = []
        sent = 0

        for request_id in dict.fromkeys(body.contact_request_ids):
            try:
                request = await self.get(request_id)
            except PortalError as e:
                failures.append(BatchReplyFailure(
                    contact_request_id=request_id, error=e.message,
                ))
                continue
            outcome = await self.notifier.contact_reply(
                request, subject, body.message,
                admin_id=admin.id, batch_id=batch_id, reply_to=reply_to,
            )
            if not outcome.sent:
                failures.append(BatchReplyFailure(
                    contact_request_id=request_id,
                    error=outcome.error or "Email delivery failed",
                ))
                continue
            reply = ContactReply(
                contact_request_id=request.id,
                subject=subject,
                message=body.message,
                reply_to_email=reply_to,
                batch_id=batch_id,
                is_batch_reply=True,
                admin_id=admin.id,
                admin_email=admin.email,
            )
            self._finalize(reply, request, outcome)
            self.db.add(reply)
            await self.db.commit()
            sent += 1

        total = sent + len(failures)
        logger.info(
            f"Batch reply {batch_id}: {sent}/{total} sent",
            extra={"admin_id": admin.id},
        )
        return BatchReplyResult(
            batch_id=batch_id, total=total, sent=sent,
            failed=len(failures), failures=failures,
        )

    @staticmethod
    def _finalize(reply: ContactReply, request: ContactRequest, outcome) -> None:
        if outcome.sent:
            reply.email_status = EmailStatus.SENT.value
            reply.provider_email_id = outcome.provider_email_id
            reply.sent_at = utc_now()
            reply.error_message = None
            request.status = ContactStatus.RESOLVED.value
        else:
            reply.email_status = EmailStatus.FAILED.value
            reply.error_message = outcome.error

    async def list_replies(
        self, params: ListParams, request_id: uuid.UUID | None = None,
    ) -> Page[ContactReplyListItem]:
        stmt = (
            select(ContactReply, ContactRequest.name, ContactRequest.email)
            .join(ContactRequest, ContactRequest.id == ContactReply.contact_request_id)
        )
        page = await paginate(
            self.db, stmt, params, REPLY_COLUMNS,
            extra_conditions=[
                ContactReply.contact_request_id == request_id if request_id else None,
                search_condition(
                    params.search,
                    [ContactReply.subject, ContactReply.message,
                     ContactRequest.name, ContactRequest.email],
                ),
            ],
        )
        return Page[ContactReplyListItem](
            data=[
                ContactReplyListItem(
                    **ContactReplyRead.model_validate(reply).model_dump(),
                    request_name=name, request_email=email,
                )
                for reply, name, email in page.rows
            ],
            total=page.total, page=page.page, page_size=page.page_size,
        )

    async def get_reply(self, reply_id: uuid.UUID) -> ContactReply:
        return await get_or_404(self.db, ContactReply, reply_id, "Contact reply")
