"""Notification Service — renders, sends, and logs every transactional email.

Invariants:
    - send() NEVER raises: provider failures are logged and returned as an outcome
    - Every attempt writes exactly one email_logs row (status sent or failed)
    - Callers invoke this only after their own transaction has committed
    - Missing recipient data (no email address) skips the send with a warning

Design Decisions:
    - Same AsyncSession as the caller: the log row commits on its own after the
      business transaction, so a failing log write cannot undo the business change
    - Admin recipients resolved from profiles with the admin role, falling back to
      the configured notification inbox
"""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.config import Settings
from courseportal.core import email_templates as templates
from courseportal.core.clock import utc_now
from courseportal.core.domain_types import (
    ADMIN_ROLE, EmailStatus, EmailType, EnrollmentStatus,
)
from courseportal.core.errors import EmailDeliveryError, ErrorContext
from courseportal.models.contact_request import ContactRequest
from courseportal.models.email_log import EmailLog
from courseportal.models.enrollment import Enrollment
from courseportal.models.profile import Profile

logger = logging.getLogger(__name__)


@dataclass
class EmailOutcome:
    sent: bool
    provider_email_id: str | None = None
    error: str | None = None


class NotificationService:
    """Sends transactional emails through the shared email client."""

    def __init__(self, db: AsyncSession, email_client, settings: Settings):
        self.db = db
        self.email_client = email_client
        self.settings = settings

    async def send(
        self,
        rendered: templates.RenderedEmail,
        to: list[str],
        email_type: EmailType,
        *,
        user_id: uuid.UUID | None = None,
        admin_id: uuid.UUID | None = None,
        related_entity_type: str | None = None,
        related_entity_id: uuid.UUID | None = None,
        reply_to: str | None = None,
        batch_id: uuid.UUID | None = None,
    ) -> EmailOutcome:
        recipients = [addr for addr in to if addr]
        if not recipients:
            logger.warning(
                "Email skipped: no recipients",
                extra={"email_type": email_type.value},
            )
            return EmailOutcome(sent=False, error="No recipients")

        try:
            provider_id = await self.email_client.send(
                sender=self.settings.email_from,
                to=recipients,
                subject=rendered.subject,
                html=rendered.html,
                reply_to=reply_to,
                context=ErrorContext(
                    operation=email_type.value,
                    resource_id=str(related_entity_id) if related_entity_id else None,
                ),
            )
            outcome = EmailOutcome(sent=True, provider_email_id=provider_id)
        except EmailDeliveryError as e:
            logger.warning(
                f"Email delivery failed: {e.message}",
                extra={"email_type": email_type.value, "error_code": e.code},
            )
            outcome = EmailOutcome(sent=False, error=e.message)

        await self._log(
            rendered, recipients, email_type, outcome,
            user_id=user_id, admin_id=admin_id,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id, batch_id=batch_id,
        )
        return outcome

    async def admin_recipients(self) -> list[str]:
        result = await self.db.execute(
            select(Profile.email).where(
                Profile.role == ADMIN_ROLE, Profile.deleted_at.is_(None),
            ),
        )
        emails = [e for e in result.scalars().all() if e]
        if not emails and self.settings.admin_notification_email:
            emails = [self.settings.admin_notification_email]
        return emails

    # ─── Enrollments ─────────────────────────────────────────────

    async def enrollment_requested(self, enrollment: Enrollment) -> None:
        """Acknowledge to the student and alert the admins."""
        user = enrollment.user
        intake = enrollment.intake
        course_title = intake.course.title
        await self.send(
            templates.render_enrollment_requested(
                user.full_name, course_title, intake.start_date,
            ),
            [user.email], EmailType.ENROLLMENT_REQUESTED,
            user_id=user.id, related_entity_type="enrollment",
            related_entity_id=enrollment.id,
        )
        admins = await self.admin_recipients()
        if not admins:
            logger.warning(
                "No admin recipients for enrollment alert",
                extra={"enrollment_id": enrollment.id},
            )
            return
        await self.send(
            templates.render_enrollment_admin_alert(
                user.full_name, user.email, course_title, intake.start_date,
            ),
            admins, EmailType.ENROLLMENT_ADMIN_ALERT,
            user_id=user.id, related_entity_type="enrollment",
            related_entity_id=enrollment.id,
        )

    async def enrollment_status_changed(
        self,
        enrollment: Enrollment,
        status: EnrollmentStatus,
        reason: str | None = None,
        admin_id: uuid.UUID | None = None,
    ) -> None:
        user = enrollment.user
        intake = enrollment.intake
        if not user or not user.email or not intake:
            logger.warning(
                "Missing recipient data for enrollment notification",
                extra={"enrollment_id": enrollment.id},
            )
            return
        course_title = intake.course.title
        if status == EnrollmentStatus.ENROLLED:
            rendered = templates.render_enrollment_confirmed(
                user.full_name, course_title, intake.start_date,
            )
            email_type = EmailType.ENROLLMENT_CONFIRMED
        elif status == EnrollmentStatus.CANCELLED:
            rendered = templates.render_enrollment_cancelled(
                user.full_name, course_title, reason,
            )
            email_type = EmailType.ENROLLMENT_CANCELLED
        else:
            return
        await self.send(
            rendered, [user.email], email_type,
            user_id=user.id, admin_id=admin_id,
            related_entity_type="enrollment", related_entity_id=enrollment.id,
        )

    # ─── Customer contact ────────────────────────────────────────

    async def contact_received(self, request: ContactRequest) -> EmailOutcome:
        inbox = self.settings.admin_notification_email or self.settings.contact_email
        return await self.send(
            templates.render_contact_received(
                request.name, request.email, request.phone, request.message,
            ),
            [inbox], EmailType.CONTACT_RECEIVED,
            related_entity_type="contact_request", related_entity_id=request.id,
            reply_to=request.email,
        )

    async def contact_reply(
        self,
        request: ContactRequest,
        subject: str,
        message: str,
        *,
        admin_id: uuid.UUID | None = None,
        batch_id: uuid.UUID | None = None,
        reply_to: str | None = None,
    ) -> EmailOutcome:
        return await self.send(
            templates.render_contact_reply(
                request.name, subject, message, request.message,
            ),
            [request.email], EmailType.CONTACT_REPLY,
            admin_id=admin_id, related_entity_type="contact_request",
            related_entity_id=request.id, batch_id=batch_id,
            reply_to=reply_to or self.settings.contact_email,
        )

    # ─── Accounts ────────────────────────────────────────────────

    async def account_deleted(
        self, profile: Profile, reason: str | None, admin_id: uuid.UUID,
    ) -> EmailOutcome:
        return await self.send(
            templates.render_account_deleted(profile.full_name, reason),
            [profile.email], EmailType.ACCOUNT_DELETED,
            user_id=profile.id, admin_id=admin_id,
            related_entity_type="profile", related_entity_id=profile.id,
        )

    async def account_deletion_scheduled(
        self, profile: Profile, reason: str | None, admin_id: uuid.UUID,
    ) -> EmailOutcome:
        return await self.send(
            templates.render_account_deletion_scheduled(
                profile.full_name, profile.deletion_scheduled_for, reason,
            ),
            [profile.email], EmailType.ACCOUNT_DELETION_SCHEDULED,
            user_id=profile.id, admin_id=admin_id,
            related_entity_type="profile", related_entity_id=profile.id,
        )

    async def account_restored(
        self, profile: Profile, admin_id: uuid.UUID,
    ) -> EmailOutcome:
        return await self.send(
            templates.render_account_restored(profile.full_name),
            [profile.email], EmailType.ACCOUNT_RESTORED,
            user_id=profile.id, admin_id=admin_id,
            related_entity_type="profile", related_entity_id=profile.id,
        )

    async def _log(
        self,
        rendered: templates.RenderedEmail,
        recipients: list[str],
        email_type: EmailType,
        outcome: EmailOutcome,
        **fields,
    ) -> None:
        log = EmailLog(
            provider_email_id=outcome.provider_email_id,
            from_email=self.settings.email_from,
            to_emails=recipients,
            subject=rendered.subject,
            html_content=rendered.html,
            status=(EmailStatus.SENT if outcome.sent else EmailStatus.FAILED).value,
            email_type=email_type.value,
            error_message=outcome.error,
            sent_at=utc_now() if outcome.sent else None,
            **fields,
        )
        self.db.add(log)
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"Could not write email log: {e}",
                extra={"email_type": email_type.value},
            )
