"""User Handlers — admin profile management, soft deletion and restoration.

Invariants:
    - Admins cannot delete their own account (CANNOT_DELETE_SELF)
    - Immediate deletion sets deleted_at and increments deletion_count; a scheduled
      deletion only sets deletion_scheduled_for; a schedule date not in the future
      deletes immediately
    - Every deletion writes one user_deletion_history row; restore closes the open rows
    - Restoration is refused once deletion_count reaches max_user_restorations
    - Soft-deleted profiles are hidden from the default user list

Design Decisions:
    - Notification emails go out after the profile change commits; the history row
      records whether the email actually went out
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.core.clock import as_utc, utc_now
from courseportal.core.errors import BusinessRuleError, ConflictError
from courseportal.db.list_query import paginate, search_condition
from courseportal.models.enrollment import Enrollment
from courseportal.models.profile import Profile
from courseportal.models.refund import Refund
from courseportal.models.user_deletion_history import UserDeletionHistory
from courseportal.schemas.common import ListParams, Page
from courseportal.schemas.payment import RefundRead
from courseportal.schemas.profile import (
    ProfileCreate, ProfileRead, ProfileUpdate, UserDeleteRequest, UserDetail,
)
from courseportal.services.handle_enrollments import (
    enrollment_list_item, enrollment_list_select,
)
from courseportal.services.handle_payments import (
    payment_list_item, payment_list_select,
)
from courseportal.services.notifications import NotificationService
from courseportal.services.persistence_helpers import commit_or_conflict, get_or_404

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = {
    "id": Profile.id,
    "full_name": Profile.full_name,
    "email": Profile.email,
    "phone": Profile.phone,
    "role": Profile.role,
    "deleted_at": Profile.deleted_at,
    "deletion_scheduled_for": Profile.deletion_scheduled_for,
    "deletion_count": Profile.deletion_count,
    "created_at": Profile.created_at,
    "updated_at": Profile.updated_at,
}

_DUPLICATE_EMAIL = "A user with this email already exists"


class UserHandlers:
    """Admin user management."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: NotificationService | None = None,
        max_restorations: int = 3,
    ):
        self.db = db
        self.notifier = notifier
        self.max_restorations = max_restorations

    # ─── Reads ───────────────────────────────────────────────────

    async def admin_list(
        self,
        params: ListParams,
        include_deleted: bool = False,
        role: str | None = None,
    ) -> Page[ProfileRead]:
        page = await paginate(
            self.db, select(Profile), params, PROFILE_COLUMNS,
            extra_conditions=[
                None if include_deleted else Profile.deleted_at.is_(None),
                Profile.role == role if role else None,
                search_condition(
                    params.search, [Profile.full_name, Profile.email, Profile.phone],
                ),
            ],
        )
        return Page[ProfileRead](
            data=[ProfileRead.model_validate(r[0]) for r in page.rows],
            total=page.total, page=page.page, page_size=page.page_size,
        )

    async def list_deleted(self, params: ListParams) -> Page[ProfileRead]:
        page = await paginate(
            self.db, select(Profile), params, PROFILE_COLUMNS,
            extra_conditions=[
                Profile.deleted_at.is_not(None),
                search_condition(params.search, [Profile.full_name, Profile.email]),
            ],
        )
        return Page[ProfileRead](
            data=[ProfileRead.model_validate(r[0]) for r in page.rows],
            total=page.total, page=page.page, page_size=page.page_size,
        )

    async def get(self, user_id: uuid.UUID) -> Profile:
        return await get_or_404(self.db, Profile, user_id, "User")

    async def get_detail(self, user_id: uuid.UUID) -> UserDetail:
        profile = await self.get(user_id)
        enrollments = await self.db.execute(
            enrollment_list_select()
            .where(Enrollment.user_id == user_id)
            .order_by(Enrollment.created_at.desc()),
        )
        payments = await self.db.execute(
            payment_list_select().where(Profile.id == user_id),
        )
        refunds = await self.db.execute(
            select(Refund)
            .where(Refund.user_id == user_id)
            .order_by(Refund.created_at.desc()),
        )
        return UserDetail(
            profile=ProfileRead.model_validate(profile),
            enrollments=[enrollment_list_item(r) for r in enrollments.all()],
            payments=[payment_list_item(r) for r in payments.all()],
            refunds=[RefundRead.model_validate(r) for r in refunds.scalars().all()],
        )

    async def deletion_history(
        self, user_id: uuid.UUID,
    ) -> list[UserDeletionHistory]:
        await self.get(user_id)
        result = await self.db.execute(
            select(UserDeletionHistory)
            .where(UserDeletionHistory.user_id == user_id)
            .order_by(UserDeletionHistory.created_at.desc()),
        )
        return list(result.scalars().all())

    # ─── Writes ──────────────────────────────────────────────────

    async def create(self, body: ProfileCreate) -> Profile:
        profile = Profile(
            full_name=body.full_name.strip(),
            email=body.email.strip().lower(),
            phone=body.phone,
            role=body.role,
        )
        self.db.add(profile)
        await commit_or_conflict(self.db, _DUPLICATE_EMAIL)
        logger.info("User created", extra={"user_id": profile.id})
        return profile

    async def update(self, user_id: uuid.UUID, body: ProfileUpdate) -> Profile:
        profile = await self.get(user_id)
        changes = body.model_dump(exclude_unset=True, exclude_none=True)
        if "email" in changes:
            changes["email"] = changes["email"].strip().lower()
        for key, value in changes.items():
            setattr(profile, key, value)
        await commit_or_conflict(self.db, _DUPLICATE_EMAIL)
        return profile

    async def soft_delete(
        self, user_id: uuid.UUID, body: UserDeleteRequest, admin: Profile,
    ) -> Profile:
        if user_id == admin.id:
            raise BusinessRuleError(
                "You cannot delete your own account", "CANNOT_DELETE_SELF",
            )
        profile = await self.get(user_id)
        if profile.deleted_at is not None:
            raise ConflictError("User is already deleted", "USER_ALREADY_DELETED")

        now = utc_now()
        scheduled_for = as_utc(body.scheduled_for)
        if scheduled_for is not None and scheduled_for <= now:
            # A date that has already passed means delete now
            scheduled_for = None

        if scheduled_for:
            profile.deletion_scheduled_for = scheduled_for
        else:
            profile.deleted_at = now
            profile.deletion_count = profile.deletion_count + 1
            profile.deletion_scheduled_for = None
        history = UserDeletionHistory(
            user_id=user_id,
            deleted_at=now,
            deleted_by=admin.id,
            deletion_reason=body.reason,
            scheduled_deletion_date=scheduled_for,
            email_notification_sent=False,
        )
        self.db.add(history)
        await self.db.commit()
        logger.info(
            "User deletion scheduled" if scheduled_for else "User soft-deleted",
            extra={"user_id": user_id, "admin_id": admin.id},
        )

        if self.notifier and body.notify:
            if scheduled_for:
                outcome = await self.notifier.account_deletion_scheduled(
                    profile, body.reason, admin.id,
                )
            else:
                outcome = await self.notifier.account_deleted(
                    profile, body.reason, admin.id,
                )
            if outcome.sent:
                history.email_notification_sent = True
                await self.db.commit()
        return profile

    async def restore(self, user_id: uuid.UUID, admin: Profile) -> Profile:
        profile = await self.get(user_id)
        if profile.deleted_at is None:
            raise BusinessRuleError("User is not deleted", "USER_NOT_DELETED")
        if profile.deletion_count >= self.max_restorations:
            raise BusinessRuleError(
                f"User has reached the maximum restoration limit of "
                f"{self.max_restorations}",
                "RESTORATION_LIMIT_REACHED",
                details={
                    "deletion_count": profile.deletion_count,
                    "max_restorations": self.max_restorations,
                },
            )

        now = utc_now()
        profile.deleted_at = None
        profile.deletion_scheduled_for = None
        open_rows = await self.db.execute(
            select(UserDeletionHistory).where(
                UserDeletionHistory.user_id == user_id,
                UserDeletionHistory.restored_at.is_(None),
            ),
        )
        for row in open_rows.scalars().all():
            row.restored_at = now
            row.restored_by = admin.id
            row.restoration_count = row.restoration_count + 1
        await self.db.commit()
        logger.info("User restored", extra={"user_id": user_id, "admin_id": admin.id})

        if self.notifier:
            await self.notifier.account_restored(profile, admin.id)
        return profile

    async def cancel_scheduled_deletion(self, user_id: uuid.UUID) -> Profile:
        profile = await self.get(user_id)
        if profile.deletion_scheduled_for is None:
            raise BusinessRuleError(
                "User does not have a scheduled deletion", "NO_SCHEDULED_DELETION",
            )
        profile.deletion_scheduled_for = None
        await self.db.commit()
        logger.info("Scheduled deletion cancelled", extra={"user_id": user_id})
        return profile
