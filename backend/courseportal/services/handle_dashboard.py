"""Dashboard & Email Log Handlers — admin overview figures and the email audit trail."""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.core.dashboard_stats import DashboardSummary, summarize
from courseportal.core.domain_types import DEFAULT_ROLE
from courseportal.db.list_query import paginate, search_condition
from courseportal.models.email_log import EmailLog
from courseportal.models.enrollment import Enrollment
from courseportal.models.payment import Payment
from courseportal.models.profile import Profile
from courseportal.schemas.common import ListParams, Page
from courseportal.schemas.dashboard import EmailLogRead
from courseportal.services.persistence_helpers import count_where, get_or_404

logger = logging.getLogger(__name__)

EMAIL_LOG_COLUMNS = {
    "id": EmailLog.id,
    "status": EmailLog.status,
    "email_type": EmailLog.email_type,
    "subject": EmailLog.subject,
    "from_email": EmailLog.from_email,
    "user_id": EmailLog.user_id,
    "batch_id": EmailLog.batch_id,
    "related_entity_type": EmailLog.related_entity_type,
    "related_entity_id": EmailLog.related_entity_id,
    "sent_at": EmailLog.sent_at,
    "created_at": EmailLog.created_at,
}


class DashboardHandlers:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def summary(self) -> DashboardSummary:
        total_users = await count_where(
            self.db, Profile.id,
            Profile.role == DEFAULT_ROLE, Profile.deleted_at.is_(None),
        )
        enrollment_groups = await self.db.execute(
            select(Enrollment.status, func.count(Enrollment.id))
            .group_by(Enrollment.status),
        )
        payment_groups = await self.db.execute(
            select(Payment.status, func.count(Payment.id), func.sum(Payment.amount))
            .group_by(Payment.status),
        )
        return summarize(
            total_users,
            [tuple(row) for row in enrollment_groups.all()],
            [tuple(row) for row in payment_groups.all()],
        )

    async def list_email_logs(self, params: ListParams) -> Page[EmailLogRead]:
        page = await paginate(
            self.db, select(EmailLog), params, EMAIL_LOG_COLUMNS,
            extra_conditions=[search_condition(
                params.search, [EmailLog.subject, EmailLog.email_type],
            )],
        )
        return Page[EmailLogRead](
            data=[EmailLogRead.model_validate(r[0]) for r in page.rows],
            total=page.total, page=page.page, page_size=page.page_size,
        )

    async def get_email_log(self, log_id: uuid.UUID) -> EmailLog:
        return await get_or_404(self.db, EmailLog, log_id, "Email log")
