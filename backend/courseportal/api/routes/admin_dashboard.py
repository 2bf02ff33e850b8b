"""Admin Dashboard & Email Log Routes."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.api.dependencies import list_params, require_admin
from courseportal.infrastructure.database import get_db
from courseportal.schemas.common import ListParams, Page
from courseportal.schemas.dashboard import (
    DashboardSummaryRead, EmailLogDetail, EmailLogRead,
)
from courseportal.services.handle_dashboard import DashboardHandlers

router = APIRouter(
    prefix="/api/v1/admin", tags=["admin: dashboard"],
    dependencies=[Depends(require_admin)],
)


@router.get("/dashboard", response_model=DashboardSummaryRead)
async def dashboard_summary(db: AsyncSession = Depends(get_db)):
    return await DashboardHandlers(db).summary()


@router.get("/email-logs", response_model=Page[EmailLogRead])
async def list_email_logs(
    params: ListParams = Depends(list_params),
    db: AsyncSession = Depends(get_db),
):
    return await DashboardHandlers(db).list_email_logs(params)


@router.get("/email-logs/{log_id}", response_model=EmailLogDetail)
async def get_email_log(log_id: UUID, db: AsyncSession = Depends(get_db)):
    return await DashboardHandlers(db).get_email_log(log_id)
