"""Signed-in User Routes — own profile, enrollments and payments.

Invariants:
    - Every route requires a valid bearer token (get_current_user)
    - A user only ever sees or pays for their own enrollments
    - Self-enrollment is rate-limited per client key
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.api.dependencies import (
    get_current_user, get_notifier, list_params, rate_limit,
)
from courseportal.infrastructure.database import get_db
from courseportal.models.profile import Profile
from courseportal.schemas.common import ListParams, Page
from courseportal.schemas.enrollment import (
    EnrollmentCreate, EnrollmentRead, UserEnrollmentList,
)
from courseportal.schemas.payment import PaymentRead, UserPaymentCreate, UserPaymentItem
from courseportal.schemas.profile import ProfileRead
from courseportal.services.handle_enrollments import EnrollmentHandlers
from courseportal.services.handle_payments import PaymentHandlers
from courseportal.services.notifications import NotificationService

router = APIRouter(prefix="/api/v1/me", tags=["me"])


@router.get("", response_model=ProfileRead)
async def get_profile(user: Profile = Depends(get_current_user)):
    return user


@router.get("/enrollments", response_model=UserEnrollmentList)
async def list_my_enrollments(
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items = await EnrollmentHandlers(db).list_for_user(user.id)
    return UserEnrollmentList(data=items, total=len(items))


@router.post(
    "/enrollments", response_model=EnrollmentRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("enrollment", "rate_limit_enrollments"))],
)
async def enroll(
    body: EnrollmentCreate,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    """Request a seat in an intake. Starts as `requested`."""
    return await EnrollmentHandlers(db, notifier).create_for_user(
        user, body.intake_id, body.notes,
    )


@router.get("/payments", response_model=Page[UserPaymentItem])
async def list_my_payments(
    params: ListParams = Depends(list_params),
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await PaymentHandlers(db).list_for_user(user.id, params)


@router.post(
    "/payments", response_model=PaymentRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_my_payment(
    body: UserPaymentCreate,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await PaymentHandlers(db).create_for_user(user, body)
