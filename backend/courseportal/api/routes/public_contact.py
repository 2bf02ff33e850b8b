"""Public Contact Route — the website's contact form.

Invariants:
    - Rate-limited per client key (rate_limit_contact_requests per window)
    - The acknowledgement email never fails the submission
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.api.dependencies import get_notifier, rate_limit
from courseportal.infrastructure.database import get_db
from courseportal.schemas.contact import ContactRequestCreate, ContactRequestRead
from courseportal.services.handle_contacts import ContactHandlers
from courseportal.services.notifications import NotificationService

router = APIRouter(prefix="/api/v1/public/contact-requests", tags=["public"])


@router.post(
    "", response_model=ContactRequestRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("contact", "rate_limit_contact_requests"))],
)
async def submit_contact_request(
    body: ContactRequestCreate,
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
):
    return await ContactHandlers(db, notifier).submit(body)
