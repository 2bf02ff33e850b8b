"""API Dependencies — authentication, admin guard, list params, services, rate limits.

Invariants:
    - Missing/invalid bearer token → 401; soft-deleted profile → 403; non-admin on an
      admin route → 403
    - The admin check reads the role from the profile row, not from token claims
    - One AsyncSession per request: handlers and NotificationService share it
      (FastAPI caches get_db per request)
    - Rate-limited routes count one hit per request per client key

Design Decisions:
    - Limiters live at module level, one per named budget (single-process deployment);
      reset_rate_limits() clears them for tests
"""

import logging

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.config import get_settings
from courseportal.core.domain_types import ADMIN_ROLE, SortOrder
from courseportal.core.errors import (
    AuthenticationError, PermissionDeniedError, RateLimitExceededError,
    ResourceNotFoundError,
)
from courseportal.core.list_filters import parse_filters
from courseportal.core.rate_limit import FixedWindowRateLimiter, client_key
from courseportal.infrastructure.auth_tokens import decode_access_token
from courseportal.infrastructure.database import get_db
from courseportal.infrastructure.email_client import get_email_client
from courseportal.infrastructure.storage import LocalImageStorage
from courseportal.models.profile import Profile
from courseportal.schemas.common import ColumnFilter, ListParams
from courseportal.services.notifications import NotificationService
from courseportal.services.persistence_helpers import get_or_404

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


# ─── Auth ────────────────────────────────────────────────────────

async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()
    settings = get_settings()
    claims = decode_access_token(
        credentials.credentials,
        settings.jwt_secret,
        settings.jwt_algorithm,
        settings.jwt_audience or None,
    )
    try:
        profile = await get_or_404(db, Profile, claims.user_id, "User")
    except ResourceNotFoundError:
        raise AuthenticationError("No profile for this access token")
    if profile.deleted_at is not None:
        raise PermissionDeniedError("This account has been deactivated")
    return profile


async def require_admin(user: Profile = Depends(get_current_user)) -> Profile:
    if user.role != ADMIN_ROLE:
        logger.warning("Admin access denied", extra={"user_id": user.id})
        raise PermissionDeniedError()
    return user


# ─── Lists ───────────────────────────────────────────────────────

def list_params(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    sort_by: str = Query("created_at"),
    order: SortOrder = Query(SortOrder.DESC),
    filters: str | None = Query(None, description='JSON array of {"id", "value"}'),
    search: str | None = Query(None),
    all_rows: bool = Query(False, alias="all"),
) -> ListParams:
    return ListParams(
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        order=order,
        filters=[ColumnFilter(**f) for f in parse_filters(filters)],
        search=search,
        all=all_rows,
    )


# ─── Services ────────────────────────────────────────────────────

def get_notifier(
    db: AsyncSession = Depends(get_db),
    email_client=Depends(get_email_client),
) -> NotificationService:
    return NotificationService(db, email_client, get_settings())


def get_storage() -> LocalImageStorage:
    settings = get_settings()
    return LocalImageStorage(settings.upload_dir, settings.max_upload_bytes)


# ─── Rate limiting ───────────────────────────────────────────────

_limiters: dict[str, FixedWindowRateLimiter] = {}


def rate_limit(name: str, limit_setting: str):
    """Dependency factory: enforce the `limit_setting` budget per client key."""

    async def enforce(request: Request) -> None:
        settings = get_settings()
        limiter = _limiters.get(name)
        if limiter is None:
            limiter = FixedWindowRateLimiter(
                getattr(settings, limit_setting),
                settings.rate_limit_window_seconds,
            )
            _limiters[name] = limiter
        key = client_key(
            request.headers.get("x-forwarded-for"),
            request.headers.get("x-real-ip"),
            request.client.host if request.client else None,
        )
        decision = limiter.check(key)
        if not decision.allowed:
            logger.warning(
                f"Rate limit '{name}' exceeded",
                extra={"client_key": key, "path": request.url.path},
            )
            raise RateLimitExceededError(decision.retry_after_seconds)

    return enforce


def reset_rate_limits() -> None:
    _limiters.clear()
