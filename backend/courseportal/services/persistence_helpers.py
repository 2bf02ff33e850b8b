"""Persistence Helpers — small DB idioms shared by every handler class.

Invariants:
    - get_or_404 raises ResourceNotFoundError, never returns None
    - commit_or_conflict rolls back before raising ConflictError on IntegrityError
    - populate_existing reloads refresh identity-map rows changed by Core UPDATEs
"""

import logging
import uuid
from typing import TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.core.errors import ConflictError, ResourceNotFoundError

logger = logging.getLogger(__name__)

M = TypeVar("M")


async def get_or_404(
    db: AsyncSession, model: type[M], entity_id: uuid.UUID, resource_type: str,
) -> M:
    """Load a row by primary key with fresh attributes, or raise 404."""
    result = await db.execute(
        select(model)
        .where(model.id == entity_id)
        .execution_options(populate_existing=True),
    )
    entity = result.scalar_one_or_none()
    if entity is None:
        raise ResourceNotFoundError(resource_type, str(entity_id))
    return entity


async def commit_or_conflict(
    db: AsyncSession,
    message: str,
    code: str = "UNIQUE_CONSTRAINT_VIOLATION",
) -> None:
    """Commit; map a unique/foreign-key violation to ConflictError (409)."""
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Integrity violation on commit: {e.orig}")
        raise ConflictError(message, code)


async def count_where(db: AsyncSession, column, *conditions) -> int:
    result = await db.execute(select(func.count(column)).where(*conditions))
    return result.scalar_one()
