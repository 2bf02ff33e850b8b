"""Seat Reservation — atomic intake counter updates.

Invariants:
    - reserve_seat is ONE conditional UPDATE: it increments total_registered only
      while total_registered < capacity AND is_open; zero affected rows => refused
    - release_seat never drives total_registered below zero
    - Both run inside the caller's transaction; the caller commits or rolls back

Design Decisions:
    - Conditional UPDATE over SELECT-then-UPDATE: concurrent requests for the last
      seat serialize on the row lock, so capacity can never be exceeded
    - Refusal reason (missing / closed / full) is read only after a refused UPDATE
"""

import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.core.errors import ConflictError, ResourceNotFoundError
from courseportal.models.intake import Intake

logger = logging.getLogger(__name__)


async def reserve_seat(db: AsyncSession, intake_id: uuid.UUID) -> None:
    result = await db.execute(
        update(Intake)
        .where(
            Intake.id == intake_id,
            Intake.total_registered < Intake.capacity,
            Intake.is_open.is_(True),
        )
        .values(total_registered=Intake.total_registered + 1)
        .execution_options(synchronize_session=False),
    )
    if result.rowcount == 1:
        return

    row = (await db.execute(
        select(Intake.capacity, Intake.total_registered, Intake.is_open)
        .where(Intake.id == intake_id),
    )).one_or_none()
    if row is None:
        raise ResourceNotFoundError("Intake", str(intake_id))
    if not row.is_open:
        raise ConflictError(
            "Intake is closed for enrollment", "INTAKE_CLOSED",
            details={"intake_id": str(intake_id)},
        )
    logger.info(
        "Seat reservation refused: intake full",
        extra={"intake_id": intake_id},
    )
    raise ConflictError(
        "Intake is full", "INTAKE_FULL",
        details={
            "intake_id": str(intake_id),
            "capacity": row.capacity,
            "total_registered": row.total_registered,
        },
    )


async def release_seat(db: AsyncSession, intake_id: uuid.UUID) -> None:
    await db.execute(
        update(Intake)
        .where(Intake.id == intake_id, Intake.total_registered > 0)
        .values(total_registered=Intake.total_registered - 1)
        .execution_options(synchronize_session=False),
    )
