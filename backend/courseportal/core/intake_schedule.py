"""Intake Schedule — pure intake validation, seat math and yearly generation plans.

Invariants:
    - start_date < end_date
    - 1 <= capacity <= MAX_CAPACITY, and capacity never drops below total_registered
    - available_seats is never negative
    - plan_intakes skips every month that already has an intake (per course, per year)
    - Standard plan: 1st of Jan/Apr/Jul/Oct, ending on the 28th of the same month
    - Advanced plan: 15th of Jan/Mar/May/Jul/Sep/Nov, lasting ADVANCED_DURATION_DAYS

Design Decisions:
    - Existing months are passed in (computed by the caller from loaded rows):
      month extraction stays portable across PostgreSQL and SQLite
    - Planned intakes are plain dataclasses, persisted by services/handle_intakes.py
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from courseportal.core.domain_types import IntakePlan
from courseportal.core.errors import ValidationError


MAX_CAPACITY = 10_000
DEFAULT_CAPACITY = 20
STANDARD_MONTHS = (1, 4, 7, 10)
STANDARD_END_DAY = 28
ADVANCED_MONTHS = (1, 3, 5, 7, 9, 11)
ADVANCED_START_DAY = 15
ADVANCED_DURATION_DAYS = 90


@dataclass(frozen=True)
class PlannedIntake:
    month: int
    start_date: datetime
    end_date: datetime


def validate_dates(start_date: datetime, end_date: datetime) -> None:
    if start_date >= end_date:
        raise ValidationError(
            "Start date must be before end date", "INVALID_DATES",
            details={
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
            },
        )


def validate_capacity(capacity: int, total_registered: int = 0) -> None:
    if capacity <= 0:
        raise ValidationError(
            "Capacity must be greater than zero", "INVALID_CAPACITY",
            details={"capacity": capacity},
        )
    if capacity > MAX_CAPACITY:
        raise ValidationError(
            "Capacity cannot exceed 10000", "INVALID_CAPACITY",
            details={"capacity": capacity},
        )
    if capacity < total_registered:
        raise ValidationError(
            "Capacity cannot be lower than the number of registered students",
            "CAPACITY_BELOW_REGISTERED",
            details={"capacity": capacity, "total_registered": total_registered},
        )


def available_seats(capacity: int, total_registered: int) -> int:
    return max(0, capacity - total_registered)


def plan_intakes(
    year: int, plan: IntakePlan, existing_months: set[int],
) -> list[PlannedIntake]:
    """Intakes to create for `year`, skipping months already covered."""
    planned = []
    if plan == IntakePlan.STANDARD:
        for month in STANDARD_MONTHS:
            if month in existing_months:
                continue
            planned.append(PlannedIntake(
                month=month,
                start_date=datetime(year, month, 1, tzinfo=timezone.utc),
                end_date=datetime(year, month, STANDARD_END_DAY, tzinfo=timezone.utc),
            ))
    else:
        for month in ADVANCED_MONTHS:
            if month in existing_months:
                continue
            start = datetime(year, month, ADVANCED_START_DAY, tzinfo=timezone.utc)
            planned.append(PlannedIntake(
                month=month,
                start_date=start,
                end_date=start + timedelta(days=ADVANCED_DURATION_DAYS),
            ))
    return planned


def plan_months(plan: IntakePlan) -> tuple[int, ...]:
    return STANDARD_MONTHS if plan == IntakePlan.STANDARD else ADVANCED_MONTHS


def year_bounds(year: int) -> tuple[datetime, datetime]:
    """[start, end) of a calendar year in UTC."""
    return (
        datetime(year, 1, 1, tzinfo=timezone.utc),
        datetime(year + 1, 1, 1, tzinfo=timezone.utc),
    )
