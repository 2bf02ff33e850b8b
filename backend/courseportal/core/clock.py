"""Clock helpers — timezone-aware UTC timestamps.

Invariants:
    - utc_now() is always timezone-aware
    - as_utc() never returns a naive datetime (naive input is assumed UTC)
"""

from datetime import datetime, time, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize a DB-loaded timestamp (SQLite drops tzinfo) to aware UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_today() -> datetime:
    """Midnight UTC of the current day."""
    return datetime.combine(utc_now().date(), time.min, tzinfo=timezone.utc)
