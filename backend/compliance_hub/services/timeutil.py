"""UTC helpers. SQLite hands back naive datetimes, so everything is normalized here."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes; convert aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day(value: datetime) -> datetime:
    """Midnight of the same calendar day, in value's own timezone."""
    return value.replace(hour=0, minute=0, second=0, microsecond=0)
