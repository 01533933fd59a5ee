"""Date helpers shared by the rule modules."""

import math
from datetime import UTC, datetime

SECONDS_PER_DAY = 86400


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as some drivers return them) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def days_since(value: datetime | None, now: datetime | None = None) -> int | None:
    """Days elapsed since ``value``, a started day counting as a whole one.

    Returns None when ``value`` is unknown.
    """
    if value is None:
        return None
    now = as_utc(now) if now else utcnow()
    return math.ceil((now - as_utc(value)).total_seconds() / SECONDS_PER_DAY)
