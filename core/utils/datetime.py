"""Datetime utilities for common operations."""

from datetime import datetime, date, timedelta, timezone
from typing import Optional


def now() -> datetime:
    """Get current datetime in UTC."""
    return datetime.now(timezone.utc)


def today() -> date:
    """Get current date in UTC."""
    return datetime.now(timezone.utc).date()


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes.

    Some drivers (SQLite) hand back naive values for timezone-aware
    columns; everything stored by this service is UTC.

    Args:
        dt: Datetime to normalize

    Returns:
        Timezone-aware datetime, or None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def add_days(dt: datetime, days: int) -> datetime:
    """
    Add days to a datetime.

    Args:
        dt: Starting datetime
        days: Number of days to add (can be negative)

    Returns:
        New datetime
    """
    return dt + timedelta(days=days)


def is_past(dt: datetime | date, reference: Optional[datetime] = None) -> bool:
    """
    Check if a date or datetime lies before the reference moment.

    Args:
        dt: Date or datetime to check
        reference: Moment to compare against (default: now)

    Returns:
        True if in the past
    """
    reference = ensure_aware(reference) or now()
    if isinstance(dt, datetime):
        return ensure_aware(dt) < reference
    return dt < reference.date()


def isoformat(dt: Optional[datetime | date]) -> Optional[str]:
    """Serialize a date/datetime, normalizing naive datetimes to UTC."""
    if dt is None:
        return None
    if isinstance(dt, datetime):
        return ensure_aware(dt).isoformat()
    return dt.isoformat()
