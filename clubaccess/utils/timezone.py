"""
Timezone Utilities.

Golden Rules:
1. Database: Always store UTC
2. Naive datetimes read back from the database are UTC
3. Calendar dates (date of birth, age) use the UTC date
"""

from datetime import date, datetime, timezone

# UTC constant
UTC = timezone.utc


def utc_now() -> datetime:
    """
    Get current time in UTC (timezone-aware).

    Always use this instead of datetime.utcnow() which returns
    naive datetime.
    """
    return datetime.now(UTC)


def utc_today() -> date:
    """Current calendar date in UTC."""
    return utc_now().date()


def to_utc(dt: datetime) -> datetime:
    """
    Convert datetime to UTC.

    Naive values are assumed to already be UTC (SQLite drops tzinfo).
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)
