"""Date and time utility functions."""

from datetime import datetime, timedelta, timezone

UTC_TZ = timezone.utc


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC_TZ)


def ensure_utc(dt: datetime) -> datetime:
    """
    Make a datetime timezone-aware in UTC.

    Args:
        dt: Datetime to convert (assumed UTC if no timezone)

    Returns:
        Datetime in UTC
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC_TZ)
    return dt.astimezone(UTC_TZ)


def days_ago(days: int, now: datetime | None = None) -> datetime:
    """Get the UTC datetime ``days`` days before ``now``."""
    return (now or utc_now()) - timedelta(days=days)


def format_report_date(dt: datetime) -> str:
    """Format a datetime for human-readable reports (e.g. "Mar 04, 2025")."""
    return ensure_utc(dt).strftime("%b %d, %Y")
