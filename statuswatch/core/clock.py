"""Time helpers shared by the scheduled jobs."""

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Normalise a datetime read from the database to aware UTC.

    SQLite hands back naive values for timestamp columns; PostgreSQL returns
    aware ones. Naive values are assumed to already be UTC.

    Args:
        value: Datetime from the database, or None

    Returns:
        Aware UTC datetime, or None if value was None
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def floor_to_minute(value: datetime) -> datetime:
    """Truncate seconds and microseconds."""
    return value.replace(second=0, microsecond=0)


def previous_minute_bucket(now: datetime) -> datetime:
    """Start of the last fully completed minute before now."""
    return floor_to_minute(now) - timedelta(minutes=1)
