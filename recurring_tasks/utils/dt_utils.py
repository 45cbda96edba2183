"""Date and time helpers. Every timestamp the engine stores or compares is aware UTC."""

from datetime import datetime, timezone


def dt_now_utc() -> datetime:
    """Return the current datetime in UTC (timezone-aware)."""
    return datetime.now(timezone.utc)


def as_utc(dt_obj: datetime) -> datetime:
    """
    Convert a datetime to aware UTC.

    Args:
        dt_obj: Datetime object; a naive value is taken to be UTC already

    Returns:
        Datetime in UTC timezone
    """
    if dt_obj.tzinfo is None:
        return dt_obj.replace(tzinfo=timezone.utc)
    return dt_obj.astimezone(timezone.utc)
