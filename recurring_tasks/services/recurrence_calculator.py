"""
Recurrence Calculator

Pure date arithmetic for recurring tasks: given the current occurrence and a
recurrence pattern, compute the next occurrence. No I/O.
"""

from datetime import datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from recurring_tasks.schemas.recurrence import RecurrencePattern, RecurrenceType
from recurring_tasks.utils.dt_utils import as_utc


def weekday_index(value: datetime) -> int:
    """Weekday index with 0=Sunday..6=Saturday."""
    return (value.weekday() + 1) % 7


def _next_weekly(current: datetime, pattern: RecurrencePattern) -> datetime:
    interval = pattern.interval
    days = set(pattern.days_of_week or [])
    if not days:
        return current + timedelta(weeks=interval)

    start = weekday_index(current)
    for offset in range(1, 7 * interval + 1):
        day = (start + offset) % 7
        if day not in days:
            continue
        # Leaving an occurrence day for a later week: skip the idle weeks of the cycle
        if start in days and day <= start:
            offset += 7 * (interval - 1)
        return current + timedelta(days=offset)

    return current + timedelta(weeks=interval)


def next_date(current: datetime, pattern: RecurrencePattern) -> Optional[datetime]:
    """
    Calculate the occurrence that follows `current`.

    Args:
        current: The anchor (previous occurrence or the parent's due date)
        pattern: Recurrence pattern of the parent task

    Returns:
        The next occurrence, keeping the time of day and tzinfo of `current`,
        or None once the pattern's end date has passed
    """
    interval = pattern.interval

    if pattern.type == RecurrenceType.DAILY:
        candidate = current + timedelta(days=interval)
    elif pattern.type == RecurrenceType.WEEKLY:
        candidate = _next_weekly(current, pattern)
    elif pattern.type == RecurrenceType.MONTHLY:
        if pattern.day_of_month:
            # relativedelta clamps an absolute day to the length of the target month
            candidate = current + relativedelta(months=interval, day=pattern.day_of_month)
        else:
            candidate = current + relativedelta(months=interval)
    elif pattern.type == RecurrenceType.YEARLY:
        if pattern.month_of_year:
            candidate = current + relativedelta(years=interval, month=pattern.month_of_year)
        else:
            candidate = current + relativedelta(years=interval)
    else:
        raise ValueError(f"Unsupported recurrence type: {pattern.type}")

    # Inclusive end date: an occurrence exactly on end_date is still produced
    if pattern.end_date is not None and as_utc(candidate) > pattern.end_date:
        return None

    return candidate
