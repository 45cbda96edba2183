from datetime import datetime, timedelta, timezone

import pytest

from recurring_tasks.schemas.recurrence import RecurrencePattern
from recurring_tasks.services.recurrence_calculator import next_date, weekday_index


def pattern(**fields) -> RecurrencePattern:
    return RecurrencePattern.model_validate(fields)


@pytest.mark.parametrize("interval", [1, 2, 7, 30, 365])
def test_daily_advances_by_interval(interval: int) -> None:
    current = datetime(2025, 3, 10, 8, 30)

    result = next_date(current, pattern(type="daily", interval=interval))

    assert (result - current).days == interval
    assert result.time() == current.time()


def test_monthly_day_of_month_clamps_into_leap_february() -> None:
    result = next_date(datetime(2024, 1, 31), pattern(type="monthly", interval=1, dayOfMonth=31))

    assert result == datetime(2024, 2, 29)


def test_monthly_day_of_month_clamps_into_common_february() -> None:
    result = next_date(datetime(2025, 1, 31), pattern(type="monthly", interval=1, dayOfMonth=31))

    assert result == datetime(2025, 2, 28)


def test_monthly_day_of_month_returns_to_full_day_after_short_month() -> None:
    result = next_date(datetime(2025, 2, 28), pattern(type="monthly", interval=1, dayOfMonth=31))

    assert result == datetime(2025, 3, 31)


def test_monthly_without_day_keeps_day_and_honours_interval() -> None:
    result = next_date(datetime(2025, 1, 15, 18, 0), pattern(type="monthly", interval=2))

    assert result == datetime(2025, 3, 15, 18, 0)


def test_monthly_crosses_year_boundary() -> None:
    result = next_date(datetime(2024, 11, 5), pattern(type="monthly", interval=3, dayOfMonth=5))

    assert result == datetime(2025, 2, 5)


def test_weekly_days_of_week_picks_next_listed_day() -> None:
    monday = datetime(2025, 1, 6)
    assert weekday_index(monday) == 1

    result = next_date(monday, pattern(type="weekly", interval=1, daysOfWeek=[1, 3, 5]))

    assert result == datetime(2025, 1, 8)
    assert weekday_index(result) == 3


def test_weekly_days_of_week_wraps_to_next_week() -> None:
    friday = datetime(2025, 1, 10)

    result = next_date(friday, pattern(type="weekly", interval=1, daysOfWeek=[1, 3, 5]))

    assert result == datetime(2025, 1, 13)


def test_weekly_sunday_index_is_zero() -> None:
    saturday = datetime(2025, 1, 4)

    result = next_date(saturday, pattern(type="weekly", interval=1, daysOfWeek=[0]))

    assert result == datetime(2025, 1, 5)


def test_biweekly_off_pattern_anchor_aligns_to_first_listed_day() -> None:
    wednesday = datetime(2025, 1, 1)

    result = next_date(wednesday, pattern(type="weekly", interval=2, daysOfWeek=[2]))

    assert result == datetime(2025, 1, 7)


def test_biweekly_from_occurrence_day_skips_a_week() -> None:
    tuesday = datetime(2025, 1, 7)

    result = next_date(tuesday, pattern(type="weekly", interval=2, daysOfWeek=[2]))

    assert result == datetime(2025, 1, 21)


def test_biweekly_multiple_days_stay_within_week_before_skipping() -> None:
    p = pattern(type="weekly", interval=2, daysOfWeek=[1, 5])
    monday = datetime(2025, 1, 6)

    friday = next_date(monday, p)
    following = next_date(friday, p)

    assert friday == datetime(2025, 1, 10)
    assert following == datetime(2025, 1, 20)


def test_weekly_without_days_adds_whole_weeks() -> None:
    result = next_date(datetime(2025, 1, 1), pattern(type="weekly", interval=3))

    assert result == datetime(2025, 1, 22)


def test_yearly_overwrites_month_and_keeps_day() -> None:
    result = next_date(datetime(2024, 3, 15), pattern(type="yearly", interval=1, monthOfYear=6))

    assert result == datetime(2025, 6, 15)


def test_yearly_without_month_adds_years() -> None:
    result = next_date(datetime(2023, 7, 4), pattern(type="yearly", interval=2))

    assert result == datetime(2025, 7, 4)


def test_end_date_before_next_occurrence_stops_recurrence() -> None:
    current = datetime(2025, 1, 1, 9, 0)
    natural = next_date(current, pattern(type="daily", interval=1))

    result = next_date(
        current,
        pattern(type="daily", interval=1, endDate=(natural - timedelta(days=1)).isoformat()),
    )

    assert result is None


def test_occurrence_on_end_date_is_still_produced() -> None:
    result = next_date(
        datetime(2025, 1, 1),
        pattern(type="daily", interval=1, endDate="2025-01-02T00:00:00"),
    )

    assert result == datetime(2025, 1, 2)


def test_timezone_aware_current_is_preserved_and_compared_in_utc() -> None:
    eastern = timezone(timedelta(hours=-5))
    current = datetime(2025, 1, 1, 23, 0, tzinfo=eastern)
    daily = {"type": "daily", "interval": 1}

    result = next_date(current, pattern(**daily, endDate="2025-01-03T04:00:00Z"))

    assert result == datetime(2025, 1, 2, 23, 0, tzinfo=eastern)
    assert result.tzinfo is eastern
    assert next_date(current, pattern(**daily, endDate="2025-01-02T23:00:00-05:00")) is not None
    assert next_date(current, pattern(**daily, endDate="2025-01-03T03:59:59Z")) is None
