from datetime import datetime, timedelta, timezone

from recurring_tasks.services.instance_generator import (
    MAX_GENERATED_INSTANCES,
    generate,
)

UTC = timezone.utc


def test_biweekly_tuesday_scenario(make_parent) -> None:
    parent = make_parent(
        {"type": "weekly", "interval": 2, "daysOfWeek": [2]},
        due_date=datetime(2025, 1, 1, tzinfo=UTC),
    )

    drafts = generate(parent, horizon=datetime(2025, 3, 1, tzinfo=UTC))

    assert [d.due_date for d in drafts] == [
        datetime(2025, 1, 7, tzinfo=UTC),
        datetime(2025, 1, 21, tzinfo=UTC),
        datetime(2025, 2, 4, tzinfo=UTC),
        datetime(2025, 2, 18, tzinfo=UTC),
    ]
    gaps = {(b.due_date - a.due_date).days for a, b in zip(drafts, drafts[1:])}
    assert gaps == {14}


def test_max_occurrences_caps_a_long_horizon(make_parent) -> None:
    parent = make_parent(
        {"type": "daily", "interval": 1, "maxOccurrences": 3},
        due_date=datetime(2025, 1, 1, tzinfo=UTC),
    )

    drafts = generate(parent, horizon=datetime(2026, 1, 1, tzinfo=UTC))

    assert len(drafts) == 3


def test_horizon_is_inclusive_and_nothing_beyond_it_is_emitted(make_parent) -> None:
    parent = make_parent({"type": "daily", "interval": 1}, due_date=datetime(2025, 1, 1, tzinfo=UTC))

    drafts = generate(parent, horizon=datetime(2025, 1, 5, tzinfo=UTC))

    assert drafts[-1].due_date == datetime(2025, 1, 5, tzinfo=UTC)
    assert len(drafts) == 4


def test_interval_is_applied_from_previous_occurrence(make_parent) -> None:
    parent = make_parent(
        {"type": "monthly", "interval": 2, "dayOfMonth": 31},
        due_date=datetime(2025, 1, 31, tzinfo=UTC),
    )

    drafts = generate(parent, horizon=datetime(2025, 12, 31, tzinfo=UTC))

    assert [d.due_date for d in drafts] == [
        datetime(2025, 3, 31, tzinfo=UTC),
        datetime(2025, 5, 31, tzinfo=UTC),
        datetime(2025, 7, 31, tzinfo=UTC),
        datetime(2025, 9, 30, tzinfo=UTC),
        datetime(2025, 11, 30, tzinfo=UTC),
    ]


def test_end_date_stops_generation(make_parent) -> None:
    parent = make_parent(
        {"type": "weekly", "interval": 1, "endDate": "2025-01-15T00:00:00Z"},
        due_date=datetime(2025, 1, 1, tzinfo=UTC),
    )

    drafts = generate(parent, horizon=datetime(2025, 6, 1, tzinfo=UTC))

    assert [d.due_date for d in drafts] == [datetime(2025, 1, 8, tzinfo=UTC), datetime(2025, 1, 15, tzinfo=UTC)]


def test_naive_and_offset_due_dates_are_emitted_as_utc(make_parent) -> None:
    naive = make_parent({"type": "daily", "interval": 1}, due_date=datetime(2025, 1, 1, 9, 0))
    eastern = make_parent(
        {"type": "daily", "interval": 1},
        due_date=datetime(2025, 1, 1, 23, 0, tzinfo=timezone(timedelta(hours=-5))),
    )

    assert generate(naive, horizon=datetime(2025, 1, 2, 9, 0))[0].due_date == datetime(2025, 1, 2, 9, 0, tzinfo=UTC)
    first = generate(eastern, horizon=datetime(2025, 1, 4, tzinfo=UTC))[0]
    assert first.due_date == datetime(2025, 1, 3, 4, 0, tzinfo=UTC)
    assert first.due_date.tzinfo is UTC


def test_drafts_copy_parent_fields(make_parent) -> None:
    parent = make_parent({"type": "daily", "interval": 1}, due_date=datetime(2025, 1, 1, tzinfo=UTC))

    draft = generate(parent, horizon=datetime(2025, 1, 2, tzinfo=UTC))[0]

    assert draft.title == parent.title
    assert draft.description == parent.description
    assert draft.assigned_to == ["alex"]
    assert draft.project_id == "garden"
    assert draft.priority == "high"
    assert draft.tags == ["home"]
    assert draft.parent_task_id == parent.id
    assert draft.is_recurring is False
    assert draft.status == "active"

    task = draft.to_task()
    assert task.parent_task_id == parent.id
    assert task.recurrence_pattern is None
    assert task.id and task.id != parent.id


def test_missing_priority_defaults_to_medium(make_parent, now) -> None:
    parent = make_parent({"type": "daily", "interval": 1}, priority=None)

    drafts = generate(parent, horizon=now + timedelta(days=2), now=now)

    assert {d.priority for d in drafts} == {"medium"}


def test_parent_without_due_date_is_anchored_at_now(make_parent, now) -> None:
    parent = make_parent({"type": "daily", "interval": 7}, due_date=None)

    drafts = generate(parent, horizon=now + timedelta(days=30), now=now)

    assert [d.due_date for d in drafts] == [now + timedelta(days=7 * i) for i in range(1, 5)]


def test_parent_with_unusable_pattern_generates_nothing(make_parent) -> None:
    assert generate(make_parent(None), horizon=datetime(2026, 1, 1, tzinfo=UTC)) == []
    assert generate(make_parent("{broken"), horizon=datetime(2026, 1, 1, tzinfo=UTC)) == []


def test_recent_past_due_date_keeps_its_anchor(make_parent, now) -> None:
    parent = make_parent({"type": "weekly", "interval": 1}, due_date=now - timedelta(weeks=3))

    drafts = generate(parent, horizon=now + timedelta(days=14), now=now)

    assert drafts[0].due_date == now - timedelta(weeks=2)
    assert drafts[-1].due_date == now + timedelta(weeks=2)


def test_stale_anchor_catches_up_to_now(make_parent, now) -> None:
    parent = make_parent({"type": "daily", "interval": 1}, due_date=datetime(2020, 1, 1, tzinfo=UTC))

    drafts = generate(parent, horizon=now + timedelta(days=30), now=now)

    assert len(drafts) == 30
    assert drafts[0].due_date == datetime(2025, 1, 2, tzinfo=UTC)
    assert drafts[-1].due_date == datetime(2025, 1, 31, tzinfo=UTC)


def test_stale_anchor_catch_up_follows_the_weekly_cycle(make_parent, now) -> None:
    parent = make_parent(
        {"type": "weekly", "interval": 2, "daysOfWeek": [2]},
        due_date=datetime(1980, 1, 1, tzinfo=UTC),  # a Tuesday
    )

    drafts = generate(parent, horizon=now + timedelta(days=60), now=now)

    assert drafts
    assert all(d.due_date > now for d in drafts)
    assert {d.due_date.weekday() for d in drafts} == {1}
    assert {(b.due_date - a.due_date).days for a, b in zip(drafts, drafts[1:])} == {14}


def test_generation_is_bounded(make_parent, now) -> None:
    parent = make_parent({"type": "daily", "interval": 1}, due_date=now)

    drafts = generate(parent, horizon=now + timedelta(days=5000), now=now)

    assert len(drafts) == MAX_GENERATED_INSTANCES
