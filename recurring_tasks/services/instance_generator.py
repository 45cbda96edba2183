"""
Instance Generator

Materializes the upcoming occurrences of a recurring parent task as drafts
ready to be inserted into the task store.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from recurring_tasks.models.task import Task, TaskPriority, TaskStatus
from recurring_tasks.schemas.recurrence import (
    RecurrencePattern,
    ValidPattern,
    parse_recurrence_pattern,
)
from recurring_tasks.services.recurrence_calculator import next_date
from recurring_tasks.utils.dt_utils import as_utc, dt_now_utc

logger = logging.getLogger(__name__)

BATCH_HORIZON_DAYS = 30
COMPLETION_HORIZON_DAYS = 60
MAX_GENERATED_INSTANCES = 1000


@dataclass
class TaskInstanceDraft:
    """A generated occurrence that has not been persisted yet."""

    title: str
    due_date: datetime
    parent_task_id: str
    description: Optional[str] = None
    assigned_to: Optional[List[str]] = None
    project_id: Optional[str] = None
    priority: str = TaskPriority.MEDIUM.value
    tags: Optional[List[str]] = None
    is_recurring: bool = False
    status: str = TaskStatus.ACTIVE.value
    created_at: datetime = field(default_factory=dt_now_utc)

    def to_task(self) -> Task:
        return Task(
            title=self.title,
            description=self.description,
            due_date=self.due_date,
            assigned_to=list(self.assigned_to) if self.assigned_to is not None else None,
            project_id=self.project_id,
            priority=self.priority,
            tags=list(self.tags) if self.tags is not None else None,
            status=self.status,
            is_recurring=self.is_recurring,
            recurrence_pattern=None,
            parent_task_id=self.parent_task_id,
            created_at=self.created_at,
            updated_at=self.created_at,
        )


def horizon_from(now: datetime, days: int) -> datetime:
    return now + timedelta(days=days)


def _expand(
    parent: Task,
    pattern: RecurrencePattern,
    anchor: datetime,
    limit: datetime,
    cap: int,
) -> List[TaskInstanceDraft]:
    drafts: List[TaskInstanceDraft] = []
    while len(drafts) < cap:
        occurrence = next_date(anchor, pattern)
        if occurrence is None or as_utc(occurrence) > limit:
            break

        drafts.append(
            TaskInstanceDraft(
                title=parent.title,
                description=parent.description,
                due_date=as_utc(occurrence),
                parent_task_id=parent.id,
                assigned_to=parent.assigned_to,
                project_id=parent.project_id,
                priority=parent.priority or TaskPriority.MEDIUM.value,
                tags=parent.tags,
            )
        )
        # Each occurrence is computed from the previous one, not the original anchor
        anchor = occurrence
    return drafts


def _catch_up(anchor: datetime, pattern: RecurrencePattern, now: datetime) -> datetime:
    """Return the last occurrence at or before `now`, starting from `anchor`."""
    while True:
        occurrence = next_date(anchor, pattern)
        if occurrence is None or as_utc(occurrence) > now:
            return anchor
        anchor = occurrence


def generate(
    parent: Task,
    horizon: datetime,
    now: Optional[datetime] = None,
    pattern: Optional[RecurrencePattern] = None,
) -> List[TaskInstanceDraft]:
    """
    Generate draft instances for a recurring parent up to a horizon.

    When a stale due date would use up the whole safety ceiling on past
    occurrences, generation restarts from the last occurrence at or before
    `now`, so the drafts always reach the upcoming window.

    Args:
        parent: The recurring parent task
        horizon: Last instant an occurrence may fall on
        now: Current time; also the anchor when the parent has no due date
        pattern: Already-parsed pattern; parsed from the parent when omitted

    Returns:
        Drafts in chronological order with aware UTC due dates; empty when the
        parent has no usable pattern
    """
    if pattern is None:
        parsed = parse_recurrence_pattern(parent.recurrence_pattern)
        if not isinstance(parsed, ValidPattern):
            return []
        pattern = parsed.pattern

    now = as_utc(now) if now is not None else dt_now_utc()
    anchor = parent.due_date or now
    limit = as_utc(horizon)
    cap = pattern.max_occurrences or MAX_GENERATED_INSTANCES
    cap = min(cap, MAX_GENERATED_INSTANCES)

    drafts = _expand(parent, pattern, anchor, limit, cap)

    if len(drafts) == MAX_GENERATED_INSTANCES and drafts[-1].due_date <= now:
        logger.warning(
            f"Due date {parent.due_date} of task {parent.id} is stale; "
            f"generating from the last occurrence before {now.isoformat()}"
        )
        drafts = _expand(parent, pattern, _catch_up(anchor, pattern, now), limit, cap)

    return drafts
