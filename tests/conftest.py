"""Shared fixtures for recurring task engine tests."""

import time
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import pytest

from recurring_tasks.errors import TaskNotFoundError, TaskStoreError
from recurring_tasks.models.task import Task
from recurring_tasks.services.instance_generator import TaskInstanceDraft
from recurring_tasks.services.task_store import TaskStore
from recurring_tasks.utils.dt_utils import as_utc
from recurring_tasks.utils.metrics import MetricsCollector

NOW = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)


class FakeTaskStore(TaskStore):
    """In-memory TaskStore with switchable failures."""

    def __init__(self) -> None:
        self.tasks: Dict[str, Task] = {}
        self.fail_list = False
        self.fail_check_for: set = set()
        self.fail_insert_for: set = set()
        self.fail_complete = False
        self.insert_calls = 0
        self.get_delay = 0.0
        self.complete_delay = 0.0

    def add(self, task: Task) -> Task:
        self.tasks[task.id] = task
        return task

    def instances_of(self, parent_id: str) -> List[Task]:
        return sorted(
            (t for t in self.tasks.values() if t.parent_task_id == parent_id),
            key=lambda t: as_utc(t.due_date),
        )

    def list_active_recurring(self) -> List[Task]:
        if self.fail_list:
            raise TaskStoreError("connection refused")
        return [t for t in self.tasks.values() if t.is_recurring and t.status == "active"]

    def get_task(self, task_id: str) -> Optional[Task]:
        time.sleep(self.get_delay)
        return self.tasks.get(task_id)

    def has_instance_due_after(self, parent_id: str, after: datetime) -> bool:
        if parent_id in self.fail_check_for:
            raise TaskStoreError("timeout")
        return any(t.due_date and as_utc(t.due_date) >= after for t in self.instances_of(parent_id))

    def insert_instances(self, drafts: Sequence[TaskInstanceDraft]) -> List[Task]:
        self.insert_calls += 1
        if any(d.parent_task_id in self.fail_insert_for for d in drafts):
            raise TaskStoreError("insert rejected")
        return [self.add(d.to_task()) for d in drafts]

    def mark_completed(self, task_id: str, completed_at: datetime) -> Task:
        time.sleep(self.complete_delay)
        if self.fail_complete:
            raise TaskStoreError("update rejected")
        task = self.tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        task.status = "completed"
        task.completed_at = completed_at
        return task


@pytest.fixture
def store() -> FakeTaskStore:
    return FakeTaskStore()


@pytest.fixture
def collector() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def make_parent():
    """Factory for recurring parent tasks."""

    def _make(pattern, title: str = "Water plants", due_date: Optional[datetime] = NOW, **kwargs) -> Task:
        return Task(
            title=title,
            description=kwargs.pop("description", "Every pot on the balcony"),
            due_date=due_date,
            assigned_to=kwargs.pop("assigned_to", ["alex"]),
            project_id=kwargs.pop("project_id", "garden"),
            priority=kwargs.pop("priority", "high"),
            tags=kwargs.pop("tags", ["home"]),
            is_recurring=kwargs.pop("is_recurring", True),
            recurrence_pattern=pattern,
            status=kwargs.pop("status", "active"),
            **kwargs,
        )

    return _make


@pytest.fixture
def now() -> datetime:
    return NOW
