"""Duplication guard: keeps batch generation idempotent."""

from datetime import datetime, timedelta
from typing import Optional

from recurring_tasks.services.task_store import TaskStore
from recurring_tasks.utils.dt_utils import dt_now_utc


class DuplicationGuard:
    """Skip parents that already have an upcoming instance."""

    def __init__(self, store: TaskStore):
        self.store = store

    @staticmethod
    def cutoff(now: datetime) -> datetime:
        """Start of the "upcoming" window: one day after now."""
        return now + timedelta(days=1)

    def has_future_instance(self, parent_id: str, after: Optional[datetime] = None, now: Optional[datetime] = None) -> bool:
        """
        Check whether any instance of the parent is due at or after a cutoff.

        Args:
            parent_id: Id of the recurring parent
            after: Explicit cutoff; defaults to tomorrow relative to `now`
            now: Current time used to derive the default cutoff

        Raises:
            TaskStoreError: If the lookup fails
        """
        if after is None:
            after = self.cutoff(now or dt_now_utc())
        return self.store.has_instance_due_after(parent_id, after)
