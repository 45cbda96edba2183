"""
Recurring Task Service

Batch generation of upcoming instances for every active recurring task, and
the completion cascade that schedules the next instance when one is done.
"""

import logging
import time
from datetime import datetime
from typing import Callable, Optional

from recurring_tasks.errors import RecurringTaskError, TaskNotFoundError, TaskStoreError
from recurring_tasks.models.task import Task
from recurring_tasks.schemas.recurrence import InvalidPattern, NoPattern, parse_recurrence_pattern
from recurring_tasks.schemas.recurring import CompletionResult, ProcessResult
from recurring_tasks.services.duplication_guard import DuplicationGuard
from recurring_tasks.services.instance_generator import (
    BATCH_HORIZON_DAYS,
    COMPLETION_HORIZON_DAYS,
    generate,
    horizon_from,
)
from recurring_tasks.services.task_store import TaskStore
from recurring_tasks.utils import metrics
from recurring_tasks.utils.dt_utils import dt_now_utc
from recurring_tasks.utils.metrics import MetricsCollector, metrics_collector

logger = logging.getLogger(__name__)

TASK_NOT_FOUND = "Task not found"


class RecurringTaskService:
    """Service to handle recurring task generation and completion."""

    def __init__(
        self,
        store: TaskStore,
        clock: Callable[[], datetime] = dt_now_utc,
        completion_deadline_seconds: float = 5.0,
        collector: Optional[MetricsCollector] = None,
    ):
        """
        Initialize the recurring task service.

        Args:
            store: Task store used for all reads and writes
            clock: Source of the current time (aware UTC)
            completion_deadline_seconds: Budget for scheduling the next instance,
                counted from the moment the status update has been written
            collector: Metrics sink; defaults to the process-wide collector
        """
        self.store = store
        self.guard = DuplicationGuard(store)
        self.clock = clock
        self.completion_deadline_seconds = completion_deadline_seconds
        self.metrics = collector or metrics_collector

    def process(self) -> ProcessResult:
        """
        Generate upcoming instances for every active recurring task.

        Failures are collected per parent and never abort the run.

        Returns:
            ProcessResult with the number of created instances and error messages
        """
        result = ProcessResult()
        now = self.clock()

        with self.metrics.timed("recurring_process_seconds"):
            try:
                parents = self.store.list_active_recurring()
            except TaskStoreError as e:
                result.errors.append(f"Failed to fetch recurring tasks: {str(e)}")
                self.metrics.increment(metrics.PROCESS_ERRORS)
                return result

            for parent in parents:
                self._process_parent(parent, now, result)

        logger.info(
            f"Recurring task run finished: {len(parents)} parents, "
            f"{result.created} instances created, {len(result.errors)} errors"
        )
        return result

    def _process_parent(self, parent: Task, now: datetime, result: ProcessResult) -> None:
        self.metrics.increment(metrics.PARENTS_PROCESSED)
        try:
            parsed = parse_recurrence_pattern(parent.recurrence_pattern)
            if isinstance(parsed, NoPattern):
                self.metrics.increment(metrics.PARENTS_SKIPPED)
                return
            if isinstance(parsed, InvalidPattern):
                logger.warning(f"Skipping task {parent.id}: {parsed.reason}")
                result.errors.append(f"Invalid recurrence pattern for {parent.title}: {parsed.reason}")
                self.metrics.increment(metrics.PROCESS_ERRORS)
                return

            try:
                if self.guard.has_future_instance(parent.id, now=now):
                    self.metrics.increment(metrics.PARENTS_SKIPPED)
                    return
            except TaskStoreError as e:
                result.errors.append(f"Failed to check existing tasks for {parent.title}: {str(e)}")
                self.metrics.increment(metrics.PROCESS_ERRORS)
                return

            drafts = generate(parent, horizon_from(now, BATCH_HORIZON_DAYS), now=now, pattern=parsed.pattern)
            if not drafts:
                return

            try:
                self.store.insert_instances(drafts)
            except TaskStoreError as e:
                result.errors.append(f"Failed to create tasks for {parent.title}: {str(e)}")
                self.metrics.increment(metrics.PROCESS_ERRORS)
                return

            result.created += len(drafts)
            self.metrics.increment(metrics.INSTANCES_CREATED, len(drafts))
            logger.info(f"Created {len(drafts)} instances of recurring task {parent.id}")

        except Exception as e:
            logger.exception(f"Error processing recurring task {parent.id}")
            result.errors.append(f"Error processing task {parent.title}: {str(e)}")
            self.metrics.increment(metrics.PROCESS_ERRORS)

    def complete_instance(self, task_id: str) -> CompletionResult:
        """
        Mark a task complete and, for generated instances, schedule the next one.

        Only the status update can fail the call. Problems creating the next
        instance are reported in generation_error while success stays True.

        Args:
            task_id: Id of the task being completed

        Returns:
            CompletionResult
        """
        try:
            task = self.store.get_task(task_id)
        except TaskStoreError as e:
            logger.warning(f"Failed to load task {task_id}: {str(e)}")
            task = None

        if task is None:
            return CompletionResult(success=False, error=TASK_NOT_FOUND, not_found=True)

        now = self.clock()
        try:
            self.store.mark_completed(task_id, now)
        except TaskNotFoundError:
            return CompletionResult(success=False, error=TASK_NOT_FOUND, not_found=True)
        except TaskStoreError as e:
            logger.error(f"Failed to complete task {task_id}: {str(e)}")
            return CompletionResult(success=False, error=str(e))

        self.metrics.increment(metrics.COMPLETIONS)
        started = time.monotonic()

        if not task.parent_task_id:
            return CompletionResult(success=True)

        try:
            next_task_id = self._schedule_next(task, now, started)
        except Exception as e:
            logger.warning(f"Task {task_id} completed but next instance was not created: {str(e)}")
            self.metrics.increment(metrics.CASCADE_FAILURES)
            return CompletionResult(success=True, generation_error=str(e))

        return CompletionResult(success=True, next_task_id=next_task_id)

    def _check_deadline(self, started: float) -> None:
        if time.monotonic() - started > self.completion_deadline_seconds:
            raise RecurringTaskError("Next instance generation exceeded the completion deadline")

    def _schedule_next(self, task: Task, now: datetime, started: float) -> Optional[str]:
        parent = self.store.get_task(task.parent_task_id)
        self._check_deadline(started)
        if parent is None or not parent.is_recurring:
            return None

        parsed = parse_recurrence_pattern(parent.recurrence_pattern)
        if isinstance(parsed, NoPattern):
            return None
        if isinstance(parsed, InvalidPattern):
            raise RecurringTaskError(parsed.reason)

        drafts = generate(parent, horizon_from(now, COMPLETION_HORIZON_DAYS), now=now, pattern=parsed.pattern)
        if not drafts:
            return None

        self._check_deadline(started)
        # Store calls are bounded by the engine statement timeout
        created = self.store.insert_instances(drafts[:1])
        self.metrics.increment(metrics.INSTANCES_CREATED)
        logger.info(f"Scheduled next instance {created[0].id} of recurring task {parent.id}")
        return created[0].id
