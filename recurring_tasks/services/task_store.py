"""
Task Store

Access to the tasks table needed by the recurring task engine: reading
recurring parents, checking for upcoming instances, inserting instances and
completing tasks.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from recurring_tasks.errors import TaskNotFoundError, TaskStoreError
from recurring_tasks.models.task import Task, TaskStatus
from recurring_tasks.services.instance_generator import TaskInstanceDraft

logger = logging.getLogger(__name__)


class TaskStore(ABC):
    """Operations the scheduler and completion cascade need from storage."""

    @abstractmethod
    def list_active_recurring(self) -> List[Task]:
        """Return tasks with is_recurring=True and status=active."""

    @abstractmethod
    def get_task(self, task_id: str) -> Optional[Task]:
        """Return a task by id, or None."""

    @abstractmethod
    def has_instance_due_after(self, parent_id: str, after: datetime) -> bool:
        """Return True if an instance of parent_id is due at or after `after`."""

    @abstractmethod
    def insert_instances(self, drafts: Sequence[TaskInstanceDraft]) -> List[Task]:
        """Insert drafts in a single transaction and return the new rows."""

    @abstractmethod
    def mark_completed(self, task_id: str, completed_at: datetime) -> Task:
        """Set status=completed and stamp completed_at."""


class SQLModelTaskStore(TaskStore):
    """TaskStore backed by a SQLModel engine. Each call uses its own session."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def _session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    def list_active_recurring(self) -> List[Task]:
        try:
            with self._session() as session:
                statement = select(Task).where(
                    Task.is_recurring == True,  # noqa: E712
                    Task.status == TaskStatus.ACTIVE.value,
                )
                return list(session.exec(statement).all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to list recurring tasks: {str(e)}")
            raise TaskStoreError(str(e)) from e

    def get_task(self, task_id: str) -> Optional[Task]:
        try:
            with self._session() as session:
                return session.get(Task, task_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load task {task_id}: {str(e)}")
            raise TaskStoreError(str(e)) from e

    def has_instance_due_after(self, parent_id: str, after: datetime) -> bool:
        try:
            with self._session() as session:
                statement = (
                    select(Task.id)
                    .where(Task.parent_task_id == parent_id, Task.due_date >= after)
                    .limit(1)
                )
                return session.exec(statement).first() is not None
        except SQLAlchemyError as e:
            logger.error(f"Failed to check instances of task {parent_id}: {str(e)}")
            raise TaskStoreError(str(e)) from e

    def insert_instances(self, drafts: Sequence[TaskInstanceDraft]) -> List[Task]:
        tasks = [draft.to_task() for draft in drafts]
        if not tasks:
            return []
        try:
            with self._session() as session:
                session.add_all(tasks)
                session.commit()
                for task in tasks:
                    session.refresh(task)
                return tasks
        except SQLAlchemyError as e:
            logger.error(f"Failed to insert {len(tasks)} task instances: {str(e)}")
            raise TaskStoreError(str(e)) from e

    def mark_completed(self, task_id: str, completed_at: datetime) -> Task:
        try:
            with self._session() as session:
                task = session.get(Task, task_id)
                if task is None:
                    raise TaskNotFoundError(task_id)
                task.status = TaskStatus.COMPLETED.value
                task.completed_at = completed_at
                task.updated_at = completed_at
                session.add(task)
                session.commit()
                session.refresh(task)
                return task
        except SQLAlchemyError as e:
            logger.error(f"Failed to complete task {task_id}: {str(e)}")
            raise TaskStoreError(str(e)) from e
