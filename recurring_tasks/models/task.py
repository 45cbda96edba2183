"""Task model for SQLModel."""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, JSON, String
from sqlalchemy.types import TypeDecorator
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional
import uuid

from recurring_tasks.utils.dt_utils import as_utc, dt_now_utc


class TaskStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    DRAFT = "draft"
    ARCHIVED = "archived"
    PENDING = "pending"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware timestamp column.

    Values are bound as aware UTC and always come back aware UTC, including on
    SQLite, which stores them without an offset.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return as_utc(value)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return as_utc(value)


def _new_id() -> str:
    return str(uuid.uuid4())


class Task(SQLModel, table=True):
    """
    Task entity, recurring or not.

    A recurring parent has is_recurring=True and a recurrence_pattern.
    Generated instances carry parent_task_id and are never recurring themselves.
    """

    __tablename__ = "tasks"

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=36)
    title: str = Field(max_length=200, min_length=1)
    description: Optional[str] = Field(default=None)
    due_date: Optional[datetime] = Field(default=None, sa_column=Column(UTCDateTime, nullable=True, index=True))
    assigned_to: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    project_id: Optional[str] = Field(default=None, max_length=36)
    priority: str = Field(default=TaskPriority.MEDIUM.value, max_length=20)  # low, medium, high
    tags: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    status: str = Field(default=TaskStatus.ACTIVE.value, max_length=20, index=True)

    is_recurring: bool = Field(default=False, index=True)
    # Raw stored value (object or encoded string); parsed on read so corrupt data can be reported
    recurrence_pattern: Optional[Any] = Field(default=None, sa_column=Column(JSON))
    # No ON DELETE CASCADE: instances outlive their parent
    parent_task_id: Optional[str] = Field(
        default=None, sa_column=Column(String(36), nullable=True, index=True)
    )

    completed_at: Optional[datetime] = Field(default=None, sa_column=Column(UTCDateTime, nullable=True))
    created_at: datetime = Field(default_factory=dt_now_utc, sa_column=Column(UTCDateTime, nullable=False))
    updated_at: datetime = Field(default_factory=dt_now_utc, sa_column=Column(UTCDateTime, nullable=False))
