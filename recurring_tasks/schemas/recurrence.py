"""Recurrence pattern schema and tolerant parsing."""
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Union
import json

from recurring_tasks.utils.dt_utils import as_utc


class RecurrenceType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class RecurrencePattern(BaseModel):
    """
    Declarative recurrence configuration embedded in a recurring task.

    Wire names are camelCase (daysOfWeek, dayOfMonth, ...). Fields that do not
    apply to the active type are accepted and ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    type: RecurrenceType
    interval: int = Field(default=1, ge=1)
    days_of_week: Optional[List[int]] = Field(default=None, alias="daysOfWeek")  # 0=Sunday..6=Saturday
    day_of_month: Optional[int] = Field(default=None, alias="dayOfMonth", ge=1, le=31)
    month_of_year: Optional[int] = Field(default=None, alias="monthOfYear", ge=1, le=12)
    end_date: Optional[datetime] = Field(default=None, alias="endDate")
    max_occurrences: Optional[int] = Field(default=None, alias="maxOccurrences", ge=0)

    @field_validator("interval", mode="before")
    @classmethod
    def default_interval(cls, value: Any) -> Any:
        return 1 if value is None else value

    @field_validator("days_of_week")
    @classmethod
    def check_days_of_week(cls, value: Optional[List[int]]) -> Optional[List[int]]:
        if value is None:
            return None
        for day in value:
            if day < 0 or day > 6:
                raise ValueError(f"daysOfWeek entries must be 0-6, got {day}")
        return sorted(set(value))

    @field_validator("end_date")
    @classmethod
    def normalize_end_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None

    def to_wire(self) -> dict:
        """Serialize with camelCase keys, omitting unset options."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class NoPattern:
    """The task carries no recurrence configuration."""


@dataclass(frozen=True)
class ValidPattern:
    pattern: RecurrencePattern


@dataclass(frozen=True)
class InvalidPattern:
    """Stored recurrence data exists but cannot be used."""

    reason: str


PatternParseResult = Union[NoPattern, ValidPattern, InvalidPattern]


def parse_recurrence_pattern(value: Any) -> PatternParseResult:
    """
    Parse a stored recurrence pattern.

    Args:
        value: A mapping, a JSON-encoded string, a RecurrencePattern or None

    Returns:
        NoPattern when nothing is stored, ValidPattern on success,
        InvalidPattern with a reason otherwise
    """
    if value is None:
        return NoPattern()
    if isinstance(value, RecurrencePattern):
        return ValidPattern(value)

    if isinstance(value, (str, bytes)):
        if not value.strip():
            return NoPattern()
        try:
            value = json.loads(value)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return InvalidPattern(f"Malformed recurrence JSON: {str(e)}")

    if not isinstance(value, dict):
        return InvalidPattern(f"Recurrence pattern must be an object, got {type(value).__name__}")

    try:
        return ValidPattern(RecurrencePattern.model_validate(value))
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'pattern'}: {err['msg']}"
            for err in e.errors()
        )
        return InvalidPattern(f"Invalid recurrence pattern: {problems}")
