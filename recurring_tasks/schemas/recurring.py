"""Request and response schemas for the recurring-tasks endpoint."""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Generic, List, Literal, Optional, TypeVar

T = TypeVar("T")


class RecurringTaskRequest(BaseModel):
    """Body of POST /recurring-tasks."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    action: Optional[str] = None
    task_id: Optional[str] = Field(default=None, alias="taskId")


class ProcessResult(BaseModel):
    """Outcome of a batch run. A non-empty errors list is partial success."""

    created: int = 0
    errors: List[str] = Field(default_factory=list)


class CompletionResult(BaseModel):
    """Outcome of completing a task instance."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    next_task_id: Optional[str] = Field(default=None, alias="nextTaskId")
    error: Optional[str] = None
    # Set when the completion committed but the next instance could not be created
    generation_error: Optional[str] = Field(default=None, alias="generationError")
    not_found: bool = Field(default=False, exclude=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class EdgeResponse(BaseModel, Generic[T]):
    """Envelope used by the remote function: {ok, data?, error?}."""

    ok: bool
    data: Optional[T] = None
    error: Optional[str] = None


class ProcessRecurringResponse(BaseModel):
    """Response of the admin-triggered batch endpoint."""

    success: Literal[True] = True
    created: int
    errors: List[str]
    message: str


def envelope(ok: bool, data: Any = None, error: Optional[str] = None) -> dict:
    """Build a JSON-ready {ok, data, error} body, dropping empty members."""
    body: dict = {"ok": ok}
    if data is not None:
        body["data"] = data
    if error is not None:
        body["error"] = error
    return body
