"""Exception types for the recurring task engine."""


class RecurringTaskError(Exception):
    """Base error for the recurring task engine."""


class ConfigurationError(RecurringTaskError):
    """Raised when a required setting (function URL, secret) is missing."""


class TaskStoreError(RecurringTaskError):
    """Raised when a read or write against the task store fails."""


class TaskNotFoundError(RecurringTaskError):
    """Raised when a task id does not resolve to a row."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__("Task not found")
