"""Routers for the recurring task engine."""

from .recurring_tasks import router as recurring_tasks_router
from .tasks import router as tasks_router

__all__ = ["recurring_tasks_router", "tasks_router"]
