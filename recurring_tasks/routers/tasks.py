"""User-facing task endpoints that drive the recurring task engine."""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
import logging

from recurring_tasks.middleware.auth import (
    CurrentUser,
    extract_bearer_token,
    get_current_user,
    require_admin,
)
from recurring_tasks.routers.recurring_tasks import get_recurring_service
from recurring_tasks.schemas.recurring import ProcessRecurringResponse
from recurring_tasks.services.recurring_task_service import TASK_NOT_FOUND, RecurringTaskService
from recurring_tasks.services.remote_client import RecurringTasksClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Tasks"])  # No prefix since main.py adds /api prefix


def get_tasks_client(
    request: Request,
    service: RecurringTaskService = Depends(get_recurring_service),
) -> RecurringTasksClient:
    """Dependency for a client that forwards the caller's session token."""
    token = extract_bearer_token(request)
    return RecurringTasksClient(
        request.app.state.settings,
        service,
        session_token=lambda: token,
        transport=getattr(request.app.state, "remote_transport", None),
    )


@router.api_route("/tasks/process-recurring", methods=["GET", "POST"], response_model=ProcessRecurringResponse)
async def process_recurring(
    current_user: CurrentUser = Depends(require_admin),
    client: RecurringTasksClient = Depends(get_tasks_client),
):
    """Generate upcoming instances for all recurring tasks. Admin only; GET is for cron."""
    try:
        result = await run_in_threadpool(client.process)
    except Exception:
        logger.exception("Error processing recurring tasks")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process recurring tasks",
        )

    return ProcessRecurringResponse(
        created=result.created,
        errors=result.errors,
        message=f"Created {result.created} recurring task instances",
    )


@router.post("/tasks/{task_id}/complete")
async def complete_task(
    task_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    client: RecurringTasksClient = Depends(get_tasks_client),
):
    """Mark a task complete and schedule the next instance of its recurring parent."""
    result = await run_in_threadpool(client.complete_instance, task_id)
    if not result.success:
        if result.not_found or result.error == TASK_NOT_FOUND:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=TASK_NOT_FOUND)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.error)
    return result.to_wire()
