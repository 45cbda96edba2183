"""Service endpoint for the recurring task engine: POST /recurring-tasks."""
from fastapi import APIRouter, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError
import logging

from recurring_tasks.middleware.auth import CurrentUser, authorize_service_request
from recurring_tasks.schemas.recurring import RecurringTaskRequest, envelope
from recurring_tasks.services.recurring_task_service import RecurringTaskService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Recurring Tasks"])


def get_recurring_service(request: Request) -> RecurringTaskService:
    """Dependency for getting a RecurringTaskService bound to the app's store."""
    state = request.app.state
    return RecurringTaskService(
        state.store,
        completion_deadline_seconds=state.settings.completion_deadline_seconds,
    )


def _error(message: str, status_code: int, data: dict = None) -> JSONResponse:
    return JSONResponse(envelope(False, data=data, error=message), status_code=status_code)


@router.post("/recurring-tasks")
async def recurring_tasks(
    request: Request,
    current_user: CurrentUser = Depends(authorize_service_request),
    service: RecurringTaskService = Depends(get_recurring_service),
):
    """
    Run a recurring task action.

    Body is {"action": "process"} or {"action": "complete", "taskId": "..."}.
    """
    try:
        payload = await request.json()
    except ValueError:
        logger.error("Invalid request payload")
        return _error("Invalid JSON payload", status.HTTP_400_BAD_REQUEST)

    if not isinstance(payload, dict):
        return _error("Invalid JSON payload", status.HTTP_400_BAD_REQUEST)

    try:
        body = RecurringTaskRequest.model_validate(payload)
    except ValidationError:
        return _error("Invalid action", status.HTTP_400_BAD_REQUEST)

    logger.info(f"recurring-tasks action={body.action} caller={current_user.user_id} via={current_user.source}")

    if body.action == "process":
        result = await run_in_threadpool(service.process)
        return envelope(True, data=result.model_dump())

    if body.action == "complete":
        if not body.task_id:
            return _error("taskId is required", status.HTTP_400_BAD_REQUEST)

        result = await run_in_threadpool(service.complete_instance, body.task_id)
        if result.success:
            return envelope(True, data=result.to_wire())

        status_code = status.HTTP_404_NOT_FOUND if result.not_found else status.HTTP_500_INTERNAL_SERVER_ERROR
        return _error(result.error, status_code, data=result.to_wire())

    return _error("Invalid action", status.HTTP_400_BAD_REQUEST)
