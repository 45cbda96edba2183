"""
Remote Recurring Tasks Client

Calls the deployed recurring-tasks function and falls back to the in-process
RecurringTaskService when the remote path is unconfigured or unreachable.
Both paths run the same library code.
"""

import logging
from typing import Any, Callable, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from recurring_tasks.config import Settings
from recurring_tasks.errors import ConfigurationError
from recurring_tasks.middleware.auth import SERVICE_SECRET_HEADER, create_automation_token
from recurring_tasks.schemas.recurring import CompletionResult, EdgeResponse, ProcessResult
from recurring_tasks.services.recurring_task_service import RecurringTaskService

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=BaseModel)


class RecurringTasksClient:
    """Runs recurring task actions remotely, or locally when that is not possible."""

    def __init__(
        self,
        settings: Settings,
        local_service: RecurringTaskService,
        session_token: Optional[Callable[[], Optional[str]]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Application settings (function URL, secrets, timeout)
            local_service: Service used for the local fallback
            session_token: Returns the caller's session token, if any
            transport: Optional httpx transport (used by tests)
        """
        self.settings = settings
        self.local_service = local_service
        self.session_token = session_token
        self.transport = transport
        self._logged_config_warning = False

    def _headers(self) -> Dict[str, str]:
        if not self.settings.remote_configured:
            raise ConfigurationError("Recurring tasks function URL or service secret is not configured")

        headers = {
            "content-type": "application/json",
            SERVICE_SECRET_HEADER: self.settings.service_secret,
        }

        token = self.session_token() if self.session_token else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
            if self.settings.anon_key:
                headers["apikey"] = self.settings.anon_key
        else:
            headers["Authorization"] = f"Bearer {create_automation_token(self.settings)}"
            api_key = self.settings.anon_key or self.settings.service_role_key
            if api_key:
                headers["apikey"] = api_key
        return headers

    def _call(self, action: str, result_type: Type[ResultT], payload: Optional[Dict[str, Any]] = None) -> Optional[ResultT]:
        """
        POST an action to the remote function. No retries.

        Returns:
            The parsed `data` member, or None when the caller should fall back
        """
        try:
            headers = self._headers()
        except ConfigurationError as e:
            if not self._logged_config_warning:
                logger.warning(
                    f"Remote recurring tasks disabled: {str(e)} "
                    f"(function_url={bool(self.settings.function_url)}, "
                    f"service_secret={bool(self.settings.service_secret)})"
                )
                self._logged_config_warning = True
            return None

        body = {"action": action, **(payload or {})}
        try:
            with httpx.Client(transport=self.transport, timeout=self.settings.remote_timeout_seconds) as client:
                response = client.post(self.settings.function_url, json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Remote recurring tasks call failed: {str(e)}")
            return None

        try:
            parsed = EdgeResponse[result_type].model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"Failed to parse remote recurring tasks response: {str(e)}")
            return None

        if not response.is_success or not parsed.ok or parsed.data is None:
            logger.warning(
                f"Remote recurring tasks error: action={action} status={response.status_code} "
                f"error={parsed.error}"
            )
            return None

        return parsed.data

    def process(self) -> ProcessResult:
        """Run the batch remotely, falling back to the local service."""
        result = self._call("process", ProcessResult)
        if result is not None:
            return result
        logger.info("Running recurring task batch locally")
        return self.local_service.process()

    def complete_instance(self, task_id: str) -> CompletionResult:
        """Complete a task remotely, falling back to the local service."""
        result = self._call("complete", CompletionResult, {"taskId": task_id})
        if result is not None:
            return result
        logger.info(f"Completing task {task_id} locally")
        return self.local_service.complete_instance(task_id)
