"""
One-shot batch runner for the recurring task engine.

Intended to be invoked by an external scheduler (cron, a platform job). Runs a
single process() pass, remotely when configured and locally otherwise.
"""

import logging
import sys

from recurring_tasks.config import load_settings
from recurring_tasks.db.config import build_engine, init_db
from recurring_tasks.services.recurring_task_service import RecurringTaskService
from recurring_tasks.services.remote_client import RecurringTasksClient
from recurring_tasks.services.task_store import SQLModelTaskStore
from recurring_tasks.utils.logger import configure_logging

logger = logging.getLogger(__name__)


def main() -> int:
    """Run one batch and return the process exit code."""
    settings = load_settings()
    configure_logging(settings.log_level, structured=settings.environment == "production")
    logger.info("Starting recurring task batch...")

    engine = build_engine(settings)
    init_db(engine)
    service = RecurringTaskService(
        SQLModelTaskStore(engine),
        completion_deadline_seconds=settings.completion_deadline_seconds,
    )
    client = RecurringTasksClient(settings, service)

    result = client.process()
    logger.info(f"Created {result.created} recurring task instances")
    for error in result.errors:
        logger.warning(error)

    # Per-task errors still exit 0; a failed fetch does not
    fetch_failed = any(error.startswith("Failed to fetch recurring tasks") for error in result.errors)
    return 1 if fetch_failed else 0


if __name__ == "__main__":
    sys.exit(main())
