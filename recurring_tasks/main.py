"""Main FastAPI application for the recurring task engine."""
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from typing import Optional
import logging

from recurring_tasks import __version__
from recurring_tasks.config import Settings, load_settings
from recurring_tasks.db.config import build_engine, init_db
from recurring_tasks.middleware.auth import RequestAuthenticator, SessionVerifier
from recurring_tasks.routers import recurring_tasks_router, tasks_router
from recurring_tasks.schemas.recurring import envelope
from recurring_tasks.services.task_store import SQLModelTaskStore, TaskStore
from recurring_tasks.utils.logger import configure_logging
from recurring_tasks.utils.metrics import metrics_collector

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[TaskStore] = None,
    session_verifier: Optional[SessionVerifier] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings; loaded from the environment when omitted
        store: Task store; a SQLModel store on settings.database_url when omitted
        session_verifier: Live-session checker; defaults to the auth API lookup
    """
    settings = settings or load_settings()

    app = FastAPI(
        title="Recurring Task Engine API",
        description="Generates and cascades recurring household task instances",
        version=__version__,
    )

    if store is None:
        engine = build_engine(settings)
        try:
            init_db(engine)
        except Exception as e:
            logger.warning(f"Database initialization failed: {str(e)}")
        store = SQLModelTaskStore(engine)

    app.state.settings = settings
    app.state.store = store
    app.state.authenticator = RequestAuthenticator(settings, session_verifier)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            envelope(False, error=str(exc.detail)),
            status_code=exc.status_code,
            headers=exc.headers,
        )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    @app.get("/metrics")
    async def metrics():
        """Counters for batch runs and completions."""
        return metrics_collector.snapshot()

    app.include_router(recurring_tasks_router)
    app.include_router(tasks_router, prefix="/api")  # /api/tasks/...

    return app


def build_default_app() -> FastAPI:
    settings = load_settings()
    configure_logging(settings.log_level, structured=settings.environment == "production")
    return create_app(settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "recurring_tasks.main:build_default_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
    )
