"""Database configuration for the recurring task engine."""
import logging

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from recurring_tasks.config import Settings

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> Engine:
    """
    Create the SQLModel engine for the configured database.

    Every statement is bounded by settings.statement_timeout_seconds. SQLite
    gets check_same_thread disabled and foreign keys enabled; an in-memory
    SQLite URL shares a single connection across threads.
    """
    url = settings.database_url
    timeout = settings.statement_timeout_seconds
    if not settings.is_sqlite:
        logger.info("Using PostgreSQL database")
        return create_engine(
            url,
            echo=False,
            pool_pre_ping=True,
            connect_args={"options": f"-c statement_timeout={int(timeout * 1000)}"},
        )

    logger.info(f"Using SQLite database: {url}")
    # timeout bounds how long a statement waits on a locked database
    kwargs = {"connect_args": {"check_same_thread": False, "timeout": timeout}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    engine = create_engine(url, echo=False, **kwargs)

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def init_db(engine: Engine) -> None:
    """Create all tables in the database."""
    # Import so the table is registered on SQLModel.metadata
    from recurring_tasks.models.task import Task  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Tables created successfully")

