"""Configuration for the recurring task engine.

Settings are read from the environment once at process start and passed to
constructors explicitly.
"""
import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

DEFAULT_DATABASE_URL = "sqlite:///./recurring_tasks.db"
FUNCTION_NAME = "recurring-tasks"

_SUPABASE_HOST = re.compile(r"^([^.]+)\.supabase\.co$")


def derive_function_url(supabase_url: Optional[str]) -> Optional[str]:
    """
    Derive the remote recurring-tasks function URL from a project URL.

    Args:
        supabase_url: Project URL such as https://abcd.supabase.co

    Returns:
        https://abcd.functions.supabase.co/recurring-tasks, or None when the
        URL is missing or is not a hosted project URL
    """
    if not supabase_url:
        return None
    try:
        host = urlparse(supabase_url).hostname or ""
    except ValueError:
        return None
    match = _SUPABASE_HOST.match(host)
    if not match:
        return None
    return f"https://{match.group(1)}.functions.supabase.co/{FUNCTION_NAME}"


def _first(env: Mapping[str, str], *keys: str) -> Optional[str]:
    for key in keys:
        value = (env.get(key) or "").strip()
        if value:
            return value
    return None


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    environment: str = "development"
    log_level: str = "INFO"
    supabase_url: Optional[str] = None
    service_role_key: Optional[str] = None
    anon_key: Optional[str] = None
    service_secret: Optional[str] = None
    jwt_secret: Optional[str] = None
    jwt_key_id: Optional[str] = None
    function_url: Optional[str] = None
    completion_deadline_seconds: float = 5.0
    remote_timeout_seconds: float = 10.0
    statement_timeout_seconds: float = 5.0

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def auth_issuer(self) -> Optional[str]:
        if not self.supabase_url:
            return None
        return f"{self.supabase_url.rstrip('/')}/auth/v1"

    @property
    def remote_configured(self) -> bool:
        return bool(self.function_url and self.service_secret)


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment.

    Args:
        env: Mapping to read from; defaults to os.environ after loading .env

    Returns:
        Settings instance
    """
    if env is None:
        load_dotenv()
        env = os.environ

    supabase_url = _first(env, "SUPABASE_URL", "EDGE_SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL")
    service_role_key = _first(env, "SUPABASE_SERVICE_ROLE_KEY", "EDGE_SUPABASE_SERVICE_ROLE_KEY")
    anon_key = _first(env, "SUPABASE_ANON_KEY", "EDGE_SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY")

    completion_deadline = float(_first(env, "COMPLETION_DEADLINE_SECONDS") or 5.0)

    return Settings(
        database_url=_first(env, "DATABASE_URL") or DEFAULT_DATABASE_URL,
        environment=_first(env, "ENVIRONMENT") or "development",
        log_level=_first(env, "LOG_LEVEL") or "INFO",
        supabase_url=supabase_url,
        service_role_key=service_role_key,
        anon_key=anon_key,
        service_secret=_first(env, "EDGE_SERVICE_SECRET"),
        jwt_secret=_first(env, "SUPABASE_JWT_SECRET"),
        jwt_key_id=_first(env, "SUPABASE_JWT_KEY_ID"),
        function_url=_first(env, "RECURRING_FUNCTION_URL") or derive_function_url(supabase_url),
        completion_deadline_seconds=completion_deadline,
        remote_timeout_seconds=float(_first(env, "REMOTE_TIMEOUT_SECONDS") or 10.0),
        # Defaults to the completion budget
        statement_timeout_seconds=float(_first(env, "DB_STATEMENT_TIMEOUT_SECONDS") or completion_deadline),
    )
