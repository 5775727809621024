from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _flag(name: str, default: bool = False) -> bool:
    value = _env(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    base_url: str
    base_path: str
    secret: str
    encryption_enabled: bool
    session_strategy: str
    session_max_age_seconds: int
    new_user_page: str | None
    database_url: str
    google_client_id: str
    google_client_secret: str
    email_provider_enabled: bool
    credentials_provider_enabled: bool
    log_level: str


def get_settings() -> Settings:
    strategy = (_env("AUTH_SESSION_STRATEGY", "jwt") or "jwt").strip().lower()
    if strategy not in {"jwt", "database"}:
        raise ValueError(f"AUTH_SESSION_STRATEGY must be 'jwt' or 'database', got {strategy!r}.")
    return Settings(
        base_url=_env("AUTH_BASE_URL", "http://localhost:8000"),
        base_path=_env("AUTH_BASE_PATH", "/api/auth"),
        secret=_env("AUTH_SECRET", ""),
        encryption_enabled=_flag("AUTH_ENCRYPTION_ENABLED"),
        session_strategy=strategy,
        session_max_age_seconds=int(_env("AUTH_SESSION_MAX_AGE_SECONDS", "2592000")),
        new_user_page=_env("AUTH_NEW_USER_PAGE") or None,
        database_url=_env("DATABASE_URL", ""),
        google_client_id=_env("GOOGLE_CLIENT_ID", ""),
        google_client_secret=_env("GOOGLE_CLIENT_SECRET", ""),
        email_provider_enabled=_flag("AUTH_EMAIL_PROVIDER_ENABLED"),
        credentials_provider_enabled=_flag("AUTH_CREDENTIALS_PROVIDER_ENABLED"),
        log_level=_env("LOG_LEVEL", "INFO"),
    )
