"""
Environment-driven settings.

Read once at startup (see `api/main.py`) and passed down explicitly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, default).strip() or default


@dataclass(frozen=True)
class Settings:
    database_url: str = ""
    production: bool = False
    sqlite_path: str = "submissions.db"
    fallback_json_path: str = "submissions.json"
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"


def load_settings() -> Settings:
    # POSTGRES_URL is accepted as an alias for hosted Postgres providers.
    database_url = (
        os.environ.get("DATABASE_URL", "").strip()
        or os.environ.get("POSTGRES_URL", "").strip()
    )
    origins = tuple(
        o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()
    )
    return Settings(
        database_url=database_url,
        production=_env_str("APP_ENV", "development").lower() == "production",
        sqlite_path=_env_str("SQLITE_PATH", "submissions.db"),
        fallback_json_path=_env_str("FALLBACK_JSON_PATH", "submissions.json"),
        host=_env_str("HOST", "0.0.0.0"),
        port=_env_int("PORT", 3000),
        cors_origins=origins or ("*",),
        log_level=_env_str("LOG_LEVEL", "INFO").upper(),
    )
