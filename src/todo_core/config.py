# src/todo_core/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing here is required at import time; every key has a default.
- Per-operation budgets live here because they are caller policy: the core
  only ever sees the CancelToken built from them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TODO"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    # ---- Engine ----
    busy_timeout_seconds: float

    # ---- Limits ----
    default_page_size: int
    max_page_size: int
    max_batch_size: int

    # ---- Per-operation budgets (seconds) ----
    list_timeout: float
    create_timeout: float
    update_timeout: float
    delete_timeout: float
    stats_timeout: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "todo")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/todo"))
        # DB_PATH is the name older deployments used.
        raw_db = _first_env(_k("DB_PATH"), "DB_PATH", default=None)
        db_path = Path(raw_db).expanduser() if raw_db else data_dir / "todos.sqlite3"

        busy_timeout_seconds = _env_float(_k("BUSY_TIMEOUT_SECONDS"), 30.0)

        default_page_size = _env_int(_k("DEFAULT_PAGE_SIZE"), 50)
        max_page_size = _env_int(_k("MAX_PAGE_SIZE"), 200)
        max_batch_size = _env_int(_k("MAX_BATCH_SIZE"), 100)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            busy_timeout_seconds=busy_timeout_seconds,
            default_page_size=max(1, default_page_size),
            max_page_size=max(1, max_page_size),
            max_batch_size=max(1, max_batch_size),
            list_timeout=_env_float(_k("LIST_TIMEOUT"), 5.0),
            create_timeout=_env_float(_k("CREATE_TIMEOUT"), 3.0),
            update_timeout=_env_float(_k("UPDATE_TIMEOUT"), 3.0),
            delete_timeout=_env_float(_k("DELETE_TIMEOUT"), 2.0),
            stats_timeout=_env_float(_k("STATS_TIMEOUT"), 5.0),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
