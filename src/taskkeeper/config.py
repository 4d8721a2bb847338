# src/taskkeeper/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing required at import time; every key has a default.
- Malformed values fall back to defaults instead of failing startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKKEEPER"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


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
    tasks_db_path: Path

    # ---- Task engine ----
    undo_window_seconds: float
    notifications_enabled: bool
    reminder_poll_seconds: float
    default_filter: str

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskkeeper").strip() or "taskkeeper"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskkeeper"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")

        undo_window_seconds = max(0.0, _env_float(_k("UNDO_WINDOW_SECONDS"), 8.0))
        notifications_enabled = _env_bool(_k("NOTIFICATIONS_ENABLED"), True)
        reminder_poll_seconds = max(0.5, _env_float(_k("REMINDER_POLL_SECONDS"), 15.0))
        default_filter = _env(_k("DEFAULT_FILTER"), "all").strip().lower() or "all"

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            undo_window_seconds=undo_window_seconds,
            notifications_enabled=notifications_enabled,
            reminder_poll_seconds=reminder_poll_seconds,
            default_filter=default_filter,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
