# src/cadence_planner/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Settings are passed explicitly into the composition root; nothing below
  cli/ reads them globally.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "PLANNER"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Real environment variables win over .env entries.
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

    # ---- Calendar ----
    # "local", "UTC", an IANA name or a fixed offset like "+02:00".
    timezone: str

    # ---- Notifications ----
    notifications_auto_grant: bool
    dispatch_interval_seconds: float
    dispatch_retry_seconds: float

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path
    prefs_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "cadence-planner")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        timezone = _env(_k("TIMEZONE"), "local")

        notifications_auto_grant = _env_bool(_k("NOTIFICATIONS_AUTO_GRANT"), True)
        dispatch_interval_seconds = _env_float(_k("DISPATCH_INTERVAL_SECONDS"), 15.0)
        dispatch_retry_seconds = _env_float(_k("DISPATCH_RETRY_SECONDS"), 60.0)

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/planner"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        prefs_path = _env_path(_k("PREFS_PATH"), data_dir / "preferences.json")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            timezone=timezone,
            notifications_auto_grant=notifications_auto_grant,
            dispatch_interval_seconds=dispatch_interval_seconds,
            dispatch_retry_seconds=dispatch_retry_seconds,
            console_enabled=console_enabled,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            prefs_path=prefs_path,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
