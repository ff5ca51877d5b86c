# src/taskbell/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Every value has a default so the console app runs with an empty environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKBELL"

BACKENDS = ("sqlite", "http")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


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
    console_enabled: bool

    # ---- Persistence ----
    backend: str
    api_base_url: str
    api_token: str | None
    api_email: str
    api_password: str
    http_timeout_seconds: float
    local_user: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path
    prefs_path: Path

    # ---- Notifications ----
    native_notifications: bool
    require_interaction: bool
    native_dismiss_seconds: float
    toast_dismiss_seconds: float
    snooze_minutes: int

    # ---- Audio cue ----
    sound_enabled: bool
    sound_frequency_hz: float
    sound_duration_seconds: float
    sound_volume: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskbell") or "taskbell"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        backend = _env(_k("BACKEND"), "sqlite").strip().lower()
        if backend not in BACKENDS:
            backend = "sqlite"

        api_base_url = _env(_k("API_BASE_URL"), "http://localhost:3001/api").rstrip("/")
        api_token = _first_env(_k("API_TOKEN"), default=None)
        api_email = _env(_k("API_EMAIL"), "").strip()
        api_password = _env(_k("API_PASSWORD"), "")
        http_timeout_seconds = _env_float(_k("HTTP_TIMEOUT_SECONDS"), 10.0)
        local_user = _env(_k("LOCAL_USER"), "local").strip() or "local"

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskbell"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        prefs_path = _env_path(_k("PREFS_PATH"), data_dir / "prefs.json")

        native_notifications = _env_bool(_k("NATIVE_NOTIFICATIONS"), True)
        require_interaction = _env_bool(_k("REQUIRE_INTERACTION"), True)
        native_dismiss_seconds = _env_float(_k("NATIVE_DISMISS_SECONDS"), 10.0)
        toast_dismiss_seconds = _env_float(_k("TOAST_DISMISS_SECONDS"), 5.0)
        snooze_minutes = max(1, _env_int(_k("SNOOZE_MINUTES"), 5))

        sound_enabled = _env_bool(_k("SOUND_ENABLED"), True)
        sound_frequency_hz = _env_float(_k("SOUND_FREQUENCY_HZ"), 800.0)
        sound_duration_seconds = _env_float(_k("SOUND_DURATION_SECONDS"), 0.5)
        sound_volume = min(1.0, max(0.0, _env_float(_k("SOUND_VOLUME"), 0.3)))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            backend=backend,
            api_base_url=api_base_url,
            api_token=api_token,
            api_email=api_email,
            api_password=api_password,
            http_timeout_seconds=http_timeout_seconds,
            local_user=local_user,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            prefs_path=prefs_path,
            native_notifications=native_notifications,
            require_interaction=require_interaction,
            native_dismiss_seconds=native_dismiss_seconds,
            toast_dismiss_seconds=toast_dismiss_seconds,
            snooze_minutes=snooze_minutes,
            sound_enabled=sound_enabled,
            sound_frequency_hz=sound_frequency_hz,
            sound_duration_seconds=sound_duration_seconds,
            sound_volume=sound_volume,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
