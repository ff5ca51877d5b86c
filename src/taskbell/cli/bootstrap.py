# src/taskbell/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState
  (persistence backend, notification platform, timers, toasts, chime),
- binds the scheduler's fire handler to the dispatcher.

Every collaborator can be injected, which is how the tests run the whole
session on simulated time.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.errors import PersistenceError
from ..core.ports import AudioCue, Clock, NotificationPlatform, PreferenceStore, TaskApi, TimerFactory, ToastSink
from ..core.state import AppState
from ..notifications.desktop import ConfirmPrompt, DesktopNotificationPlatform, Echo
from ..notifications.dispatcher import NotificationDispatcher
from ..notifications.permission import PermissionGate
from ..notifications.sound import Chime
from ..notifications.toasts import ToastCenter
from ..persistence.http_api import HttpTaskApi
from ..persistence.prefs import JsonPreferences
from ..persistence.sqlite_api import SqliteTaskApi
from ..tasks.task_scheduler import ReminderScheduler
from ..tasks.task_store import TaskStore
from ..tasks.timers import AsyncioTimers, SystemClock

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.prefs_path.parent.mkdir(parents=True, exist_ok=True)


def build_task_api(settings) -> TaskApi:
    if settings.backend == "http":
        return HttpTaskApi(settings.api_base_url, timeout=settings.http_timeout_seconds)
    return SqliteTaskApi(settings.tasks_db_path)


def create_initial_state(
    *,
    settings=None,
    api: TaskApi | None = None,
    platform: NotificationPlatform | None = None,
    prefs: PreferenceStore | None = None,
    timers: TimerFactory | None = None,
    clock: Clock | None = None,
    toast_sink: ToastSink | None = None,
    chime: AudioCue | None = None,
    confirm: ConfirmPrompt | None = None,
    echo: Echo | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    if api is None or prefs is None:
        _ensure_local_dirs(settings)

    clock = clock or SystemClock()
    timers = timers or AsyncioTimers()
    prefs = prefs or JsonPreferences(settings.prefs_path)
    api = api or build_task_api(settings)
    platform = platform or DesktopNotificationPlatform(
        prefs,
        app_name=settings.app_name,
        enabled=settings.native_notifications,
        confirm=confirm,
        echo=echo,
        timeout_seconds=int(settings.native_dismiss_seconds),
    )
    if chime is None:
        chime = Chime(
            enabled=settings.sound_enabled,
            frequency_hz=settings.sound_frequency_hz,
            duration_seconds=settings.sound_duration_seconds,
            volume=settings.sound_volume,
        )

    token = settings.local_user if settings.backend == "sqlite" else (settings.api_token or "")
    store = TaskStore(api, clock=clock, auth_token=token)
    scheduler = ReminderScheduler(timers, clock)
    gate = PermissionGate(platform, prefs)
    toasts = ToastCenter(timers, clock, toast_sink, dismiss_after=settings.toast_dismiss_seconds)
    dispatcher = NotificationDispatcher(
        store=store,
        scheduler=scheduler,
        gate=gate,
        platform=platform,
        toasts=toasts,
        timers=timers,
        chime=chime,
        snooze_minutes=settings.snooze_minutes,
        require_interaction=settings.require_interaction,
        native_dismiss_seconds=settings.native_dismiss_seconds,
    )
    scheduler.set_fire_handler(dispatcher.on_reminder_fired)

    return AppState(
        settings=settings,
        api=api,
        clock=clock,
        store=store,
        scheduler=scheduler,
        gate=gate,
        platform=platform,
        toasts=toasts,
        dispatcher=dispatcher,
    )


async def authenticate(state: AppState) -> bool:
    """
    Make sure the store has an auth token.

    SQLite: the local user name is the token. HTTP: use TASKBELL_API_TOKEN,
    else log in with TASKBELL_API_EMAIL / TASKBELL_API_PASSWORD.
    """
    if state.store.auth_token:
        return True

    settings = state.settings
    if not isinstance(state.api, HttpTaskApi):
        return False
    if not settings.api_email or not settings.api_password:
        logger.warning("No API token and no credentials configured; requests will be rejected.")
        return False

    try:
        state.store.auth_token = await state.api.login(settings.api_email, settings.api_password)
    except PersistenceError:
        logger.exception("Login failed for %s", settings.api_email)
        return False
    return True


async def shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.scheduler.cancel_all()
        state.toasts.clear()
    except Exception:
        logger.exception("Failed to release timers.")

    close = getattr(state.api, "aclose", None)
    if close is not None:
        try:
            await close()
        except Exception:
            logger.debug("Task API close failed.", exc_info=True)
