# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskbell.cli.bootstrap import create_initial_state
from taskbell.core.state import AppState
from taskbell.persistence.prefs import JsonPreferences

from .fakes import FakeChime, FakeClock, FakePlatform, FakeTaskApi, ManualTimers, RecordingToastSink


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the developer's environment / .env.
    """
    return SimpleNamespace(
        app_name="taskbell-test",
        log_level="DEBUG",
        console_enabled=False,
        # Persistence
        backend="sqlite",
        api_base_url="http://api.test/api",
        api_token=None,
        api_email="",
        api_password="",
        http_timeout_seconds=5.0,
        local_user="tester",
        # Paths (tmp per test run)
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        prefs_path=tmp_path / "prefs.json",
        # Notifications
        native_notifications=True,
        require_interaction=True,
        native_dismiss_seconds=10.0,
        toast_dismiss_seconds=5.0,
        snooze_minutes=5,
        # Audio
        sound_enabled=False,
        sound_frequency_hz=800.0,
        sound_duration_seconds=0.5,
        sound_volume=0.3,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def timers(clock: FakeClock) -> ManualTimers:
    return ManualTimers(clock)


@pytest.fixture()
def api(clock: FakeClock) -> FakeTaskApi:
    return FakeTaskApi(clock)


@pytest.fixture()
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture()
def prefs(settings: SimpleNamespace) -> JsonPreferences:
    return JsonPreferences(settings.prefs_path)


@pytest.fixture()
def toast_sink() -> RecordingToastSink:
    return RecordingToastSink()


@pytest.fixture()
def chime() -> FakeChime:
    return FakeChime()


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    api: FakeTaskApi,
    platform: FakePlatform,
    prefs: JsonPreferences,
    timers: ManualTimers,
    clock: FakeClock,
    toast_sink: RecordingToastSink,
    chime: FakeChime,
) -> AppState:
    """
    AppState wired with deterministic fakes on simulated time.

    NOTE: preferences are the real JSON file (under tmp_path) because
    banner/permission persistence is part of what we want to test.
    """
    return create_initial_state(
        settings=settings,
        api=api,
        platform=platform,
        prefs=prefs,
        timers=timers,
        clock=clock,
        toast_sink=toast_sink,
        chime=chime,
    )
