# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from taskbell.config import Settings


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    import os

    for name in list(os.environ):
        if name.startswith("TASKBELL_"):
            monkeypatch.delenv(name)
    return monkeypatch


def test_defaults(clean_env: pytest.MonkeyPatch) -> None:
    s = Settings.from_env()
    assert s.backend == "sqlite"
    assert s.api_base_url == "http://localhost:3001/api"
    assert s.tasks_db_path == Path(".local/taskbell") / "tasks.sqlite3"
    assert s.toast_dismiss_seconds == 5.0
    assert s.snooze_minutes == 5
    assert s.require_interaction is True


def test_overrides_and_sanitizing(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    clean_env.setenv("TASKBELL_BACKEND", "HTTP")
    clean_env.setenv("TASKBELL_API_BASE_URL", "https://tasks.example.com/api/")
    clean_env.setenv("TASKBELL_DATA_DIR", str(tmp_path))
    clean_env.setenv("TASKBELL_SNOOZE_MINUTES", "0")
    clean_env.setenv("TASKBELL_SOUND_VOLUME", "3")
    clean_env.setenv("TASKBELL_SOUND_ENABLED", "off")
    clean_env.setenv("TASKBELL_TOAST_DISMISS_SECONDS", "soon")

    s = Settings.from_env()
    assert s.backend == "http"
    assert s.api_base_url == "https://tasks.example.com/api"
    assert s.prefs_path == tmp_path / "prefs.json"
    assert s.snooze_minutes == 1
    assert s.sound_volume == 1.0
    assert s.sound_enabled is False
    assert s.toast_dismiss_seconds == 5.0


def test_unknown_backend_falls_back_to_sqlite(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("TASKBELL_BACKEND", "postgres")
    assert Settings.from_env().backend == "sqlite"
