# src/taskbell/persistence/prefs.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class JsonPreferences:
    """
    Tiny key/value preferences file that survives restarts.

    Reads are served from memory; every write rewrites the whole file
    atomically (tmp file + os.replace). A missing or corrupt file means "no preferences".
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._data: dict[str, Any] = self._read()

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except Exception:
            logger.exception("Failed to read preferences from %s; starting empty", self._path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(json.dumps(self._data, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, self._path)
            with contextlib.suppress(Exception):
                os.chmod(self._path, 0o600)
        except Exception:
            logger.exception("Failed to save preferences to %s", self._path)

    def get_bool(self, key: str, default: bool = False) -> bool:
        val = self._data.get(key)
        return val if isinstance(val, bool) else default

    def set_bool(self, key: str, value: bool) -> None:
        self._data[key] = bool(value)
        self._write()

    def get_str(self, key: str, default: str | None = None) -> str | None:
        val = self._data.get(key)
        return val if isinstance(val, str) else default

    def set_str(self, key: str, value: str) -> None:
        self._data[key] = str(value)
        self._write()
