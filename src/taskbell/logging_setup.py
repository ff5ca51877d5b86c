# src/taskbell/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "taskbell.log"

# Console thresholds per logger prefix; the longest matching prefix wins.
# Desktop notifications already echo to the console and sqlite logs every
# row it touches, so their chatter only goes to the log file.
CONSOLE_THRESHOLDS: dict[str, int] = {
    "taskbell.": logging.NOTSET,
    "taskbell.notifications.desktop": logging.WARNING,
    "taskbell.persistence.sqlite_api": logging.WARNING,
}
THIRD_PARTY_THRESHOLD = logging.ERROR

# Libraries that log every request or platform backend lookup at INFO.
QUIET_LIBRARIES = ("httpx", "httpcore", "plyer")


class _ConsoleNoiseFilter(logging.Filter):
    """Keep the interactive console readable while the file gets everything."""

    def __init__(self) -> None:
        super().__init__()
        self._prefixes = sorted(CONSOLE_THRESHOLDS.items(), key=lambda kv: len(kv[0]), reverse=True)

    def threshold(self, name: str) -> int:
        for prefix, level in self._prefixes:
            if name.startswith(prefix):
                return level
        return THIRD_PARTY_THRESHOLD

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= self.threshold(record.name)


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskbell",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Console handler (filtered) plus a file handler with full detail.

    Call once at startup. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    # warnings.warn(...) lands in the file as 'py.warnings'; the console only
    # shows it at ERROR like any other third-party logger.
    logging.captureWarnings(True)
    return log_file
