# src/taskbell/tasks/timers.py

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable


class SystemClock:
    def now(self) -> float:
        return time.time()


class AsyncioTimers:
    """
    Timer adapter over the running event loop.

    after() returns the asyncio.TimerHandle itself: cancel() is idempotent and
    a no-op once the callback has run.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def after(self, delay_seconds: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, float(delay_seconds)), callback)
