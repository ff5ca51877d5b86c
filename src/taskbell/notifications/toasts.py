# src/taskbell/notifications/toasts.py

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable

from ..core.ports import Clock, TimerFactory, TimerHandle, ToastSink
from .notification_models import Toast, ToastKind

logger = logging.getLogger(__name__)

DismissCallback = Callable[[Toast, str], None]

HISTORY_LIMIT = 200


class ToastCenter:
    """
    In-app transient notices.

    Every toast auto-dismisses after `dismiss_after` seconds (reason "timeout")
    unless the user closes it first (reason "user").
    """

    def __init__(
        self,
        timers: TimerFactory,
        clock: Clock,
        sink: ToastSink | None = None,
        *,
        dismiss_after: float = 5.0,
        history_limit: int = HISTORY_LIMIT,
    ) -> None:
        self._timers = timers
        self._clock = clock
        self._sink = sink
        self.dismiss_after = float(dismiss_after)
        self._next_id = 1
        self._active: dict[int, tuple[Toast, TimerHandle, DismissCallback | None]] = {}
        self.history: deque[Toast] = deque(maxlen=history_limit)

    @property
    def active(self) -> list[Toast]:
        return [entry[0] for entry in self._active.values()]

    def show(
        self,
        kind: ToastKind | str,
        title: str,
        message: str,
        *,
        on_dismiss: DismissCallback | None = None,
    ) -> Toast:
        toast = Toast(
            id=self._next_id,
            kind=ToastKind(kind),
            title=title,
            message=message,
            created_at=self._clock.now(),
        )
        self._next_id += 1

        toast_id = toast.id
        handle = self._timers.after(self.dismiss_after, lambda: self.dismiss(toast_id, reason="timeout"))
        self._active[toast_id] = (toast, handle, on_dismiss)
        self.history.append(toast)

        if self._sink is not None:
            try:
                self._sink.show(toast)
            except Exception:
                logger.exception("Toast sink failed to show toast id=%s", toast_id)
        logger.debug("Toast shown id=%s kind=%s title=%s", toast_id, toast.kind.value, title)
        return toast

    def dismiss(self, toast_id: int, *, reason: str = "user") -> bool:
        entry = self._active.pop(toast_id, None)
        if entry is None:
            return False
        toast, handle, on_dismiss = entry
        handle.cancel()
        toast.dismissed = True
        toast.dismiss_reason = reason

        if self._sink is not None:
            try:
                self._sink.hide(toast)
            except Exception:
                logger.exception("Toast sink failed to hide toast id=%s", toast_id)
        if on_dismiss is not None:
            on_dismiss(toast, reason)
        return True

    def clear(self) -> None:
        for toast_id in list(self._active):
            self.dismiss(toast_id, reason="cleared")
