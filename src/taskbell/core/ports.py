# src/taskbell/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the persistence backend, the notification platform and the timer
primitive swappable and makes testing with simulated time easy.
"""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from ..notifications.notification_models import NotificationAction, NotificationRequest, Toast
    from ..tasks.task_models import Task, TaskDraft

ActionCallback = Callable[["NotificationAction"], Awaitable[Any]]
CloseCallback = Callable[[], None]


class Clock(Protocol):
    """Wall clock in epoch seconds."""
    def now(self) -> float: ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerFactory(Protocol):
    """Single-shot delayed callback primitive ("fire after D seconds")."""
    def after(self, delay_seconds: float, callback: Callable[[], None]) -> TimerHandle: ...


class TaskApi(Protocol):
    """
    Persistence collaborator.

    Every call takes the session auth token. Failures surface as PersistenceError;
    callers never get a silent partial result.
    """

    async def list_tasks(self, auth_token: str) -> list[Task]: ...
    async def create_task(self, auth_token: str, draft: TaskDraft) -> Task: ...
    async def update_task(self, auth_token: str, task_id: int, draft: TaskDraft) -> Task: ...
    async def delete_task(self, auth_token: str, task_id: int) -> None: ...


class NotificationHandle(Protocol):
    def close(self) -> None: ...


class NotificationPlatform(Protocol):
    """
    Native notification primitive.

    Permission values are the strings "unsupported", "default", "granted", "denied".
    on_action is awaited by the platform when the user clicks an action button.
    """

    def query_permission(self) -> str: ...

    async def request_permission(self) -> str: ...

    def show_notification(
            self,
            request: NotificationRequest,
            on_action: ActionCallback,
            on_close: CloseCallback | None = None,
    ) -> NotificationHandle: ...


class ToastSink(Protocol):
    """Where toasts become visible (console printer, test recorder, ...)."""
    def show(self, toast: Toast) -> None: ...
    def hide(self, toast: Toast) -> None: ...


class AudioCue(Protocol):
    def play(self) -> bool: ...


class PreferenceStore(Protocol):
    """Small key/value store persisted across sessions."""
    def get_bool(self, key: str, default: bool = False) -> bool: ...
    def set_bool(self, key: str, value: bool) -> None: ...
    def get_str(self, key: str, default: str | None = None) -> str | None: ...
    def set_str(self, key: str, value: str) -> None: ...
