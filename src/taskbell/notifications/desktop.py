# src/taskbell/notifications/desktop.py

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from plyer import notification as plyer_notification

from ..core.ports import ActionCallback, CloseCallback, PreferenceStore
from .notification_models import MarkDone, NotificationAction, NotificationRequest, PermissionState

logger = logging.getLogger(__name__)

PERMISSION_KEY = "desktop_notification_permission"

ConfirmPrompt = Callable[[str], Awaitable[bool]]
Echo = Callable[[str], None]


class DesktopNotificationHandle:
    """
    Handle for a shown desktop notification.

    Desktop notifications have no action buttons: the console's /act command
    answers them through NotificationDispatcher.act().
    """

    def __init__(self, request: NotificationRequest, on_close: CloseCallback | None) -> None:
        self.request = request
        self._on_close = on_close
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._on_close is not None:
            self._on_close()


class DesktopNotificationPlatform:
    """
    NotificationPlatform backed by plyer desktop notifications.

    The permission decision is remembered in preferences, so a user asked
    once is not asked again on the next start.
    """

    def __init__(
        self,
        prefs: PreferenceStore,
        *,
        app_name: str = "taskbell",
        enabled: bool = True,
        confirm: ConfirmPrompt | None = None,
        echo: Echo | None = None,
        timeout_seconds: int = 10,
    ) -> None:
        self._prefs = prefs
        self.app_name = app_name
        self.enabled = bool(enabled)
        self._confirm = confirm
        self._echo = echo
        self.timeout_seconds = int(timeout_seconds)

    def query_permission(self) -> str:
        if not self.enabled:
            return PermissionState.UNSUPPORTED.value
        return PermissionState.parse(self._prefs.get_str(PERMISSION_KEY)).value

    async def request_permission(self) -> str:
        if not self.enabled:
            return PermissionState.UNSUPPORTED.value

        allowed = True
        if self._confirm is not None:
            allowed = await self._confirm("Allow desktop notifications for task reminders? [y/N] ")

        result = PermissionState.GRANTED if allowed else PermissionState.DENIED
        self._prefs.set_str(PERMISSION_KEY, result.value)
        return result.value

    def show_notification(
        self,
        request: NotificationRequest,
        on_action: ActionCallback,
        on_close: CloseCallback | None = None,
    ) -> DesktopNotificationHandle:
        plyer_notification.notify(
            title=request.title,
            message=request.body,
            app_name=self.app_name,
            timeout=self.timeout_seconds,
        )

        if self._echo is not None:
            hints = ", ".join(_action_hint(a) for a in request.actions)
            self._echo(f"[NOTIFY] {request.title}: {request.body}" + (f"  ({hints})" if hints else ""))

        logger.debug("Desktop notification shown tag=%s", request.tag)
        # on_action is unused: plyer cannot report clicks.
        return DesktopNotificationHandle(request, on_close)


def _action_hint(action: NotificationAction) -> str:
    if isinstance(action, MarkDone):
        return f"/act done = {action.label}"
    return f"/act snooze = {action.label}"
