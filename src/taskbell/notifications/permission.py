# src/taskbell/notifications/permission.py

from __future__ import annotations

import logging

from ..core.ports import NotificationPlatform, PreferenceStore
from .notification_models import PermissionState

logger = logging.getLogger(__name__)

BANNER_DISMISSED_KEY = "notification_banner_dismissed"


class PermissionGate:
    """
    Notification permission for one session.

    - status() queries the platform once, then serves the cached value
    - request() prompts only while the status is "default"; a decided status
      (granted/denied) is never re-prompted during the session
    - the permission banner can be dismissed for good (persisted in preferences)
    """

    def __init__(self, platform: NotificationPlatform, prefs: PreferenceStore) -> None:
        self._platform = platform
        self._prefs = prefs
        self._status: PermissionState | None = None

    def status(self) -> PermissionState:
        if self._status is None:
            try:
                self._status = PermissionState.parse(self._platform.query_permission())
            except Exception:
                logger.exception("query_permission failed; treating notifications as unsupported")
                self._status = PermissionState.UNSUPPORTED
        return self._status

    @property
    def granted(self) -> bool:
        return self.status() == PermissionState.GRANTED

    async def request(self) -> PermissionState:
        current = self.status()
        if current != PermissionState.DEFAULT:
            return current

        result = PermissionState.parse(await self._platform.request_permission())
        if result == PermissionState.DEFAULT:
            # Prompt closed without an answer: stay undecided, may ask again later.
            return result

        self._status = result
        logger.info("Notification permission -> %s", result.value)
        return result

    # ---- banner ----

    def banner_visible(self) -> bool:
        return self.status() == PermissionState.DEFAULT and not self._prefs.get_bool(BANNER_DISMISSED_KEY)

    def dismiss_banner(self) -> None:
        self._prefs.set_bool(BANNER_DISMISSED_KEY, True)
