# src/taskbell/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..notifications.dispatcher import NotificationDispatcher
from ..notifications.permission import PermissionGate
from ..notifications.toasts import ToastCenter
from ..tasks.task_scheduler import ReminderScheduler
from ..tasks.task_store import TaskStore
from .ports import Clock, NotificationPlatform, TaskApi


@dataclass
class AppState:
    """
    Everything one session owns.

    Built once by the bootstrap and passed explicitly to whoever needs it.
    """

    settings: Any

    api: TaskApi
    clock: Clock
    store: TaskStore
    scheduler: ReminderScheduler
    gate: PermissionGate
    platform: NotificationPlatform
    toasts: ToastCenter
    dispatcher: NotificationDispatcher
