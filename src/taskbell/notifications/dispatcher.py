# src/taskbell/notifications/dispatcher.py

from __future__ import annotations

"""
Notification dispatcher.

Called by the ReminderScheduler when a reminder timer fires:
- plays the chime (failures ignored),
- delivers natively when permission is granted, otherwise as a toast,
- turns user actions (MarkDone / Snooze) into store mutations and feeds the
  resulting scheduler commands back into the scheduler.
"""

import logging
from collections import deque

from ..core.errors import PersistenceError, TaskValidationError
from ..core.ports import AudioCue, NotificationPlatform, TimerFactory
from ..tasks.task_models import MutationResult, format_due
from ..tasks.task_scheduler import ReminderScheduler, ScheduleOutcome
from ..tasks.task_store import TaskStore
from .notification_models import (
    Delivery,
    DeliveryChannel,
    DispatchState,
    MarkDone,
    NotificationAction,
    NotificationRequest,
    Snooze,
    ToastKind,
)
from .permission import PermissionGate
from .toasts import ToastCenter

logger = logging.getLogger(__name__)

NATIVE_TITLE = "Task reminder"
TOAST_TITLE = "Reminder!"
MAX_DELIVERIES = 100


class NotificationDispatcher:
    def __init__(
        self,
        *,
        store: TaskStore,
        scheduler: ReminderScheduler,
        gate: PermissionGate,
        platform: NotificationPlatform,
        toasts: ToastCenter,
        timers: TimerFactory,
        chime: AudioCue | None = None,
        snooze_minutes: int = 5,
        require_interaction: bool = True,
        native_dismiss_seconds: float = 10.0,
        max_deliveries: int = MAX_DELIVERIES,
    ) -> None:
        self._store = store
        self._scheduler = scheduler
        self._gate = gate
        self._platform = platform
        self._toasts = toasts
        self._timers = timers
        self._chime = chime
        self.snooze_minutes = int(snooze_minutes)
        self.require_interaction = bool(require_interaction)
        self.native_dismiss_seconds = float(native_dismiss_seconds)
        self.deliveries: deque[Delivery] = deque(maxlen=max_deliveries)

    # ---- firing ----

    def on_reminder_fired(self, task_id: int, fire_at: float) -> Delivery | None:
        task = self._store.get(task_id)
        if task is None or task.completed:
            logger.info("Reminder fired for missing/completed task %s; nothing to deliver", task_id)
            return None

        delivery = Delivery(
            task_id=task_id,
            fire_at=fire_at,
            title=NATIVE_TITLE,
            body=f"{task.title} - {format_due(task.due_at)}",
        )
        delivery.advance(DispatchState.FIRED)
        self.deliveries.append(delivery)

        self._play_chime()

        if self._gate.granted and self._deliver_native(delivery):
            return delivery
        self._deliver_toast(delivery)
        return delivery

    def _play_chime(self) -> None:
        if self._chime is None:
            return
        try:
            self._chime.play()
        except Exception:
            logger.debug("Chime failed", exc_info=True)

    def _deliver_native(self, delivery: Delivery) -> bool:
        request = NotificationRequest(
            title=delivery.title,
            body=delivery.body,
            tag=f"task-{delivery.task_id}",
            actions=(MarkDone(), Snooze(self.snooze_minutes)),
            require_interaction=self.require_interaction,
        )
        try:
            handle = self._platform.show_notification(
                request,
                on_action=lambda action: self.handle_action(delivery, action),
                on_close=lambda: self._acknowledge(delivery),
            )
        except Exception:
            logger.exception("Native notification failed task_id=%s; falling back to toast", delivery.task_id)
            return False

        delivery.handle = handle
        delivery.channel = DeliveryChannel.NATIVE
        delivery.advance(DispatchState.DELIVERED_NATIVE)

        if not self.require_interaction:
            self._timers.after(self.native_dismiss_seconds, lambda: self._expire_native(delivery))
        logger.info("Reminder delivered natively task_id=%s", delivery.task_id)
        return True

    def _deliver_toast(self, delivery: Delivery) -> None:
        toast = self._toasts.show(
            ToastKind.WARNING,
            TOAST_TITLE,
            delivery.body,
            on_dismiss=lambda _toast, reason: self._toast_dismissed(delivery, reason),
        )
        delivery.toast = toast
        delivery.channel = DeliveryChannel.TOAST
        delivery.advance(DispatchState.DELIVERED_FALLBACK)
        logger.info("Reminder delivered as toast task_id=%s", delivery.task_id)

    # ---- closing ----

    def _acknowledge(self, delivery: Delivery) -> None:
        if delivery.state.is_final:
            return
        delivery.advance(DispatchState.ACKNOWLEDGED)

    def _expire_native(self, delivery: Delivery) -> None:
        if delivery.state.is_final:
            return
        delivery.advance(DispatchState.TIMED_OUT)
        self._close_handle(delivery)

    def _toast_dismissed(self, delivery: Delivery, reason: str) -> None:
        if delivery.state.is_final:
            return
        delivery.advance(DispatchState.TIMED_OUT if reason == "timeout" else DispatchState.ACKNOWLEDGED)

    @staticmethod
    def _close_handle(delivery: Delivery) -> None:
        if delivery.handle is None:
            return
        try:
            delivery.handle.close()
        except Exception:
            logger.debug("Closing notification failed task_id=%s", delivery.task_id, exc_info=True)

    # ---- actions ----

    def latest_open(self, task_id: int | None = None) -> Delivery | None:
        """Most recent delivery that has not been acknowledged, timed out or actioned."""
        for delivery in reversed(self.deliveries):
            if delivery.state.is_final:
                continue
            if task_id is None or delivery.task_id == task_id:
                return delivery
        return None

    async def act(self, action: NotificationAction, task_id: int | None = None) -> MutationResult | None:
        delivery = self.latest_open(task_id)
        if delivery is None:
            return None
        return await self.handle_action(delivery, action)

    async def handle_action(self, delivery: Delivery, action: NotificationAction) -> MutationResult | None:
        if delivery.state.is_final:
            logger.info("Ignoring %r for finished delivery task_id=%s", action, delivery.task_id)
            return None

        task_id = delivery.task_id
        try:
            if isinstance(action, MarkDone):
                result = await self._store.mark_done(task_id)
                title, message = "Task completed!", result.task.title if result.task else ""
            elif isinstance(action, Snooze):
                result = await self._store.snooze(task_id, action.minutes)
                title, message = "Task snoozed!", f"Snoozed for {action.minutes} minutes."
            else:
                raise TypeError(f"unknown notification action: {action!r}")
        except KeyError:
            self._toasts.show(ToastKind.WARNING, "Task not found", "The task was removed.")
            return None
        except TaskValidationError as e:
            self._toasts.show(ToastKind.ERROR, "Validation error", "\n".join(e.errors))
            return None
        except PersistenceError:
            self._toasts.show(ToastKind.ERROR, "Error", "Could not save the task.")
            return None

        outcomes = self._scheduler.apply(result.commands)
        delivery.advance(DispatchState.ACTIONED)
        self._close_handle(delivery)

        self._toasts.show(ToastKind.INFO, title, message)
        for warning in result.warnings:
            self._toasts.show(ToastKind.WARNING, "Reminder", warning)
        if ScheduleOutcome.STALE in outcomes:
            self._toasts.show(ToastKind.WARNING, "Reminder not set", "The reminder time has already passed.")
        return result
