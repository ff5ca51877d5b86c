# src/taskbell/tasks/task_scheduler.py

from __future__ import annotations

"""
Reminder scheduler.

Owns the task_id -> pending timer mapping for one session:
- arms a single-shot timer per task at reminder.fire_at,
- releases the previous handle before arming a new one (at most one per task),
- prunes the entry the moment a timer fires, before the fire handler runs,
- drops stale reminders instead of firing them late.

Delivery (native vs toast, actions) belongs to the dispatcher, not the scheduler.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum

from ..core.ports import Clock, TimerFactory, TimerHandle
from .task_models import CancelReminder, ScheduleReminder, SchedulerCommand, Task

logger = logging.getLogger(__name__)

FireHandler = Callable[[int, float], None]


class ScheduleOutcome(StrEnum):
    ARMED = "armed"
    NO_REMINDER = "no_reminder"
    COMPLETED = "completed"
    STALE = "stale"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class _Pending:
    handle: TimerHandle
    fire_at: float
    generation: int


class ReminderScheduler:
    def __init__(self, timers: TimerFactory, clock: Clock, on_fire: FireHandler | None = None) -> None:
        self._timers = timers
        self._clock = clock
        self._on_fire = on_fire
        self._pending: dict[int, _Pending] = {}
        self._generation = 0

    def set_fire_handler(self, on_fire: FireHandler) -> None:
        self._on_fire = on_fire

    # ---- introspection ----

    @property
    def pending_ids(self) -> list[int]:
        return sorted(self._pending)

    def has_pending(self, task_id: int) -> bool:
        return task_id in self._pending

    def fire_at(self, task_id: int) -> float | None:
        entry = self._pending.get(task_id)
        return entry.fire_at if entry else None

    # ---- commands ----

    def schedule(self, task: Task) -> ScheduleOutcome:
        """
        (Re)arm the reminder timer for task.

        The previous handle is always released first, even when the new
        reminder turns out not to be schedulable.
        """
        self.cancel(task.id)

        reminder = task.reminder
        if reminder is None:
            return ScheduleOutcome.NO_REMINDER
        if task.completed:
            return ScheduleOutcome.COMPLETED

        delay = reminder.fire_at - self._clock.now()
        if delay <= 0:
            logger.warning("Dropping stale reminder task_id=%s fire_at=%s", task.id, reminder.fire_at)
            return ScheduleOutcome.STALE

        self._generation += 1
        generation = self._generation
        task_id = task.id
        handle = self._timers.after(delay, lambda: self._fire(task_id, generation))
        self._pending[task_id] = _Pending(handle=handle, fire_at=reminder.fire_at, generation=generation)
        logger.debug("Reminder armed task_id=%s in %.1fs", task_id, delay)
        return ScheduleOutcome.ARMED

    def cancel(self, task_id: int) -> bool:
        """Release the pending handle for task_id. Returns False when there was none."""
        entry = self._pending.pop(task_id, None)
        if entry is None:
            return False
        entry.handle.cancel()
        logger.debug("Reminder cancelled task_id=%s", task_id)
        return True

    def cancel_all(self) -> None:
        for task_id in list(self._pending):
            self.cancel(task_id)

    def reschedule_all(self, tasks: Iterable[Task]) -> int:
        """
        Recover scheduling state on session activation.

        Arms every incomplete task with a future reminder and releases handles
        of tasks that are gone or no longer eligible. Returns the number armed.
        """
        armed = 0
        seen: set[int] = set()
        for task in tasks:
            seen.add(task.id)
            if task.reminder is None or task.completed:
                self.cancel(task.id)
                continue
            if self.schedule(task) == ScheduleOutcome.ARMED:
                armed += 1

        for task_id in [tid for tid in self._pending if tid not in seen]:
            self.cancel(task_id)

        logger.info("Reminders rescheduled: armed=%s", armed)
        return armed

    def apply(self, commands: Iterable[SchedulerCommand]) -> list[ScheduleOutcome]:
        outcomes: list[ScheduleOutcome] = []
        for command in commands:
            if isinstance(command, ScheduleReminder):
                outcomes.append(self.schedule(command.task))
            elif isinstance(command, CancelReminder):
                self.cancel(command.task_id)
                outcomes.append(ScheduleOutcome.CANCELLED)
            else:
                raise TypeError(f"unknown scheduler command: {command!r}")
        return outcomes

    # ---- timer callback ----

    def _fire(self, task_id: int, generation: int) -> None:
        entry = self._pending.get(task_id)
        if entry is None or entry.generation != generation:
            # Superseded or cancelled after the timer was already queued.
            return
        del self._pending[task_id]

        logger.info("Reminder fired task_id=%s", task_id)
        if self._on_fire is None:
            logger.warning("No fire handler bound; reminder for task %s is lost", task_id)
            return
        try:
            self._on_fire(task_id, entry.fire_at)
        except Exception:
            logger.exception("Fire handler failed task_id=%s", task_id)
