# src/taskbell/tasks/task_store.py

from __future__ import annotations

import logging
from dataclasses import replace

from ..core.errors import PersistenceError, StaleReminderError, TaskValidationError
from ..core.ports import Clock, TaskApi
from .task_models import (
    CancelReminder,
    MutationResult,
    Reminder,
    ScheduleReminder,
    Task,
    TaskDraft,
    validate_draft,
)

logger = logging.getLogger(__name__)


class TaskStore:
    """
    In-memory task list for one session, synchronized with a TaskApi.

    Rules:
    - every mutation persists first, then applies the API's answer in memory
    - a failed call leaves memory untouched (load() is the exception: it clears)
    - reminders are client-only; they live in a side map and are re-attached
      to tasks after every refresh
    - mutations return the scheduler commands they obligate; the caller applies them
    """

    def __init__(self, api: TaskApi, *, clock: Clock, auth_token: str = "") -> None:
        self._api = api
        self._clock = clock
        self.auth_token = auth_token
        self._tasks: dict[int, Task] = {}
        self._reminders: dict[int, Reminder] = {}

    # ---- reads ----

    @property
    def tasks(self) -> list[Task]:
        """Tasks ordered by due time."""
        return sorted(self._tasks.values(), key=lambda t: (t.due_at, t.id))

    def get(self, task_id: int) -> Task | None:
        return self._tasks.get(task_id)

    def _require(self, task_id: int) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise KeyError(task_id)
        return task

    def _attach(self, task: Task) -> Task:
        return replace(task, reminder=self._reminders.get(task.id))

    # ---- persistence ----

    async def load(self) -> list[Task]:
        """Replace in-memory state with the API's task set; on failure state becomes empty."""
        try:
            fetched = await self._api.list_tasks(self.auth_token)
        except Exception as e:
            self._tasks = {}
            self._reminders = {}
            logger.exception("Task load failed; in-memory state cleared")
            if isinstance(e, PersistenceError):
                raise
            raise PersistenceError("Could not load tasks") from e

        self._tasks = {t.id: t for t in fetched}
        for task_id in [tid for tid in self._reminders if tid not in self._tasks]:
            del self._reminders[task_id]
        self._tasks = {tid: self._attach(t) for tid, t in self._tasks.items()}
        logger.info("Tasks loaded: %s", len(self._tasks))
        return self.tasks

    async def _call(self, what: str, coro):
        try:
            return await coro
        except PersistenceError:
            logger.exception("%s failed", what)
            raise
        except Exception as e:
            logger.exception("%s failed", what)
            raise PersistenceError(f"{what} failed") from e

    async def create(self, draft: TaskDraft) -> MutationResult:
        clean = validate_draft(draft, now_ts=self._clock.now())
        task = await self._call("create_task", self._api.create_task(self.auth_token, clean))
        self._reminders.pop(task.id, None)
        self._tasks[task.id] = task
        logger.debug("Task created id=%s", task.id)
        return MutationResult(task=task)

    async def update(self, task_id: int, draft: TaskDraft) -> MutationResult:
        """
        Persist an edit. An existing reminder keeps its lead time and follows
        the new due time; if that lands in the past the reminder is dropped.
        """
        self._require(task_id)
        clean = validate_draft(draft, now_ts=self._clock.now())
        saved = await self._call("update_task", self._api.update_task(self.auth_token, task_id, clean))

        warnings: tuple[str, ...] = ()
        old = self._reminders.get(task_id)
        if old is not None:
            if saved.completed:
                del self._reminders[task_id]
            else:
                try:
                    self._reminders[task_id] = Reminder.create(
                        task_id=task_id,
                        due_at=saved.due_at,
                        lead_minutes=old.lead_minutes,
                        now_ts=self._clock.now(),
                    )
                except StaleReminderError:
                    del self._reminders[task_id]
                    warnings = ("Reminder removed: its time has already passed.",)

        task = self._attach(saved)
        self._tasks[task_id] = task
        if task.reminder is not None:
            return MutationResult(task=task, commands=(ScheduleReminder(task),), warnings=warnings)
        return MutationResult(task=task, commands=(CancelReminder(task_id),), warnings=warnings)

    async def remove(self, task_id: int) -> MutationResult:
        self._require(task_id)
        await self._call("delete_task", self._api.delete_task(self.auth_token, task_id))
        self._tasks.pop(task_id, None)
        self._reminders.pop(task_id, None)
        logger.debug("Task removed id=%s", task_id)
        return MutationResult(task=None, commands=(CancelReminder(task_id),))

    async def toggle_complete(self, task_id: int) -> MutationResult:
        task = self._require(task_id)
        draft = replace(task.to_draft(), completed=not task.completed)
        saved = await self._call("update_task", self._api.update_task(self.auth_token, task_id, draft))
        if saved.completed:
            self._reminders.pop(task_id, None)
        task = self._attach(saved)
        self._tasks[task_id] = task
        if task.completed:
            return MutationResult(task=task, commands=(CancelReminder(task_id),))
        return MutationResult(task=task)

    async def mark_done(self, task_id: int) -> MutationResult:
        """Complete the task; an already completed task only gets its timer released."""
        task = self._require(task_id)
        # Product rule: "done" from a notification never reopens a task.
        # Only the /done command toggles.
        if task.completed:
            self._reminders.pop(task_id, None)
            task = self._attach(task)
            self._tasks[task_id] = task
            return MutationResult(task=task, commands=(CancelReminder(task_id),))
        return await self.toggle_complete(task_id)

    async def snooze(self, task_id: int, minutes: int) -> MutationResult:
        """Push the due time (and reminder fire time) forward by exactly `minutes`."""
        if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes <= 0:
            raise TaskValidationError(["Snooze duration must be a positive number of minutes"])
        task = self._require(task_id)
        shift = minutes * 60
        draft = replace(task.to_draft(), due_at=task.due_at + shift)
        saved = await self._call("update_task", self._api.update_task(self.auth_token, task_id, draft))

        warnings: tuple[str, ...] = ()
        commands: tuple[ScheduleReminder | CancelReminder, ...] = ()
        old = self._reminders.get(task_id)
        if old is not None:
            moved = old.shifted(shift)
            if moved.fire_at <= self._clock.now():
                del self._reminders[task_id]
                warnings = ("Reminder removed: its time has already passed.",)
                commands = (CancelReminder(task_id),)
            else:
                self._reminders[task_id] = moved
        task = self._attach(saved)
        self._tasks[task_id] = task
        logger.info("Task %s snoozed by %s min", task_id, minutes)
        if task.reminder is not None:
            commands = (ScheduleReminder(task),)
        return MutationResult(task=task, commands=commands, warnings=warnings)

    # ---- reminders (client-only, never persisted) ----

    def set_reminder(self, task_id: int, lead_minutes: int) -> MutationResult:
        """
        Attach a reminder `lead_minutes` before the due time, superseding any
        existing one. A reminder that would fire in the past is rejected: the
        task ends up without a reminder and a warning is returned.
        """
        task = self._require(task_id)
        if isinstance(lead_minutes, bool) or not isinstance(lead_minutes, int) or lead_minutes <= 0:
            raise TaskValidationError(["Reminder lead time must be a positive number of minutes"])

        had_reminder = self._reminders.pop(task_id, None) is not None
        try:
            reminder = Reminder.create(
                task_id=task_id,
                due_at=task.due_at,
                lead_minutes=lead_minutes,
                now_ts=self._clock.now(),
            )
        except StaleReminderError:
            task = self._attach(task)
            self._tasks[task_id] = task
            logger.info("Reminder rejected (stale) task_id=%s lead=%s", task_id, lead_minutes)
            return MutationResult(
                task=task,
                commands=(CancelReminder(task_id),) if had_reminder else (),
                warnings=("Reminder not set: that time has already passed.",),
            )

        self._reminders[task_id] = reminder
        task = self._attach(task)
        self._tasks[task_id] = task
        return MutationResult(task=task, commands=(ScheduleReminder(task),))

    def clear_reminder(self, task_id: int) -> MutationResult:
        task = self._require(task_id)
        self._reminders.pop(task_id, None)
        task = self._attach(task)
        self._tasks[task_id] = task
        return MutationResult(task=task, commands=(CancelReminder(task_id),))
