# src/taskbell/tasks/task_models.py

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from ..core.errors import StaleReminderError, TaskValidationError

TITLE_MAX_LEN = 100
DESCRIPTION_MAX_LEN = 500


@dataclass(slots=True, frozen=True)
class Reminder:
    """Client-side reminder embedded in a Task: fire_at = due_at - lead_minutes."""

    lead_minutes: int
    fire_at: float

    @classmethod
    def create(cls, *, task_id: int, due_at: float, lead_minutes: int, now_ts: float) -> Reminder:
        """Build a reminder; raises StaleReminderError when the fire time is not in the future."""
        if isinstance(lead_minutes, bool) or not isinstance(lead_minutes, int) or lead_minutes <= 0:
            raise TaskValidationError(["Reminder lead time must be a positive number of minutes"])
        fire_at = float(due_at) - lead_minutes * 60
        if fire_at <= now_ts:
            raise StaleReminderError(task_id, fire_at)
        return cls(lead_minutes=lead_minutes, fire_at=fire_at)

    def shifted(self, seconds: float) -> Reminder:
        return Reminder(lead_minutes=self.lead_minutes, fire_at=self.fire_at + seconds)


@dataclass(slots=True, frozen=True)
class Task:
    id: int
    title: str
    description: str
    due_at: float
    completed: bool
    created_at: float
    updated_at: float | None = None
    reminder: Reminder | None = None

    def to_draft(self) -> TaskDraft:
        return TaskDraft(
            title=self.title,
            description=self.description,
            due_at=self.due_at,
            completed=self.completed,
        )


@dataclass(slots=True, frozen=True)
class TaskDraft:
    """What the user submits (and what the persistence API receives)."""

    title: str
    description: str = ""
    due_at: float | None = None
    completed: bool = False


def validate_draft(draft: TaskDraft, *, now_ts: float | None = None) -> TaskDraft:
    """
    Check a draft and return a normalized copy (title/description stripped).

    Raises TaskValidationError with every problem found; nothing is coerced.
    """
    if now_ts is None:
        now_ts = time.time()

    title = (draft.title or "").strip()
    description = (draft.description or "").strip()
    errors: list[str] = []

    if not title:
        errors.append("Task title is required")
    elif len(title) > TITLE_MAX_LEN:
        errors.append(f"Title too long (max {TITLE_MAX_LEN} characters)")

    if len(description) > DESCRIPTION_MAX_LEN:
        errors.append(f"Description too long (max {DESCRIPTION_MAX_LEN} characters)")

    due_at = draft.due_at
    if due_at is None or not isinstance(due_at, (int, float)) or not math.isfinite(due_at):
        errors.append("A valid due date is required")
    elif due_at <= now_ts:
        errors.append("Due date must be in the future")

    if errors:
        raise TaskValidationError(errors)

    return TaskDraft(title=title, description=description, due_at=float(due_at), completed=draft.completed)


# ---- scheduler commands ----


@dataclass(slots=True, frozen=True)
class ScheduleReminder:
    task: Task


@dataclass(slots=True, frozen=True)
class CancelReminder:
    task_id: int


SchedulerCommand = ScheduleReminder | CancelReminder


@dataclass(slots=True, frozen=True)
class MutationResult:
    """
    Outcome of a store mutation.

    commands must be applied to the ReminderScheduler in order;
    warnings are user-facing messages (e.g. a dropped stale reminder).
    """

    task: Task | None
    commands: tuple[SchedulerCommand, ...] = ()
    warnings: tuple[str, ...] = field(default_factory=tuple)


# ---- sharing ----


class ShareStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


@dataclass(slots=True, frozen=True)
class SharedTask:
    """
    A share invitation as listed by the backend.

    peer is the other side: the sender for received shares, the recipient
    for sent ones.
    """

    share_id: int
    task: Task
    status: ShareStatus
    peer_name: str
    peer_email: str


# ---- display helpers ----


def format_due(ts: float) -> str:
    return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M")


def describe_lead(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes} minutes before"
    if minutes < 1440:
        return f"{minutes // 60} hour(s) before"
    return f"{minutes // 1440} day(s) before"


def relative_due(due_at: float, now_ts: float) -> str:
    diff = due_at - now_ts
    if diff < 0:
        return "overdue"
    minutes = int(diff // 60)
    if minutes < 60:
        return f"in {minutes} min"
    hours = int(diff // 3600)
    if hours < 24:
        return f"in {hours}h"
    return f"in {int(diff // 86400)} day(s)"
