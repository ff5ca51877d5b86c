# tests/test_task_models.py

from __future__ import annotations

import pytest

from taskbell.core.errors import StaleReminderError, TaskValidationError
from taskbell.tasks.task_models import Reminder, TaskDraft, describe_lead, relative_due, validate_draft

from .fakes import NOW


def test_validate_draft_strips_and_accepts_future_due() -> None:
    clean = validate_draft(TaskDraft(title="  Pay rent  ", description=" March ", due_at=NOW + 60), now_ts=NOW)
    assert clean.title == "Pay rent"
    assert clean.description == "March"
    assert clean.due_at == NOW + 60


def test_validate_draft_collects_every_error() -> None:
    draft = TaskDraft(title="   ", description="x" * 501, due_at=NOW - 1)
    with pytest.raises(TaskValidationError) as exc:
        validate_draft(draft, now_ts=NOW)

    errors = exc.value.errors
    assert "Task title is required" in errors
    assert any("Description too long" in e for e in errors)
    assert "Due date must be in the future" in errors


@pytest.mark.parametrize(
    "draft",
    [
        TaskDraft(title="x" * 101, due_at=NOW + 60),
        TaskDraft(title="ok", due_at=None),
        TaskDraft(title="ok", due_at=float("nan")),
    ],
)
def test_validate_draft_rejects(draft: TaskDraft) -> None:
    with pytest.raises(TaskValidationError):
        validate_draft(draft, now_ts=NOW)


def test_title_at_limit_is_fine() -> None:
    assert validate_draft(TaskDraft(title="x" * 100, due_at=NOW + 1), now_ts=NOW).title == "x" * 100


def test_reminder_fire_time_is_due_minus_lead() -> None:
    reminder = Reminder.create(task_id=1, due_at=NOW + 3600, lead_minutes=15, now_ts=NOW)
    assert reminder.fire_at == NOW + 3600 - 15 * 60
    assert reminder.shifted(300).fire_at == reminder.fire_at + 300
    assert reminder.shifted(300).lead_minutes == 15


def test_reminder_in_the_past_is_rejected_not_clamped() -> None:
    with pytest.raises(StaleReminderError) as exc:
        Reminder.create(task_id=7, due_at=NOW + 600, lead_minutes=10, now_ts=NOW)
    assert exc.value.task_id == 7
    assert exc.value.fire_at == NOW


@pytest.mark.parametrize("lead", [0, -5, True])
def test_reminder_lead_must_be_positive_int(lead) -> None:
    with pytest.raises(TaskValidationError):
        Reminder.create(task_id=1, due_at=NOW + 3600, lead_minutes=lead, now_ts=NOW)


def test_display_helpers() -> None:
    assert describe_lead(15) == "15 minutes before"
    assert describe_lead(120) == "2 hour(s) before"
    assert describe_lead(2880) == "2 day(s) before"
    assert relative_due(NOW - 1, NOW) == "overdue"
    assert relative_due(NOW + 600, NOW) == "in 10 min"
    assert relative_due(NOW + 7200, NOW) == "in 2h"
