# src/taskbell/core/errors.py

from __future__ import annotations


class TaskValidationError(ValueError):
    """A task draft (or reminder/snooze input) was rejected before reaching the store."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "invalid task")


class PersistenceError(RuntimeError):
    """A call to the persistence API failed. The store never retries."""


class StaleReminderError(ValueError):
    """The computed reminder fire time is not in the future."""

    def __init__(self, task_id: int, fire_at: float) -> None:
        self.task_id = task_id
        self.fire_at = fire_at
        super().__init__(f"reminder for task {task_id} would fire in the past")
