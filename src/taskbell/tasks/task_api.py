# src/taskbell/tasks/task_api.py

from __future__ import annotations

import logging
import re

from ..core.errors import PersistenceError, TaskValidationError
from ..core.state import AppState
from ..notifications.notification_models import PermissionState, ToastKind
from ..persistence.http_api import HttpTaskApi
from .task_models import MutationResult, SharedTask, Task, TaskDraft, describe_lead
from .task_scheduler import ScheduleOutcome

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _toast(state: AppState, kind: ToastKind, title: str, message: str) -> None:
    state.toasts.show(kind, title, message)


def _apply(state: AppState, result: MutationResult) -> None:
    """Drive the scheduler with the store's commands and surface warnings."""
    outcomes = state.scheduler.apply(result.commands)
    for warning in result.warnings:
        _toast(state, ToastKind.WARNING, "Reminder", warning)
    if ScheduleOutcome.STALE in outcomes:
        _toast(state, ToastKind.WARNING, "Reminder not set", "The reminder time has already passed.")


def _validation_failed(state: AppState, e: TaskValidationError) -> None:
    logger.info("Validation failed: %s", e)
    _toast(state, ToastKind.ERROR, "Validation error", "\n".join(e.errors))


def _unknown_task(state: AppState, task_id: int) -> None:
    _toast(state, ToastKind.WARNING, "Task not found", f"No task with id {task_id}.")


async def load_tasks(state: AppState) -> bool:
    """Fetch the task set; on failure the session starts empty and the user is told."""
    try:
        await state.store.load()
    except PersistenceError:
        # The store is empty now; no timer may outlive its reminder.
        state.scheduler.cancel_all()
        _toast(state, ToastKind.ERROR, "Error", "Could not load tasks from the server.")
        return False
    return True


def reactivate(state: AppState) -> int:
    """Session (re)activation: re-arm every still-valid reminder."""
    return state.scheduler.reschedule_all(state.store.tasks)


async def create_task(state: AppState, draft: TaskDraft) -> Task | None:
    try:
        result = await state.store.create(draft)
    except TaskValidationError as e:
        _validation_failed(state, e)
        return None
    except PersistenceError:
        _toast(state, ToastKind.ERROR, "Error", "Could not create the task.")
        return None
    _apply(state, result)
    _toast(state, ToastKind.SUCCESS, "Task created!", "New task added. Use /remind to set a reminder.")
    return result.task


async def update_task(state: AppState, task_id: int, draft: TaskDraft) -> Task | None:
    try:
        result = await state.store.update(task_id, draft)
    except KeyError:
        _unknown_task(state, task_id)
        return None
    except TaskValidationError as e:
        _validation_failed(state, e)
        return None
    except PersistenceError:
        _toast(state, ToastKind.ERROR, "Error", "Could not update the task.")
        return None
    _apply(state, result)
    _toast(state, ToastKind.SUCCESS, "Task updated!", "Task saved.")
    return result.task


async def remove_task(state: AppState, task_id: int) -> bool:
    try:
        result = await state.store.remove(task_id)
    except KeyError:
        _unknown_task(state, task_id)
        return False
    except PersistenceError:
        _toast(state, ToastKind.ERROR, "Error", "Could not delete the task.")
        return False
    _apply(state, result)
    _toast(state, ToastKind.SUCCESS, "Task deleted!", "Task removed.")
    return True


async def toggle_task(state: AppState, task_id: int) -> Task | None:
    try:
        result = await state.store.toggle_complete(task_id)
    except KeyError:
        _unknown_task(state, task_id)
        return None
    except PersistenceError:
        _toast(state, ToastKind.ERROR, "Error", "Could not update the task.")
        return None
    _apply(state, result)
    task = result.task
    if task is not None:
        _toast(state, ToastKind.INFO, "Task completed!" if task.completed else "Task reopened!", task.title)
    return task


async def snooze_task(state: AppState, task_id: int, minutes: int) -> Task | None:
    try:
        result = await state.store.snooze(task_id, minutes)
    except KeyError:
        _unknown_task(state, task_id)
        return None
    except TaskValidationError as e:
        _validation_failed(state, e)
        return None
    except PersistenceError:
        _toast(state, ToastKind.ERROR, "Error", "Could not snooze the task.")
        return None
    _apply(state, result)
    _toast(state, ToastKind.INFO, "Task snoozed!", f"Snoozed for {minutes} minutes.")
    return result.task


def set_reminder(state: AppState, task_id: int, lead_minutes: int) -> Task | None:
    """Returns the task with its new reminder, or None if nothing was set."""
    try:
        result = state.store.set_reminder(task_id, lead_minutes)
    except KeyError:
        _unknown_task(state, task_id)
        return None
    except TaskValidationError as e:
        _validation_failed(state, e)
        return None

    _apply(state, result)
    task = result.task
    if task is None or task.reminder is None:
        return None
    _toast(state, ToastKind.SUCCESS, "Reminder set!", f"You will be reminded {describe_lead(lead_minutes)}.")
    return task


def clear_reminder(state: AppState, task_id: int) -> bool:
    try:
        result = state.store.clear_reminder(task_id)
    except KeyError:
        _unknown_task(state, task_id)
        return False
    _apply(state, result)
    return True


async def enable_notifications(state: AppState) -> PermissionState:
    try:
        result = await state.gate.request()
    except Exception:
        logger.exception("Notification permission request failed")
        _toast(state, ToastKind.ERROR, "Error", "Could not request notification permission.")
        return state.gate.status()

    if result == PermissionState.GRANTED:
        _toast(state, ToastKind.SUCCESS, "Notifications enabled!", "You will get task reminders.")
    elif result == PermissionState.DENIED:
        _toast(state, ToastKind.WARNING, "Permission denied", "Reminders will show up as in-app toasts.")
    elif result == PermissionState.UNSUPPORTED:
        _toast(state, ToastKind.WARNING, "Not supported", "Desktop notifications are not available here.")
    return result


# ---- accounts and sharing (HTTP backend only) ----


def _remote(state: AppState) -> HttpTaskApi | None:
    if isinstance(state.api, HttpTaskApi):
        return state.api
    _toast(state, ToastKind.WARNING, "Not available", "Accounts and sharing need the HTTP backend.")
    return None


def _check_email(state: AppState, email: str) -> bool:
    if EMAIL_RE.match(email):
        return True
    _toast(state, ToastKind.ERROR, "Validation error", f"Invalid e-mail: {email}")
    return False


async def send_code(state: AppState, email: str) -> bool:
    api = _remote(state)
    if api is None or not _check_email(state, email):
        return False
    try:
        message = await api.send_code(email)
    except PersistenceError:
        logger.exception("send-code failed for %s", email)
        _toast(state, ToastKind.ERROR, "Error", "Could not send the verification code.")
        return False
    _toast(state, ToastKind.INFO, "Code sent!", message or f"Check {email} for the code.")
    return True


async def register_account(state: AppState, *, name: str, email: str, password: str, code: str) -> bool:
    api = _remote(state)
    if api is None or not _check_email(state, email):
        return False
    if not name.strip() or not password or not code:
        _toast(state, ToastKind.ERROR, "Validation error", "Name, password and code are required.")
        return False
    try:
        message = await api.register(name.strip(), email, password, code)
    except PersistenceError:
        logger.exception("Registration failed for %s", email)
        _toast(state, ToastKind.ERROR, "Error", "Registration failed.")
        return False
    _toast(state, ToastKind.SUCCESS, "Account created!", message or "Verify your e-mail, then /login.")
    return True


async def login(state: AppState, email: str, password: str) -> bool:
    """Swap the session to another account: new token, fresh task set, reminders re-armed."""
    api = _remote(state)
    if api is None:
        return False
    try:
        token = await api.login(email, password)
    except PersistenceError:
        logger.exception("Login failed for %s", email)
        _toast(state, ToastKind.ERROR, "Login failed", "Check your e-mail and password.")
        return False
    state.scheduler.cancel_all()
    state.store.auth_token = token
    if not await load_tasks(state):
        return False
    reactivate(state)
    return True


async def share_task(state: AppState, task_id: int, to_email: str) -> bool:
    api = _remote(state)
    if api is None:
        return False
    if state.store.get(task_id) is None:
        _unknown_task(state, task_id)
        return False
    if not _check_email(state, to_email):
        return False
    try:
        message = await api.share_task(state.store.auth_token, task_id, to_email)
    except PersistenceError:
        logger.exception("Sharing task %s with %s failed", task_id, to_email)
        _toast(state, ToastKind.ERROR, "Error", "Could not share the task.")
        return False
    _toast(state, ToastKind.SUCCESS, "Task shared!", message or f"Invitation sent to {to_email}.")
    return True


async def list_shares(state: AppState, *, sent: bool = False) -> list[SharedTask] | None:
    """Received invitations (or sent ones); None when they could not be fetched."""
    api = _remote(state)
    if api is None:
        return None
    token = state.store.auth_token
    try:
        if sent:
            return await api.list_shared_sent(token)
        return await api.list_shared_received(token)
    except PersistenceError:
        logger.exception("Listing shared tasks failed")
        _toast(state, ToastKind.ERROR, "Error", "Could not load shared tasks.")
        return None


async def respond_share(state: AppState, share_id: int, accept: bool) -> bool:
    api = _remote(state)
    if api is None:
        return False
    try:
        message = await api.respond_share(state.store.auth_token, share_id, accept)
    except PersistenceError:
        logger.exception("Answering share %s failed", share_id)
        _toast(state, ToastKind.ERROR, "Error", "Could not answer the invitation.")
        return False
    title = "Share accepted!" if accept else "Share declined."
    _toast(state, ToastKind.INFO, title, message)
    return True
