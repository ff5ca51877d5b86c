# src/taskbell/cli/commands.py

from __future__ import annotations

import contextlib
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from ..core.state import AppState
from ..notifications.notification_models import MarkDone, Snooze
from ..tasks import task_api
from ..tasks.task_models import SharedTask, Task, TaskDraft, describe_lead, format_due, relative_due

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]

logger = logging.getLogger(__name__)

DUE_FORMAT = "%Y-%m-%d %H:%M"


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /list, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return await handler(state, args, emit)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----


def _parse_int(raw: str) -> int | None:
    try:
        return int(raw.lstrip("#"))
    except ValueError:
        return None


def _parse_due(date_part: str, time_part: str) -> float | None:
    try:
        return datetime.strptime(f"{date_part} {time_part}", DUE_FORMAT).timestamp()
    except ValueError:
        return None


def _parse_draft(args: list[str]) -> TaskDraft | str:
    """
    <YYYY-MM-DD> <HH:MM> <title> [| description]

    Returns a draft or a usage error string.
    """
    if len(args) < 3:
        return "Expected: <YYYY-MM-DD> <HH:MM> <title> [| description]"
    due_at = _parse_due(args[0], args[1])
    if due_at is None:
        return f"Invalid due date/time: {args[0]} {args[1]} (expected YYYY-MM-DD HH:MM)."

    title, _, description = " ".join(args[2:]).partition("|")
    return TaskDraft(title=title.strip(), description=description.strip(), due_at=due_at)


def _format_task(task: Task, now_ts: float) -> str:
    mark = "x" if task.completed else " "
    line = f"#{task.id} [{mark}] {task.title}  due {format_due(task.due_at)}"
    if not task.completed:
        line += f" ({relative_due(task.due_at, now_ts)})"
    if task.reminder is not None:
        line += f"  reminder: {describe_lead(task.reminder.lead_minutes)} ({format_due(task.reminder.fire_at)})"
    if task.description:
        line += f"\n      {task.description}"
    return line


def _say(emit: CommandEmitter | None, text: str) -> None:
    if emit:
        with contextlib.suppress(Exception):
            emit(text)


# ---- commands ----


async def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    settings = state.settings
    tasks = state.store.tasks
    open_count = sum(1 for t in tasks if not t.completed)
    backend = getattr(settings, "backend", "?")
    where = settings.api_base_url if backend == "http" else str(settings.tasks_db_path)
    return (
        "Status:\n"
        f"  Backend: {backend} ({where})\n"
        f"  Tasks: {len(tasks)} ({open_count} open)\n"
        f"  Pending reminders: {len(state.scheduler.pending_ids)}\n"
        f"  Notifications: {state.gate.status().value}\n"
        f"  Sound: {'ON' if getattr(settings, 'sound_enabled', False) else 'OFF'}"
    )


async def cmd_list(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /list      -> open tasks
    /list all  -> include completed tasks
    """
    show_all = bool(args) and args[0].lower() == "all"
    tasks = [t for t in state.store.tasks if show_all or not t.completed]
    if not tasks:
        return "No tasks." if show_all else "No open tasks. Use /list all to include completed ones."

    now_ts = state.clock.now()
    lines = ["Tasks:"]
    lines.extend(f"  {_format_task(t, now_ts)}" for t in tasks)
    return "\n".join(lines)


async def cmd_add(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    draft = _parse_draft(args)
    if isinstance(draft, str):
        return f"{draft}\nUsage: /add <YYYY-MM-DD> <HH:MM> <title> [| description]"

    task = await task_api.create_task(state, draft)
    if task is None:
        return "Task was not created."
    return f"Created #{task.id}: {task.title} (due {format_due(task.due_at)})."


async def cmd_edit(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    usage = "Usage: /edit <id> <YYYY-MM-DD> <HH:MM> <title> [| description]"
    if not args:
        return usage
    task_id = _parse_int(args[0])
    if task_id is None:
        return usage

    draft = _parse_draft(args[1:])
    if isinstance(draft, str):
        return f"{draft}\n{usage}"

    current = state.store.get(task_id)
    if current is not None:
        draft = TaskDraft(
            title=draft.title,
            description=draft.description,
            due_at=draft.due_at,
            completed=current.completed,
        )

    task = await task_api.update_task(state, task_id, draft)
    if task is None:
        return f"Task #{task_id} was not updated."
    return f"Updated #{task.id}: {task.title} (due {format_due(task.due_at)})."


async def cmd_done(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """Toggle completion: /done <id>."""
    task_id = _parse_int(args[0]) if args else None
    if task_id is None:
        return "Usage: /done <id>"

    task = await task_api.toggle_task(state, task_id)
    if task is None:
        return f"Task #{task_id} was not changed."
    return f"#{task.id} is now {'completed' if task.completed else 'open'}."


async def cmd_rm(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    task_id = _parse_int(args[0]) if args else None
    if task_id is None:
        return "Usage: /rm <id>"

    if not await task_api.remove_task(state, task_id):
        return f"Task #{task_id} was not deleted."
    return f"Deleted #{task_id}."


async def cmd_remind(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/remind <id> <minutes before due>"""
    if len(args) < 2:
        return "Usage: /remind <id> <minutes before due>"
    task_id = _parse_int(args[0])
    lead = _parse_int(args[1])
    if task_id is None or lead is None:
        return "Usage: /remind <id> <minutes before due>"

    task = task_api.set_reminder(state, task_id, lead)
    if task is None or task.reminder is None:
        return f"No reminder set for #{task_id}."
    return f"Reminder for #{task.id} at {format_due(task.reminder.fire_at)}."


async def cmd_unremind(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    task_id = _parse_int(args[0]) if args else None
    if task_id is None:
        return "Usage: /unremind <id>"

    if not task_api.clear_reminder(state, task_id):
        return f"Task #{task_id} not found."
    return f"Reminder for #{task_id} removed."


async def cmd_snooze(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/snooze <id> [minutes]  (default: the configured snooze duration)"""
    task_id = _parse_int(args[0]) if args else None
    if task_id is None:
        return "Usage: /snooze <id> [minutes]"

    minutes = state.dispatcher.snooze_minutes
    if len(args) > 1:
        parsed = _parse_int(args[1])
        if parsed is None:
            return "Usage: /snooze <id> [minutes]"
        minutes = parsed

    task = await task_api.snooze_task(state, task_id, minutes)
    if task is None:
        return f"Task #{task_id} was not snoozed."
    return f"#{task.id} now due {format_due(task.due_at)}."


async def cmd_act(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    Answer the latest open reminder notification:
    /act done [id]    -> mark the task as done
    /act snooze [id]  -> snooze it
    """
    usage = "Usage: /act done [id] | /act snooze [id]"
    if not args:
        return usage

    sub = args[0].lower()
    task_id = None
    if len(args) > 1:
        task_id = _parse_int(args[1])
        if task_id is None:
            return usage

    if sub in ("done", "d"):
        action = MarkDone()
    elif sub in ("snooze", "s"):
        action = Snooze(state.dispatcher.snooze_minutes)
    else:
        return usage

    if state.dispatcher.latest_open(task_id) is None:
        return "No open reminder to act on."

    result = await state.dispatcher.act(action, task_id)
    if result is None or result.task is None:
        return "Action was not applied."
    return f"{action.label}: #{result.task.id}"


async def cmd_notify(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /notify          -> show permission state
    /notify enable   -> ask for desktop notification permission
    /notify dismiss  -> hide the permission banner for good
    """
    if not args:
        status = state.gate.status()
        hint = " Use /notify enable to turn them on." if state.gate.banner_visible() else ""
        return f"Desktop notifications: {status.value}.{hint}"

    sub = args[0].lower()
    if sub in ("enable", "on"):
        _say(emit, "[NOTIFY] Requesting notification permission...")
        result = await task_api.enable_notifications(state)
        return f"Desktop notifications: {result.value}."

    if sub == "dismiss":
        state.gate.dismiss_banner()
        return "Notification banner dismissed."

    return "Usage: /notify [enable|dismiss]"


async def cmd_reload(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not await task_api.load_tasks(state):
        return "Reload failed; task list is empty."
    armed = task_api.reactivate(state)
    logger.debug("Reload re-armed %s reminder(s)", armed)
    return f"Loaded {len(state.store.tasks)} task(s), {armed} reminder(s) armed."


def _format_share(share: SharedTask, *, sent: bool) -> str:
    direction = "to" if sent else "from"
    peer = f"{share.peer_name} <{share.peer_email}>" if share.peer_name else share.peer_email
    return (
        f"[{share.share_id}] {share.task.title}  due {format_due(share.task.due_at)}"
        f"  {direction} {peer}  ({share.status.value})"
    )


async def cmd_share(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    usage = "Usage: /share <id> <email>"
    if len(args) != 2:
        return usage
    task_id = _parse_int(args[0])
    if task_id is None:
        return usage
    if not await task_api.share_task(state, task_id, args[1]):
        return "Task was not shared."
    return f"Shared #{task_id} with {args[1]}."


async def cmd_shared(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /shared                      -> invitations you received
    /shared sent                 -> invitations you sent
    /shared accept <share id>    -> accept an invitation
    /shared decline <share id>   -> decline it
    """
    usage = "Usage: /shared [sent] | /shared accept|decline <share id>"
    sub = args[0].lower() if args else "received"

    if sub in ("accept", "decline"):
        share_id = _parse_int(args[1]) if len(args) == 2 else None
        if share_id is None:
            return usage
        accept = sub == "accept"
        if not await task_api.respond_share(state, share_id, accept):
            return "Invitation was not answered."
        return f"Invitation {share_id} {'accepted' if accept else 'declined'}."

    if sub not in ("received", "sent") or len(args) > 1:
        return usage

    sent = sub == "sent"
    shares = await task_api.list_shares(state, sent=sent)
    if shares is None:
        return "Could not load shared tasks."
    if not shares:
        return "No shared tasks."
    return "\n".join(_format_share(s, sent=sent) for s in shares)


async def cmd_register(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /register code <email>                          -> mail a verification code
    /register <email> <code> <password> <name...>   -> create the account
    """
    usage = "Usage: /register code <email> | /register <email> <code> <password> <name>"
    if len(args) == 2 and args[0].lower() == "code":
        if not await task_api.send_code(state, args[1]):
            return "Code was not sent."
        return f"Verification code sent to {args[1]}."

    if len(args) < 4:
        return usage
    email, code, password = args[0], args[1], args[2]
    name = " ".join(args[3:])
    if not await task_api.register_account(state, name=name, email=email, password=password, code=code):
        return "Registration failed."
    return f"Account created for {email}. Verify your e-mail, then /login."


async def cmd_login(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 2:
        return "Usage: /login <email> <password>"
    if not await task_api.login(state, args[0], args[1]):
        return "Login failed."
    return f"Logged in as {args[0]}: {len(state.store.tasks)} task(s)."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show backend, task counts and notification state.")
registry.register("list", cmd_list, help_text="List tasks: /list | /list all.", aliases=["ls"])
registry.register("add", cmd_add, help_text="Create a task: /add <YYYY-MM-DD> <HH:MM> <title> [| description].")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> <YYYY-MM-DD> <HH:MM> <title> [| description].")
registry.register("done", cmd_done, help_text="Toggle completion: /done <id>.")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.", aliases=["del"])
registry.register("remind", cmd_remind, help_text="Set a reminder: /remind <id> <minutes before due>.")
registry.register("unremind", cmd_unremind, help_text="Remove a reminder: /unremind <id>.")
registry.register("snooze", cmd_snooze, help_text="Push a task back: /snooze <id> [minutes].")
registry.register("act", cmd_act, help_text="Answer a reminder: /act done [id] | /act snooze [id].")
registry.register("notify", cmd_notify, help_text="Desktop notifications: /notify [enable|dismiss].")
registry.register("reload", cmd_reload, help_text="Reload tasks and re-arm reminders.")
registry.register("share", cmd_share, help_text="Share a task: /share <id> <email> (HTTP backend).")
registry.register("shared", cmd_shared, help_text="Shared tasks: /shared [sent] | /shared accept|decline <share id>.")
registry.register("register", cmd_register, help_text="Create an account: /register code <email>, then /register <email> <code> <password> <name>.")
registry.register("login", cmd_login, help_text="Switch account: /login <email> <password>.")
