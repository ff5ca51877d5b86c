# src/taskbell/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..notifications.notification_models import Toast, ToastKind

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("/exit", "/quit")

_TOAST_TAGS = {
    ToastKind.SUCCESS: "OK",
    ToastKind.INFO: "INFO",
    ToastKind.WARNING: "WARN",
    ToastKind.ERROR: "ERROR",
}


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleToastSink:
    """Renders toasts as timestamped console lines; hiding is silent unless the user closed it."""

    def show(self, toast: Toast) -> None:
        tag = _TOAST_TAGS.get(toast.kind, toast.kind.value.upper())
        text = f"[{tag}] {toast.title}"
        if toast.message:
            text += f" {toast.message}"
        print_ts(text)

    def hide(self, toast: Toast) -> None:
        logger.debug("Toast hidden id=%s reason=%s", toast.id, toast.dismiss_reason)


class ConsoleInput:
    """
    Reads stdin lines on a daemon thread and hands them to the event loop.

    The loop keeps running (timers fire, toasts expire) while the user is
    typing. None on the queue means EOF.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._thread = threading.Thread(target=self._run, name="console-stdin", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while True:
            line = sys.stdin.readline()
            if not line:
                self._loop.call_soon_threadsafe(self._queue.put_nowait, None)
                return
            self._loop.call_soon_threadsafe(self._queue.put_nowait, line.rstrip("\r\n"))

    async def readline(self, prompt: str = "") -> str | None:
        if prompt:
            print(prompt, end="", flush=True)
        return await self._queue.get()

    async def confirm(self, question: str) -> bool:
        answer = await self.readline(f"[{_ts_local()}] {question}")
        return (answer or "").strip().lower() in ("y", "yes")


async def run_console_loop(state: AppState, console: ConsoleInput) -> None:
    logger.info("Console connector started (backend=%s).", getattr(state.settings, "backend", "?"))
    print_ts("[CONSOLE] Type /help for commands, /list for your tasks. Use /exit to quit.\n")

    while True:
        line = await console.readline(">>> ")
        if line is None:
            logger.info("Console EOF received, exiting.")
            break

        user_input = line.strip()
        if not user_input:
            continue

        if user_input.lower() in EXIT_COMMANDS:
            logger.info("Console exit command received.")
            break

        try:
            reply = await command_registry.handle(state, user_input, emit=print_ts)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is None:
            reply = "Not a command. Use /help to list available commands."
        print_ts(reply)

    logger.info("Console connector finished.")
