# src/taskbell/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, loads tasks and re-arms reminders,
then runs the console connector (or just waits for reminders when the
console is disabled).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from ..cli.bootstrap import authenticate, create_initial_state, shutdown
from ..config import get_settings
from ..connectors.console_connector import ConsoleInput, ConsoleToastSink, print_ts, run_console_loop
from ..logging_setup import setup_logging
from ..tasks import task_api

logger = logging.getLogger(__name__)

BANNER = "[NOTIFY] Desktop notifications are off. /notify enable to turn them on, /notify dismiss to hide this."


async def _run(settings) -> None:
    console = ConsoleInput() if settings.console_enabled else None

    # IMPORTANT: reuse same settings object
    state = create_initial_state(
        settings=settings,
        toast_sink=ConsoleToastSink(),
        confirm=console.confirm if console is not None else None,
        echo=print_ts,
    )

    try:
        await authenticate(state)
        if await task_api.load_tasks(state):
            armed = task_api.reactivate(state)
            logger.info("Session ready: %s task(s), %s reminder(s) armed.", len(state.store.tasks), armed)

        if state.gate.banner_visible():
            print_ts(BANNER)

        if console is not None:
            await run_console_loop(state, console)
            return

        logger.info("Console disabled. Waiting for reminders. Press Ctrl+C to stop.")
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            # Some platforms (Windows) have no loop signal handlers.
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(signum, stop.set)
        await stop.wait()
    finally:
        await shutdown(state)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_file = setup_logging(log_dir=settings.data_dir, console_level=console_level)
    logger.info("Starting %s (backend=%s, log=%s)...", settings.app_name, settings.backend, log_file)

    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt, shutting down...")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
