# src/taskkeeper/connectors/console_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
import threading
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.notifications import run_reminder_loop

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleMessenger:
    """OutboundMessenger that prints delivered reminders to the console."""

    async def send_text(self, *, text: str) -> None:
        _print_ts(f"[REMINDER] {text}")


def _start_stdin_reader(loop: asyncio.AbstractEventLoop, queue: asyncio.Queue[str]) -> threading.Thread:
    """
    Read stdin lines in a daemon thread and hand them to the loop.

    An empty string marks EOF. All command handling stays on the loop thread.
    """

    def _reader() -> None:
        while True:
            try:
                line = sys.stdin.readline()
            except Exception:
                logger.debug("stdin read failed", exc_info=True)
                line = ""
            loop.call_soon_threadsafe(queue.put_nowait, line)
            if not line:
                return

    t = threading.Thread(target=_reader, name="stdin-reader", daemon=True)
    t.start()
    return t


def _prompt(state: AppState) -> str:
    stats = state.stats or state.tasks.stats()
    return f"[{stats.pending} pending] >>> "


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (filter=%s).", state.current_filter.value)
    _print_ts("[CONSOLE] Type a task title to add it. Use /help for commands. Use /exit to quit.")
    if state.profile is None:
        _print_ts("Welcome! Create your profile with /profile <your name>.")
    else:
        _print_ts(f"Hello, {state.profile.name}.")

    loop = asyncio.get_running_loop()
    lines: asyncio.Queue[str] = asyncio.Queue()
    _start_stdin_reader(loop, lines)

    settings = state.settings
    reminders = asyncio.create_task(
        run_reminder_loop(
            state.notification_host,
            ConsoleMessenger(),
            state.clock,
            interval_seconds=float(getattr(settings, "reminder_poll_seconds", 15.0)),
        )
    )

    def emit(text: str) -> None:
        _print_ts(text)

    try:
        while True:
            print(_prompt(state), end="", flush=True)
            raw = await lines.get()
            if not raw:
                logger.info("Console EOF received, exiting.")
                print()
                break

            user_input = raw.strip()
            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            # Plain text is a quick add.
            if not user_input.startswith("/"):
                user_input = f"/add {user_input}"

            try:
                response = command_registry.handle(state, user_input, emit=emit)
            except Exception:
                logger.exception("Command handler crashed.")
                response = "Internal error while handling a command."

            if response is not None:
                _print_ts(response)
    finally:
        reminders.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reminders
        logger.info("Console connector finished.")
