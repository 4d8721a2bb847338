# src/taskkeeper/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, loads tasks (repairing reminders),
then runs the console REPL on the asyncio loop so undo timers and reminder
delivery share one thread with every task mutation.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _run(settings) -> None:
    state = create_initial_state(settings=settings)
    state.tasks.start()
    try:
        await run_console_loop(state)
    finally:
        pending = state.tasks.undo_slot.pending_task
        if pending is not None:
            logger.info("Exiting with task_id=%s in undo window; deletion is final.", pending.id)
        state.task_store.close()


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/taskkeeper")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "taskkeeper"))

    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt, exiting.")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
