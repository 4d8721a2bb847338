# src/taskkeeper/logging_setup.py

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FILE_NAME = "taskkeeper.log"

# Loggers that talk on every save or reminder poll. On the console they only
# show WARNING and above; the file log keeps everything.
CHATTY_LOGGERS: tuple[str, ...] = (
    "taskkeeper.tasks.task_store",
    "taskkeeper.tasks.notifications",
    "taskkeeper.tasks.undo",
)


class PromptFriendlyFilter(logging.Filter):
    """Console filter: own loggers pass, chatty ones and third parties only when serious."""

    def __init__(self, chatty: Iterable[str] = CHATTY_LOGGERS) -> None:
        super().__init__()
        self._chatty = tuple(chatty)

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith(self._chatty):
            return record.levelno >= logging.WARNING
        if name == "taskkeeper" or name.startswith("taskkeeper."):
            return True
        # py.warnings and any library logger
        return record.levelno >= logging.ERROR


def _formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskkeeper",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    chatty: Iterable[str] = CHATTY_LOGGERS,
) -> Path:
    """
    Route taskkeeper logs to stderr and a size-capped file in `log_dir`.

    The console sits next to the REPL prompt, so it is filtered; the file
    (rotated at `max_bytes`, `backup_count` old files kept) gets everything
    at `file_level`. Replaces handlers already on the root logger, so calling
    it again just reconfigures. Returns the log file path.
    """
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / LOG_FILE_NAME

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    root.setLevel(min(console_level, file_level))

    fmt = _formatter()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(PromptFriendlyFilter(chatty))
    root.addHandler(console)

    rotating = RotatingFileHandler(
        log_file,
        maxBytes=max(0, int(max_bytes)),
        backupCount=max(0, int(backup_count)),
        encoding="utf-8",
    )
    rotating.setLevel(file_level)
    rotating.setFormatter(fmt)
    root.addHandler(rotating)

    logging.captureWarnings(True)
    return log_file
