# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskkeeper.cli.bootstrap import create_initial_state
from taskkeeper.core.state import AppState
from taskkeeper.tasks.notifications import NotificationScheduler
from taskkeeper.tasks.task_lifecycle import TaskManager
from taskkeeper.tasks.task_store import TaskStore
from taskkeeper.tasks.undo import UndoDeleteSlot

from .fakes import NOW, ManualClock, ManualTimers, RecordingNotificationHost


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock(NOW)


@pytest.fixture()
def timers(clock: ManualClock) -> ManualTimers:
    return ManualTimers(clock)


@pytest.fixture()
def host() -> RecordingNotificationHost:
    return RecordingNotificationHost()


@pytest.fixture()
def store(tmp_path: Path) -> TaskStore:
    return TaskStore(tmp_path / "tasks.sqlite3")


@pytest.fixture()
def notifier(host: RecordingNotificationHost, clock: ManualClock) -> NotificationScheduler:
    return NotificationScheduler(host, clock)


@pytest.fixture()
def undo_slot(timers: ManualTimers, clock: ManualClock) -> UndoDeleteSlot:
    return UndoDeleteSlot(timers, clock, window_seconds=8.0)


@pytest.fixture()
def manager(
    store: TaskStore,
    notifier: NotificationScheduler,
    undo_slot: UndoDeleteSlot,
    clock: ManualClock,
) -> TaskManager:
    m = TaskManager(store, notifier, undo_slot, clock)
    m.start()
    return m


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskkeeper-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        undo_window_seconds=8.0,
        notifications_enabled=True,
        reminder_poll_seconds=0.01,
        default_filter="all",
    )


@pytest.fixture()
def state(settings: SimpleNamespace, clock: ManualClock, timers: ManualTimers) -> AppState:
    """AppState wired with a real SQLite store and a manual clock/timers."""
    st = create_initial_state(settings=settings, clock=clock, timers=timers)
    st.tasks.start()
    return st
