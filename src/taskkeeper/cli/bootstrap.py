# src/taskkeeper/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires store, notification host, scheduler, undo slot and manager into AppState,
- subscribes the state to task changes so derived stats stay current.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.clock import AsyncioTimers, SystemClock
from ..core.ports import Clock, TimerFactory
from ..core.state import AppState
from ..tasks.notifications import LocalNotificationHost, NotificationScheduler
from ..tasks.task_lifecycle import TaskManager
from ..tasks.task_models import TaskFilter, UserProfile
from ..tasks.task_store import TaskStore
from ..tasks.task_views import compute_stats
from ..tasks.undo import UndoDeleteSlot

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(
    *,
    settings=None,
    clock: Clock | None = None,
    timers: TimerFactory | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings, clock and timers injectable makes the app easy to test
    and avoids hidden global config reads. If settings is None, falls back
    to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    clock = clock or SystemClock()
    timers = timers or AsyncioTimers()

    store = TaskStore(settings.tasks_db_path)
    host = LocalNotificationHost(enabled=bool(getattr(settings, "notifications_enabled", True)))
    notifier = NotificationScheduler(host, clock)

    undo_slot = UndoDeleteSlot(
        timers,
        clock,
        window_seconds=float(getattr(settings, "undo_window_seconds", 8.0)),
    )
    manager = TaskManager(store, notifier, undo_slot, clock)

    state = AppState(
        settings=settings,
        clock=clock,
        task_store=store,
        notification_host=host,
        notifier=notifier,
        tasks=manager,
        current_filter=TaskFilter.parse(getattr(settings, "default_filter", None)),
        dark_mode=store.load_dark_mode(),
        profile=store.load_profile(),
    )

    def _on_tasks_changed(snapshot) -> None:
        state.stats = compute_stats(snapshot)

    manager.subscribe(_on_tasks_changed)
    return state


def ensure_profile(state: AppState, name: str) -> UserProfile:
    """Create (first launch) or rename the single user profile."""
    clean = (name or "").strip()
    if not clean:
        raise ValueError("name is required")

    if state.profile is None:
        now = state.clock.now()
        profile = UserProfile(name=clean, created_at=now, meta={"onboarded_at": now})
    else:
        profile = UserProfile(name=clean, created_at=state.profile.created_at, meta=dict(state.profile.meta))

    result = state.task_store.save_profile(profile)
    if not result.ok:
        logger.warning("Profile not persisted: %s", result.error)
    state.profile = profile
    return profile


def set_dark_mode(state: AppState, enabled: bool) -> None:
    state.dark_mode = bool(enabled)
    result = state.task_store.save_dark_mode(state.dark_mode)
    if not result.ok:
        logger.warning("Dark mode preference not persisted: %s", result.error)
