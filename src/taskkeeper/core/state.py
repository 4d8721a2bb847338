# src/taskkeeper/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..tasks.notifications import LocalNotificationHost, NotificationScheduler
from ..tasks.task_lifecycle import TaskManager
from ..tasks.task_models import TaskFilter, UserProfile
from ..tasks.task_store import TaskStore
from ..tasks.task_views import TaskStats
from .ports import Clock


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    clock: Clock
    task_store: TaskStore
    notification_host: LocalNotificationHost
    notifier: NotificationScheduler
    tasks: TaskManager

    current_filter: TaskFilter = TaskFilter.ALL
    dark_mode: bool = False
    profile: UserProfile | None = None
    # Refreshed by the "tasks changed" subscription set up in bootstrap.
    stats: TaskStats | None = None
