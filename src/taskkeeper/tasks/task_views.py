# src/taskkeeper/tasks/task_views.py

from __future__ import annotations

"""
Read-only projections of the task collection.

Everything here is a pure function of its inputs; "now" is always passed in.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from functools import cmp_to_key

from .task_models import Task, TaskFilter


def is_same_day(a_ts: float, b_ts: float) -> bool:
    """True when both timestamps fall on the same local calendar day."""
    return datetime.fromtimestamp(a_ts).date() == datetime.fromtimestamp(b_ts).date()


def matches_filter(task: Task, selector: TaskFilter, now: float) -> bool:
    if selector == TaskFilter.ALL:
        return True
    if selector == TaskFilter.COMPLETED:
        return task.completed
    if task.completed or task.due_at is None:
        return False
    if selector == TaskFilter.TODAY:
        return is_same_day(task.due_at, now)
    if selector == TaskFilter.UPCOMING:
        return task.due_at > now and not is_same_day(task.due_at, now)
    return False


def _compare(a: Task, b: Task) -> int:
    if a.priority.rank != b.priority.rank:
        return a.priority.rank - b.priority.rank
    if a.due_at is not None and b.due_at is not None:
        return (a.due_at > b.due_at) - (a.due_at < b.due_at)
    # Newest first when at least one side has no due date.
    return (a.created_at < b.created_at) - (a.created_at > b.created_at)


def sort_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Priority (high first), then due date ascending, else newest created first."""
    return sorted(tasks, key=cmp_to_key(_compare))


def project(tasks: Iterable[Task], selector: TaskFilter | str, *, now: float) -> list[Task]:
    sel = TaskFilter.parse(selector) if isinstance(selector, str) else selector
    return sort_tasks(t for t in tasks if matches_filter(t, sel, now))


@dataclass(slots=True, frozen=True)
class TaskStats:
    total: int
    completed: int
    pending: int
    percent: int


def compute_stats(tasks: Iterable[Task]) -> TaskStats:
    items = list(tasks)
    total = len(items)
    done = sum(1 for t in items if t.completed)
    percent = math.floor(done * 100 / total + 0.5) if total else 0
    return TaskStats(total=total, completed=done, pending=total - done, percent=percent)
