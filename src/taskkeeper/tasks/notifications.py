# src/taskkeeper/tasks/notifications.py

from __future__ import annotations

"""
Reminder scheduling.

Maps each task to zero or one pending local notification:
- no reminder when the task has no due date, the date has passed, or it is completed
- otherwise exactly one reminder keyed by the task id, firing at due_at

Scheduling is advisory. Permission denial and host errors degrade to
"no reminder" and are never raised to the caller.
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from ..core.ports import Clock, NotificationHost, OutboundMessenger
from .task_models import ScheduleOutcome, Task

logger = logging.getLogger(__name__)

DEFAULT_REMINDER_BODY = "This task is due now."


def reminder_key(task_id: str) -> str:
    return f"task:{task_id}"


def is_reminder_eligible(task: Task, now: float) -> bool:
    if task.completed or task.due_at is None:
        return False
    return task.due_at > now


class NotificationScheduler:
    """
    Keeps the host's pending reminders in line with task state.

    Only identifiers are tracked here (task id -> fire time); task content
    is owned by the lifecycle manager.
    """

    def __init__(self, host: NotificationHost, clock: Clock) -> None:
        self._host = host
        self._clock = clock
        self._permission: bool | None = None
        self._known: dict[str, float] = {}

    @property
    def permission_granted(self) -> bool:
        return bool(self._permission)

    def pending(self) -> dict[str, float]:
        """Snapshot of reminders still in the future; passed ones are forgotten."""
        now = self._clock.now()
        for task_id in [k for k, fire_at in self._known.items() if fire_at <= now]:
            del self._known[task_id]
        return dict(self._known)

    def request_permission(self) -> bool:
        """Ask the host once; later calls return the cached answer."""
        if self._permission is not None:
            return self._permission
        try:
            granted = bool(self._host.request_permission())
        except Exception:
            logger.exception("Notification permission request failed; treating as denied")
            granted = False
        self._permission = granted
        logger.info("Notification permission %s", "granted" if granted else "denied")
        return granted

    def schedule_for_task(self, task: Task) -> ScheduleOutcome:
        now = self._clock.now()
        if not is_reminder_eligible(task, now):
            return ScheduleOutcome.SKIPPED
        if not self.request_permission():
            return ScheduleOutcome.DENIED

        key = reminder_key(task.id)
        try:
            # Replace any previous reminder for this id.
            self._host.cancel(key)
            self._known.pop(task.id, None)
            self._host.schedule(
                key,
                title=task.title,
                body=task.notes or DEFAULT_REMINDER_BODY,
                fire_at=float(task.due_at),  # type: ignore[arg-type]
            )
        except Exception:
            logger.exception("schedule failed task_id=%s", task.id)
            return ScheduleOutcome.FAILED

        self._known[task.id] = float(task.due_at)  # type: ignore[arg-type]
        logger.debug("Reminder scheduled task_id=%s fire_at=%s", task.id, task.due_at)
        return ScheduleOutcome.SCHEDULED

    def cancel_for_task(self, task_id: str) -> ScheduleOutcome:
        had = self._known.pop(task_id, None) is not None
        try:
            self._host.cancel(reminder_key(task_id))
        except Exception:
            logger.exception("cancel failed task_id=%s", task_id)
            return ScheduleOutcome.FAILED
        if had:
            logger.debug("Reminder cancelled task_id=%s", task_id)
        return ScheduleOutcome.CANCELLED

    def reconcile(self, task: Task) -> ScheduleOutcome:
        """Schedule or cancel purely from the task's current due_at/completed."""
        if is_reminder_eligible(task, self._clock.now()):
            return self.schedule_for_task(task)
        self.cancel_for_task(task.id)
        return ScheduleOutcome.SKIPPED

    def reschedule_all(self, tasks: Iterable[Task]) -> int:
        """
        Drop every known reminder and rebuild the set from `tasks`.

        Used at startup to repair drift (e.g. reminders whose date passed
        while the app was not running). Returns how many were scheduled.
        """
        items = list(tasks)
        stale = set(self._known) | {t.id for t in items}
        for task_id in stale:
            self.cancel_for_task(task_id)
        self._known.clear()

        scheduled = 0
        for task in items:
            if self.schedule_for_task(task) == ScheduleOutcome.SCHEDULED:
                scheduled += 1
        logger.info("Rescheduled reminders: %d of %d tasks", scheduled, len(items))
        return scheduled


@dataclass(slots=True, frozen=True)
class Reminder:
    key: str
    title: str
    body: str
    fire_at: float

    @property
    def task_id(self) -> str:
        return self.key.split(":", 1)[1] if ":" in self.key else self.key


class LocalNotificationHost:
    """
    In-process notification host.

    Holds pending reminders in memory; run_reminder_loop delivers them.
    """

    def __init__(self, *, enabled: bool = True) -> None:
        self._enabled = enabled
        self._pending: dict[str, Reminder] = {}

    def request_permission(self) -> bool:
        return self._enabled

    def schedule(self, key: str, *, title: str, body: str, fire_at: float) -> None:
        self._pending[key] = Reminder(key=key, title=title, body=body, fire_at=float(fire_at))

    def cancel(self, key: str) -> None:
        self._pending.pop(key, None)

    def pending(self) -> list[Reminder]:
        return sorted(self._pending.values(), key=lambda r: r.fire_at)

    def pop_due(self, now: float) -> list[Reminder]:
        due = [r for r in self._pending.values() if r.fire_at <= now]
        for r in due:
            self._pending.pop(r.key, None)
        due.sort(key=lambda r: r.fire_at)
        return due


def format_reminder(reminder: Reminder) -> str:
    return f"Reminder: {reminder.title} - {reminder.body}"


async def run_reminder_loop(
        host: LocalNotificationHost,
        messenger: OutboundMessenger,
        clock: Clock,
        *,
        interval_seconds: float = 15.0,
) -> None:
    """
    Simple polling delivery loop.

    Every interval_seconds:
    - pop reminders whose fire time has come
    - send each via messenger.send_text(...)

    A failed send is logged and dropped (delivery is not guaranteed).
    To stop the loop, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        try:
            due = host.pop_due(clock.now())
        except Exception:
            logger.exception("pop_due failed")
            due = []

        for reminder in due:
            try:
                await messenger.send_text(text=format_reminder(reminder))
                logger.info("Reminder delivered task_id=%s", reminder.task_id)
            except Exception:
                logger.exception("Reminder delivery failed task_id=%s", reminder.task_id)

        await asyncio.sleep(sleep_s)
