# src/taskkeeper/tasks/task_lifecycle.py

from __future__ import annotations

"""
Task lifecycle manager.

Owns the canonical task list (newest first) and applies every user-driven
transition to it. Each transition is followed by best-effort side effects:
- persist the full collection to the store
- reconcile the reminder for the affected task
- broadcast the new collection to subscribers

Side effects never make an operation fail. The in-memory list stays the
source of truth even when storage or the notification host misbehave.
"""

import logging
from collections.abc import Callable
from dataclasses import replace

from ..core.ports import Clock, TaskRepo
from .notifications import NotificationScheduler
from .task_models import EffectResult, Task, TaskFilter, UnknownTaskError
from .task_views import TaskStats, compute_stats, project
from .undo import UndoDeleteSlot

logger = logging.getLogger(__name__)

TasksListener = Callable[[tuple[Task, ...]], None]


class TaskManager:
    def __init__(
        self,
        store: TaskRepo,
        notifier: NotificationScheduler,
        undo_slot: UndoDeleteSlot,
        clock: Clock,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._undo = undo_slot
        self._clock = clock
        self._tasks: list[Task] = []
        self._listeners: list[TasksListener] = []
        self._delete_candidate: str | None = None

    # ---- read side ----

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    @property
    def undo_slot(self) -> UndoDeleteSlot:
        return self._undo

    @property
    def delete_candidate(self) -> str | None:
        """Task id awaiting delete confirmation, if any."""
        return self._delete_candidate

    def get(self, task_id: str) -> Task:
        return self._tasks[self._index_of(task_id)]

    def find(self, task_id: str) -> Task | None:
        for t in self._tasks:
            if t.id == task_id:
                return t
        return None

    def view(self, selector: TaskFilter | str = TaskFilter.ALL) -> list[Task]:
        return project(self._tasks, selector, now=self._clock.now())

    def stats(self) -> TaskStats:
        return compute_stats(self._tasks)

    # ---- change notification ----

    def subscribe(self, listener: TasksListener) -> Callable[[], None]:
        """Register a listener for collection changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _broadcast(self) -> None:
        snapshot = tuple(self._tasks)
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("tasks listener failed")

    # ---- lifecycle ----

    def start(self) -> tuple[Task, ...]:
        """Load persisted tasks, ask for notification permission, repair reminders."""
        try:
            loaded = self._store.load_tasks()
        except Exception:
            logger.exception("load_tasks raised; starting with an empty list")
            loaded = []
        self._tasks = self._dedupe(loaded)
        self._notifier.request_permission()
        self._notifier.reschedule_all(self._tasks)
        logger.info("TaskManager started with %d tasks", len(self._tasks))
        self._broadcast()
        return self.tasks

    def save_task(self, task: Task) -> Task:
        """
        Create or update.

        An existing id is replaced in place (position kept); a new id goes
        to the front. The reminder is re-derived from the resulting task.
        """
        if not task.title.strip():
            raise ValueError("title is required")
        task = self._normalize_completion(task)

        idx = self._find_index(task.id)
        if idx is None:
            self._tasks.insert(0, task)
            logger.info("Task created id=%s", task.id)
            self._notifier.schedule_for_task(task)
        else:
            previous = self._tasks[idx]
            self._tasks[idx] = task
            logger.info("Task updated id=%s", task.id)
            # Re-derive from the resulting due_at/completed; title and notes
            # also feed the reminder text.
            if previous != task:
                self._notifier.reconcile(task)

        self._after_change()
        return task

    def toggle_complete(self, task_id: str) -> Task:
        idx = self._index_of(task_id)
        current = self._tasks[idx]
        if current.completed:
            updated = replace(current, completed=False, completed_at=None)
        else:
            updated = replace(current, completed=True, completed_at=self._clock.now())
        self._tasks[idx] = updated
        logger.info("Task id=%s completed=%s", task_id, updated.completed)

        if updated.completed:
            self._notifier.cancel_for_task(task_id)
        else:
            self._notifier.schedule_for_task(updated)

        self._after_change()
        return updated

    def complete_from_focus(self, task_id: str) -> Task:
        """Focus timer finished for this task: mark it done (never un-completes)."""
        current = self.get(task_id)
        if current.completed:
            return current
        return self.toggle_complete(task_id)

    # ---- two-phase delete + undo ----

    def request_delete(self, task_id: str) -> Task:
        """First phase: remember which task the user wants to delete."""
        task = self.get(task_id)
        self._delete_candidate = task_id
        return task

    def cancel_delete(self) -> None:
        self._delete_candidate = None

    def confirm_delete(self) -> Task | None:
        """Second phase: remove the requested task and open the undo window."""
        task_id = self._delete_candidate
        self._delete_candidate = None
        if task_id is None:
            return None
        if self._find_index(task_id) is None:
            logger.warning("confirm_delete: task_id=%s already gone", task_id)
            return None
        return self._remove(task_id)

    def _remove(self, task_id: str) -> Task:
        idx = self._index_of(task_id)
        task = self._tasks.pop(idx)
        self._notifier.cancel_for_task(task_id)
        self._store_call("remove_task", self._store.remove_task, task_id)
        self._undo.hold(task)
        logger.info("Task deleted id=%s (undo window %.0fs)", task_id, self._undo.window_seconds)
        self._after_change()
        return task

    def undo_delete(self) -> Task | None:
        held = self._undo.pending_task
        if held is None:
            return None
        if self._find_index(held.id) is not None:
            # Leave the slot alone; it expires on its own timer.
            logger.warning("undo_delete: task_id=%s already present", held.id)
            return None
        task = self._undo.take()
        if task is None:
            return None
        self._tasks.insert(0, task)
        self._notifier.schedule_for_task(task)
        logger.info("Task restored id=%s", task.id)
        self._after_change()
        return task

    # ---- helpers ----

    def _after_change(self) -> None:
        self._store_call("save_tasks", self._store.save_tasks, list(self._tasks))
        self._broadcast()

    @staticmethod
    def _store_call(op: str, fn: Callable[..., object], *args: object) -> None:
        try:
            result = fn(*args)
        except Exception:
            logger.exception("%s raised; in-memory tasks stay authoritative", op)
            return
        if isinstance(result, EffectResult) and not result.ok:
            logger.warning("%s did not persist: %s", op, result.error)

    def _normalize_completion(self, task: Task) -> Task:
        if task.completed and task.completed_at is None:
            return replace(task, completed_at=self._clock.now())
        if not task.completed and task.completed_at is not None:
            return replace(task, completed_at=None)
        return task

    @staticmethod
    def _dedupe(tasks: list[Task]) -> list[Task]:
        seen: set[str] = set()
        out: list[Task] = []
        for t in tasks:
            if t.id in seen:
                logger.warning("Dropping duplicate task_id=%s from loaded tasks", t.id)
                continue
            seen.add(t.id)
            out.append(t)
        return out

    def _find_index(self, task_id: str) -> int | None:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        return None

    def _index_of(self, task_id: str) -> int:
        idx = self._find_index(task_id)
        if idx is None:
            raise UnknownTaskError(task_id)
        return idx
