# src/taskkeeper/tasks/undo.py

from __future__ import annotations

import logging
from enum import Enum

from ..core.ports import Clock, TimerFactory, TimerHandle
from .task_models import Task

logger = logging.getLogger(__name__)

DEFAULT_UNDO_WINDOW_SECONDS = 8.0


class UndoState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"


class UndoDeleteSlot:
    """
    Holds at most one soft-deleted task for a fixed undo window.

    idle -> pending: hold(task) starts the countdown
    pending -> idle: take() (undo) returns the task and cancels the countdown
    pending -> idle: countdown expires, the task is dropped for good

    Holding a new task while one is pending drops the older one first.
    """

    def __init__(
        self,
        timers: TimerFactory,
        clock: Clock,
        *,
        window_seconds: float = DEFAULT_UNDO_WINDOW_SECONDS,
    ) -> None:
        self._timers = timers
        self._clock = clock
        self._window = max(0.0, float(window_seconds))
        self._task: Task | None = None
        self._deadline: float | None = None
        self._timer: TimerHandle | None = None

    @property
    def window_seconds(self) -> float:
        return self._window

    @property
    def state(self) -> UndoState:
        return UndoState.PENDING if self._task is not None else UndoState.IDLE

    @property
    def pending_task(self) -> Task | None:
        return self._task

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def remaining(self) -> float:
        if self._deadline is None:
            return 0.0
        return max(0.0, self._deadline - self._clock.now())

    def hold(self, task: Task) -> Task | None:
        """
        Tombstone `task` and start the countdown.

        Returns the previously pending task, which is now permanently gone.
        """
        dropped = self._clear()
        if dropped is not None:
            logger.info("Undo slot replaced; task_id=%s deleted permanently", dropped.id)

        self._task = task
        self._deadline = self._clock.now() + self._window
        self._timer = self._timers.call_later(self._window, self._expire)
        logger.debug("Undo slot holding task_id=%s for %.1fs", task.id, self._window)
        return dropped

    def take(self) -> Task | None:
        """Undo: return the pending task (if any) and stop the countdown."""
        task = self._clear()
        if task is not None:
            logger.debug("Undo slot released task_id=%s", task.id)
        return task

    def _clear(self) -> Task | None:
        task = self._task
        if self._timer is not None:
            self._timer.cancel()
        self._task = None
        self._deadline = None
        self._timer = None
        return task

    def _expire(self) -> None:
        task = self._task
        self._task = None
        self._deadline = None
        self._timer = None
        if task is not None:
            logger.info("Undo window elapsed; task_id=%s deleted permanently", task.id)
