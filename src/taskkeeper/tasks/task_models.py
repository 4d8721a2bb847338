# src/taskkeeper/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, StrEnum
from typing import Any


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Sort rank: high first, low last."""
        return _PRIORITY_RANK[self]

    @classmethod
    def from_db(cls, raw: str | None) -> Priority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except Exception:
            return cls.MEDIUM


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class Category(StrEnum):
    WORK = "work"
    PERSONAL = "personal"
    STUDY = "study"
    SHOPPING = "shopping"
    OTHER = "other"

    @classmethod
    def from_db(cls, raw: str | None) -> Category | None:
        if not raw:
            return None
        try:
            return cls(raw)
        except Exception:
            return None


class TaskFilter(StrEnum):
    """View selector for the task list."""

    ALL = "all"
    TODAY = "today"
    UPCOMING = "upcoming"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, raw: str | None, default: TaskFilter | None = None) -> TaskFilter:
        fallback = default or cls.ALL
        if not raw:
            return fallback
        try:
            return cls(raw.strip().lower())
        except Exception:
            return fallback


@dataclass(slots=True, frozen=True)
class Task:
    """
    A single to-do item.

    Timestamps are POSIX seconds. Attachments are encoded image blobs
    (base64 / data-URL strings) and are never interpreted by the core.

    Invariant: completed_at is set iff completed is True.
    """

    id: str
    title: str
    created_at: float

    notes: str | None = None
    due_at: float | None = None
    priority: Priority = Priority.MEDIUM
    category: Category | None = None
    attachments: tuple[str, ...] = ()

    completed: bool = False
    completed_at: float | None = None


@dataclass(slots=True)
class UserProfile:
    name: str
    created_at: float
    meta: dict[str, Any] = field(default_factory=dict)


class UnknownTaskError(KeyError):
    """Raised when an operation targets an id that is not in the task collection."""

    def __init__(self, task_id: str) -> None:
        super().__init__(task_id)
        self.task_id = task_id

    def __str__(self) -> str:
        return f"unknown task id: {self.task_id}"


@dataclass(slots=True, frozen=True)
class EffectResult:
    """Outcome of a best-effort side effect (storage write, host call)."""

    ok: bool
    error: str | None = None

    @classmethod
    def success(cls) -> EffectResult:
        return cls(ok=True)

    @classmethod
    def failure(cls, exc: BaseException | str) -> EffectResult:
        return cls(ok=False, error=str(exc))


class ScheduleOutcome(str, Enum):
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"  # no date, past date, or completed
    DENIED = "denied"  # notification permission not granted
    FAILED = "failed"  # host API raised
