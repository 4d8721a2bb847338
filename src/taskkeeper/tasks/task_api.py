# src/taskkeeper/tasks/task_api.py

from __future__ import annotations

import time
import uuid
from collections.abc import Iterable
from dataclasses import replace

from ..core.ports import Clock
from .task_models import Category, Priority, Task

_UNSET = object()


def _clean_title(title: str | None) -> str:
    text = (title or "").strip()
    if not text:
        raise ValueError("title is required")
    return text


def _clean_notes(notes: str | None) -> str | None:
    text = (notes or "").strip()
    return text or None


def new_task_id() -> str:
    return uuid.uuid4().hex


def new_task(
    title: str,
    *,
    notes: str | None = None,
    due_at: float | None = None,
    priority: Priority | str = Priority.MEDIUM,
    category: Category | str | None = None,
    attachments: Iterable[str] = (),
    clock: Clock | None = None,
) -> Task:
    """
    Build a fresh task the way the editor does on "save".

    Assigns a new opaque id and created_at; a blank title blocks creation.
    """
    now = clock.now() if clock is not None else time.time()
    return Task(
        id=new_task_id(),
        title=_clean_title(title),
        created_at=now,
        notes=_clean_notes(notes),
        due_at=float(due_at) if due_at is not None else None,
        priority=Priority(priority),
        category=Category(category) if category else None,
        attachments=tuple(attachments),
    )


def edit_task(
    task: Task,
    *,
    title: str | None = None,
    notes: object = _UNSET,
    due_at: object = _UNSET,
    priority: Priority | str | None = None,
    category: object = _UNSET,
    attachments: Iterable[str] | None = None,
) -> Task:
    """
    Apply editor changes to an existing task.

    id, created_at and completion state are never touched here.
    Pass None for notes/due_at/category to clear them.
    """
    changes: dict[str, object] = {}
    if title is not None:
        changes["title"] = _clean_title(title)
    if notes is not _UNSET:
        changes["notes"] = _clean_notes(notes)  # type: ignore[arg-type]
    if due_at is not _UNSET:
        changes["due_at"] = float(due_at) if due_at is not None else None  # type: ignore[arg-type]
    if priority is not None:
        changes["priority"] = Priority(priority)
    if category is not _UNSET:
        changes["category"] = Category(category) if category else None  # type: ignore[arg-type]
    if attachments is not None:
        changes["attachments"] = tuple(attachments)
    return replace(task, **changes)


def add_attachment(task: Task, blob: str) -> Task:
    if not blob:
        raise ValueError("attachment is empty")
    return replace(task, attachments=(*task.attachments, blob))


def remove_attachment(task: Task, index: int) -> Task:
    if index < 0 or index >= len(task.attachments):
        raise IndexError(f"attachment index out of range: {index}")
    kept = tuple(a for i, a in enumerate(task.attachments) if i != index)
    return replace(task, attachments=kept)
