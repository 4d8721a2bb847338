# tests/test_task_api.py

from __future__ import annotations

import pytest

from taskkeeper.tasks.task_api import add_attachment, edit_task, new_task, remove_attachment
from taskkeeper.tasks.task_models import Category, Priority

from .fakes import HOUR, NOW, ManualClock


def test_new_task_defaults(clock: ManualClock) -> None:
    task = new_task("  Water plants  ", clock=clock)

    assert task.title == "Water plants"
    assert task.created_at == NOW
    assert task.priority == Priority.MEDIUM
    assert task.category is None
    assert task.completed is False and task.completed_at is None
    assert task.attachments == ()
    assert len(task.id) == 32


def test_new_task_ids_are_unique(clock: ManualClock) -> None:
    ids = {new_task("x", clock=clock).id for _ in range(50)}
    assert len(ids) == 50


def test_blank_title_blocks_creation(clock: ManualClock) -> None:
    with pytest.raises(ValueError):
        new_task("", clock=clock)
    with pytest.raises(ValueError):
        new_task("   ", clock=clock)


def test_edit_task_keeps_identity_fields(clock: ManualClock) -> None:
    original = new_task("Report", due_at=NOW + HOUR, category="work", notes="draft", clock=clock)

    edited = edit_task(original, title="Final report", priority="high", notes=None, category=None)
    assert edited.id == original.id
    assert edited.created_at == original.created_at
    assert edited.title == "Final report"
    assert edited.priority == Priority.HIGH
    assert edited.notes is None
    assert edited.category is None
    assert edited.due_at == NOW + HOUR

    assert edit_task(original, category=Category.STUDY).category == Category.STUDY
    with pytest.raises(ValueError):
        edit_task(original, title=" ")


def test_attachments_append_and_remove_by_index(clock: ManualClock) -> None:
    task = new_task("Receipt", clock=clock)
    task = add_attachment(task, "data:image/png;base64,AAA")
    task = add_attachment(task, "data:image/png;base64,BBB")
    task = add_attachment(task, "data:image/png;base64,CCC")

    task = remove_attachment(task, 1)
    assert task.attachments == ("data:image/png;base64,AAA", "data:image/png;base64,CCC")

    with pytest.raises(IndexError):
        remove_attachment(task, 5)
    with pytest.raises(ValueError):
        add_attachment(task, "")
