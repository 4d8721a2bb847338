# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from pathlib import Path

from taskkeeper.tasks.task_models import Category, Priority, Task, UserProfile
from taskkeeper.tasks.task_store import TaskStore

from .fakes import DAY, NOW


def _sample_tasks() -> list[Task]:
    return [
        Task(
            id="b",
            title="Buy milk",
            created_at=NOW,
            notes="2 litres",
            due_at=NOW + DAY,
            priority=Priority.HIGH,
            category=Category.SHOPPING,
            attachments=("data:image/png;base64,AAAA", "data:image/png;base64,BBBB"),
        ),
        Task(
            id="a",
            title="Read chapter 3",
            created_at=NOW - DAY,
            priority=Priority.LOW,
            completed=True,
            completed_at=NOW - 60,
        ),
    ]


def test_empty_collection_round_trip(tmp_path: Path) -> None:
    store = TaskStore(tmp_path / "tasks.sqlite3")
    assert store.load_tasks() == []

    assert store.save_tasks([]).ok
    assert store.load_tasks() == []


def test_save_and_reload_keeps_content_and_order(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"
    tasks = _sample_tasks()

    assert TaskStore(db).save_tasks(tasks).ok

    reloaded = TaskStore(db).load_tasks()
    assert reloaded == tasks


def test_reload_returns_fields_exactly_as_saved(store: TaskStore) -> None:
    tasks = [
        Task(id="a", title="  Buy milk ", created_at=NOW),
        Task(id="b", title="Pack", created_at=NOW - DAY, notes="", attachments=("data:x", "")),
    ]
    assert store.save_tasks(tasks).ok

    loaded = store.load_tasks()
    assert loaded == tasks
    assert loaded[0].title == "  Buy milk "
    assert loaded[1].notes == ""
    assert loaded[1].attachments == ("data:x", "")


def test_saving_twice_is_idempotent(store: TaskStore) -> None:
    tasks = _sample_tasks()
    store.save_tasks(tasks)
    store.save_tasks(tasks)

    assert store.count_tasks() == 2
    assert store.load_tasks() == tasks


def test_save_replaces_previous_collection(store: TaskStore) -> None:
    tasks = _sample_tasks()
    store.save_tasks(tasks)
    store.save_tasks(tasks[1:])

    assert [t.id for t in store.load_tasks()] == ["a"]


def test_remove_task(store: TaskStore) -> None:
    store.save_tasks(_sample_tasks())

    assert store.remove_task("b").ok
    assert [t.id for t in store.load_tasks()] == ["a"]
    # Removing an unknown id is harmless.
    assert store.remove_task("missing").ok


def test_corrupt_database_loads_as_empty(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"
    db.write_bytes(b"this is definitely not a sqlite database" * 64)

    store = TaskStore(db)
    assert store.load_tasks() == []
    assert store.load_profile() is None
    assert store.load_dark_mode(default=True) is True

    result = store.save_tasks(_sample_tasks())
    assert result.ok is False
    assert result.error


def test_unreadable_rows_are_skipped_and_pairing_repaired(store: TaskStore) -> None:
    conn = sqlite3.connect(str(store.db_path))
    with conn:
        conn.execute(
            "INSERT INTO tasks(id, position, title, priority, completed, completed_at, created_at)"
            " VALUES ('ok', 0, 'Fine', 'bogus', 1, NULL, ?)",
            (NOW,),
        )
        conn.execute(
            "INSERT INTO tasks(id, position, title, completed, completed_at, created_at)"
            " VALUES ('blank', 1, '   ', 0, NULL, ?)",
            (NOW,),
        )
        conn.execute(
            "INSERT INTO tasks(id, position, title, completed, completed_at, created_at)"
            " VALUES ('open', 2, 'Open', 0, ?, ?)",
            (NOW, NOW),
        )
    conn.close()

    loaded = store.load_tasks()
    assert [t.id for t in loaded] == ["ok", "open"]

    fine, still_open = loaded
    assert fine.priority == Priority.MEDIUM
    assert fine.completed and fine.completed_at == NOW
    assert not still_open.completed and still_open.completed_at is None


def test_old_schema_is_migrated(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"
    conn = sqlite3.connect(str(db))
    with conn:
        conn.execute("CREATE TABLE tasks (id TEXT PRIMARY KEY, title TEXT NOT NULL, created_at REAL NOT NULL)")
        conn.execute("INSERT INTO tasks(id, title, created_at) VALUES ('x', 'Legacy', ?)", (NOW,))
    conn.close()

    loaded = TaskStore(db).load_tasks()
    assert len(loaded) == 1
    assert loaded[0].title == "Legacy"
    assert loaded[0].priority == Priority.MEDIUM
    assert loaded[0].attachments == ()


def test_profile_round_trip(store: TaskStore) -> None:
    assert store.load_profile() is None

    profile = UserProfile(name="Sam", created_at=NOW, meta={"onboarded_at": NOW})
    assert store.save_profile(profile).ok
    assert store.load_profile() == profile

    store.save_profile(UserProfile(name="Sam B.", created_at=NOW, meta={}))
    loaded = store.load_profile()
    assert loaded is not None
    assert loaded.name == "Sam B."


def test_dark_mode_preference(store: TaskStore) -> None:
    assert store.load_dark_mode() is False
    assert store.load_dark_mode(default=True) is True

    store.save_dark_mode(True)
    assert store.load_dark_mode() is True

    store.save_dark_mode(False)
    assert store.load_dark_mode(default=True) is False
