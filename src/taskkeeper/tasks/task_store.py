# src/taskkeeper/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .task_models import Category, EffectResult, Priority, Task, UserProfile

logger = logging.getLogger(__name__)


class TaskStore:
    """
    SQLite task store.

    The whole task collection is written at once (ordered by position), so
    saving the same collection twice leaves the same stored state.

    The schema is migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Failure policy:
    - reads return empty/default values on any error (missing or corrupt file)
    - writes return an EffectResult and never raise

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._schema_ready = False
        try:
            self._ensure_schema()
            self._schema_ready = True
        except Exception:
            logger.exception("TaskStore schema setup failed db=%s; starting empty", self._db_path)
        try:
            total = self.count_tasks()
        except Exception:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    position INTEGER NOT NULL DEFAULT 0,
                    title TEXT NOT NULL,
                    notes TEXT,
                    due_at REAL,
                    priority TEXT NOT NULL DEFAULT 'medium',
                    category TEXT,
                    attachments TEXT NOT NULL DEFAULT '[]',
                    completed INTEGER NOT NULL DEFAULT 0,
                    completed_at REAL,
                    created_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("position", "INTEGER NOT NULL DEFAULT 0")
            add_col("notes", "TEXT")
            add_col("due_at", "REAL")
            add_col("priority", "TEXT NOT NULL DEFAULT 'medium'")
            add_col("category", "TEXT")
            add_col("attachments", "TEXT NOT NULL DEFAULT '[]'")
            add_col("completed", "INTEGER NOT NULL DEFAULT 0")
            add_col("completed_at", "REAL")
            add_col("created_at", "REAL NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_position ON tasks(position)")

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS profile (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    name TEXT NOT NULL,
                    created_at REAL NOT NULL,
                    meta TEXT NOT NULL DEFAULT '{}'
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS preferences (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _json_dumps(value: Any, fallback: str) -> str:
        try:
            return json.dumps(value, ensure_ascii=False)
        except Exception:
            logger.exception("Failed to JSON-encode value; storing %s.", fallback)
            return fallback

    @staticmethod
    def _str_to_attachments(s: str | None) -> tuple[str, ...]:
        if not s:
            return ()
        try:
            val = json.loads(s)
        except Exception:
            return ()
        if not isinstance(val, list):
            return ()
        return tuple(v for v in val if isinstance(v, str))

    @staticmethod
    def _str_to_meta(s: str | None) -> dict[str, Any]:
        if not s:
            return {}
        try:
            val = json.loads(s)
            return val if isinstance(val, dict) else {}
        except Exception:
            return {}

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        title = str(row["title"] or "")
        if not title.strip():
            raise ValueError("stored task has no title")

        created_at = float(row["created_at"] or 0.0)
        completed = bool(row["completed"])
        completed_at = float(row["completed_at"]) if row["completed_at"] is not None else None
        # Repair rows that break the completed/completed_at pairing.
        if not completed:
            completed_at = None
        elif completed_at is None:
            completed_at = created_at

        return Task(
            id=str(row["id"]),
            title=title,
            created_at=created_at,
            notes=row["notes"],
            due_at=float(row["due_at"]) if row["due_at"] is not None else None,
            priority=Priority.from_db(row["priority"]),
            category=Category.from_db(row["category"]),
            attachments=self._str_to_attachments(row["attachments"]),
            completed=completed,
            completed_at=completed_at,
        )

    def _task_params(self, position: int, task: Task) -> tuple[Any, ...]:
        return (
            task.id,
            position,
            task.title,
            task.notes,
            task.due_at,
            task.priority.value,
            task.category.value if task.category else None,
            self._json_dumps(list(task.attachments), "[]"),
            1 if task.completed else 0,
            task.completed_at,
            task.created_at,
        )

    # ---- tasks ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM tasks")
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def load_tasks(self) -> list[Task]:
        """
        Return the stored collection in saved order.

        Returns [] on first run or when the database cannot be read.
        Individual unreadable rows are skipped.
        """
        try:
            conn = self._get_conn()
        except Exception:
            logger.exception("load_tasks: cannot open db=%s", self._db_path)
            return []
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks ORDER BY position ASC, created_at DESC")
            rows = cur.fetchall()
        except Exception:
            logger.exception("load_tasks failed db=%s; treating as empty", self._db_path)
            return []
        finally:
            conn.close()

        tasks: list[Task] = []
        seen: set[str] = set()
        for row in rows:
            try:
                task = self._row_to_task(row)
            except Exception:
                logger.warning("Skipping unreadable task row id=%s", row["id"], exc_info=True)
                continue
            if task.id in seen:
                continue
            seen.add(task.id)
            tasks.append(task)

        logger.debug("Loaded %d tasks from %s", len(tasks), self._db_path)
        return tasks

    def save_tasks(self, tasks: Iterable[Task]) -> EffectResult:
        """Replace the stored collection with `tasks` in a single transaction."""
        try:
            rows = [self._task_params(pos, t) for pos, t in enumerate(tasks)]
        except Exception as e:
            logger.exception("save_tasks: cannot encode tasks")
            return EffectResult.failure(e)

        try:
            conn = self._get_conn()
            try:
                with conn:
                    conn.execute("DELETE FROM tasks")
                    conn.executemany(
                        """
                        INSERT OR REPLACE INTO tasks(
                            id, position, title, notes, due_at,
                            priority, category, attachments,
                            completed, completed_at, created_at
                        )
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        rows,
                    )
            finally:
                conn.close()
        except Exception as e:
            logger.exception("save_tasks failed db=%s count=%d", self._db_path, len(rows))
            return EffectResult.failure(e)

        logger.debug("Saved %d tasks to %s", len(rows), self._db_path)
        return EffectResult.success()

    def remove_task(self, task_id: str) -> EffectResult:
        try:
            conn = self._get_conn()
            try:
                with conn:
                    conn.execute("DELETE FROM tasks WHERE id = ?", (str(task_id),))
            finally:
                conn.close()
        except Exception as e:
            logger.exception("remove_task failed task_id=%s", task_id)
            return EffectResult.failure(e)
        return EffectResult.success()

    # ---- profile ----

    def load_profile(self) -> UserProfile | None:
        try:
            conn = self._get_conn()
            try:
                row = conn.execute("SELECT * FROM profile WHERE id = 1").fetchone()
            finally:
                conn.close()
        except Exception:
            logger.exception("load_profile failed db=%s", self._db_path)
            return None

        if row is None:
            return None
        name = str(row["name"] or "").strip()
        if not name:
            return None
        return UserProfile(
            name=name,
            created_at=float(row["created_at"] or 0.0),
            meta=self._str_to_meta(row["meta"]),
        )

    def save_profile(self, profile: UserProfile) -> EffectResult:
        try:
            conn = self._get_conn()
            try:
                with conn:
                    conn.execute(
                        """
                        INSERT INTO profile(id, name, created_at, meta)
                        VALUES (1, ?, ?, ?)
                        ON CONFLICT(id) DO UPDATE SET
                            name = excluded.name,
                            created_at = excluded.created_at,
                            meta = excluded.meta
                        """,
                        (
                            profile.name.strip(),
                            float(profile.created_at or time.time()),
                            self._json_dumps(profile.meta or {}, "{}"),
                        ),
                    )
            finally:
                conn.close()
        except Exception as e:
            logger.exception("save_profile failed db=%s", self._db_path)
            return EffectResult.failure(e)
        return EffectResult.success()

    # ---- preferences ----

    def _get_pref(self, key: str) -> str | None:
        try:
            conn = self._get_conn()
            try:
                row = conn.execute("SELECT value FROM preferences WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        except Exception:
            logger.exception("preference read failed key=%s", key)
            return None
        return None if row is None else str(row["value"])

    def _set_pref(self, key: str, value: str) -> EffectResult:
        try:
            conn = self._get_conn()
            try:
                with conn:
                    conn.execute(
                        "INSERT OR REPLACE INTO preferences(key, value) VALUES (?, ?)",
                        (key, value),
                    )
            finally:
                conn.close()
        except Exception as e:
            logger.exception("preference write failed key=%s", key)
            return EffectResult.failure(e)
        return EffectResult.success()

    def load_dark_mode(self, default: bool = False) -> bool:
        raw = self._get_pref("dark_mode")
        if raw is None:
            return default
        return raw.strip().lower() == "true"

    def save_dark_mode(self, enabled: bool) -> EffectResult:
        return self._set_pref("dark_mode", "true" if enabled else "false")
