# src/cadence_planner/tasks/task_store.py

from __future__ import annotations

import contextlib
import datetime as dt
import logging
import sqlite3
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from ..core.ports import ChangeListener, SortKey, TaskPredicate
from .calendar_utils import ensure_aware, local_tz
from .task_models import Cadence, Category, Task

logger = logging.getLogger(__name__)


class TaskStore:
    """
    SQLite task/category store.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Timestamps are stored as UNIX seconds and read back as aware datetimes
    in the store's calendar timezone.

    Thread-safety:
    - each method opens its own SQLite connection

    Listeners registered with subscribe() run after every successful mutation.
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3", *, tz: dt.tzinfo | None = None) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._tz = tz or local_tz()
        self._listeners: list[ChangeListener] = []
        self._listeners_lock = threading.Lock()
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except Exception:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

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
                    title TEXT NOT NULL,
                    cadence TEXT NOT NULL DEFAULT 'weekly',
                    category_id TEXT,
                    deadline REAL,
                    notes TEXT,
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    completed_at REAL,
                    created_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS categories (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    color_hex TEXT NOT NULL DEFAULT '#E07A5F'
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

            add_col("category_id", "TEXT")
            add_col("deadline", "REAL")
            add_col("notes", "TEXT")
            add_col("completed_at", "REAL")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_cadence ON tasks(cadence, is_completed)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_category ON tasks(category_id)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _ts(value: dt.datetime | None) -> float | None:
        if value is None:
            return None
        return ensure_aware(value).timestamp()

    def _dt(self, raw: Any) -> dt.datetime | None:
        if raw is None:
            return None
        return dt.datetime.fromtimestamp(float(raw), self._tz)

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        completed = bool(row["is_completed"])
        completed_at = self._dt(row["completed_at"]) if completed else None
        return Task(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            cadence=Cadence.from_db(row["cadence"]),
            created_at=self._dt(row["created_at"]) or dt.datetime.fromtimestamp(0, self._tz),
            category_id=row["category_id"],
            deadline=self._dt(row["deadline"]),
            notes=row["notes"],
            is_completed=completed,
            completed_at=completed_at,
        )

    @staticmethod
    def _row_to_category(row: sqlite3.Row) -> Category:
        return Category(id=str(row["id"]), name=str(row["name"]), color_hex=str(row["color_hex"]))

    def _task_params(self, task: Task) -> tuple[Any, ...]:
        return (
            task.title,
            task.cadence.value,
            task.category_id,
            self._ts(task.deadline),
            task.notes,
            1 if task.is_completed else 0,
            self._ts(task.completed_at) if task.is_completed else None,
        )

    # ---- change notifications ----

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        with self._listeners_lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._listeners_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener()
            except Exception:
                logger.exception("TaskStore listener failed")

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

    def add_task(self, task: Task) -> Task:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO tasks(
                    title, cadence, category_id, deadline, notes,
                    is_completed, completed_at, id, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (*self._task_params(task), task.id, self._ts(task.created_at)),
            )
            conn.commit()
        finally:
            conn.close()

        logger.debug("Task added id=%s cadence=%s deadline=%s", task.id, task.cadence.value, task.deadline)
        self._notify()
        return task

    def get_task(self, task_id: str) -> Task | None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks WHERE id = ?", (task_id,))
            row = cur.fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def update_task(self, task: Task) -> bool:
        """Update every mutable field in place. created_at is never written. False if missing."""
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                UPDATE tasks
                SET title = ?,
                    cadence = ?,
                    category_id = ?,
                    deadline = ?,
                    notes = ?,
                    is_completed = ?,
                    completed_at = ?
                WHERE id = ?
                """,
                (*self._task_params(task), task.id),
            )
            conn.commit()
            updated = cur.rowcount == 1
        finally:
            conn.close()

        if not updated:
            logger.debug("update_task: id=%s not found", task.id)
            return False
        self._notify()
        return True

    def delete_task(self, task_id: str) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            conn.commit()
            deleted = cur.rowcount == 1
        finally:
            conn.close()

        if not deleted:
            logger.debug("delete_task: id=%s not found", task_id)
            return False
        logger.debug("Task deleted id=%s", task_id)
        self._notify()
        return True

    def list_tasks(
        self,
        predicate: TaskPredicate | None = None,
        *,
        sort_key: SortKey | None = None,
        reverse: bool = False,
    ) -> list[Task]:
        """
        All tasks matching `predicate`.

        Without sort_key, rows come newest first (created_at DESC).
        """
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks ORDER BY created_at DESC, id ASC")
            tasks = [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

        if predicate is not None:
            tasks = [t for t in tasks if predicate(t)]
        if sort_key is not None:
            tasks.sort(key=sort_key, reverse=reverse)
        return tasks

    def list_incomplete_tasks(self) -> list[Task]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks WHERE is_completed = 0 ORDER BY created_at DESC, id ASC")
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def find_by_prefix(self, prefix: str) -> list[Task]:
        """Tasks whose id starts with `prefix` (the console shows 8-char ids)."""
        p = (prefix or "").strip().lower()
        if not p:
            return []
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT * FROM tasks WHERE substr(id, 1, ?) = ? ORDER BY created_at DESC",
                (len(p), p),
            )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    # ---- categories ----

    def add_category(self, category: Category) -> Category:
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO categories(id, name, color_hex) VALUES (?, ?, ?)",
                (category.id, category.name, category.color_hex),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug("Category added id=%s name=%s", category.id, category.name)
        self._notify()
        return category

    def get_category(self, category_id: str) -> Category | None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM categories WHERE id = ?", (category_id,))
            row = cur.fetchone()
            return self._row_to_category(row) if row else None
        finally:
            conn.close()

    def update_category(self, category: Category) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "UPDATE categories SET name = ?, color_hex = ? WHERE id = ?",
                (category.name, category.color_hex, category.id),
            )
            conn.commit()
            updated = cur.rowcount == 1
        finally:
            conn.close()
        if updated:
            self._notify()
        return updated

    def delete_category(self, category_id: str) -> bool:
        """Delete a category and detach (never delete) its tasks, in one transaction."""
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("UPDATE tasks SET category_id = NULL WHERE category_id = ?", (category_id,))
            detached = cur.rowcount
            cur.execute("DELETE FROM categories WHERE id = ?", (category_id,))
            deleted = cur.rowcount == 1
            conn.commit()
        finally:
            conn.close()

        if not deleted:
            return False
        logger.debug("Category deleted id=%s detached_tasks=%d", category_id, detached)
        self._notify()
        return True

    def list_categories(self) -> list[Category]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM categories ORDER BY name COLLATE NOCASE ASC")
            return [self._row_to_category(r) for r in cur.fetchall()]
        finally:
            conn.close()
