# src/taskbell/persistence/sqlite_api.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from pathlib import Path

from ..core.errors import PersistenceError
from ..tasks.task_models import Task, TaskDraft

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_DONE = "done"


class SqliteTaskApi:
    """
    Local TaskApi backed by a SQLite file.

    The auth token is used as the owner key (user_id column), so several
    local users can share one database file.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Each call opens its own short-lived connection; calls are fast enough to
    run directly on the event loop.
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("SqliteTaskApi ready db=%s", self._db_path)

    async def aclose(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        except sqlite3.Error as e:
            raise PersistenceError(f"cannot open {self._db_path}") from e
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    due_at REAL NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    created_at REAL NOT NULL,
                    updated_at REAL
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
                logger.info("SqliteTaskApi migration: added column %s", name)

            add_col("description", "TEXT NOT NULL DEFAULT ''")
            add_col("status", "TEXT NOT NULL DEFAULT 'pending'")
            add_col("updated_at", "REAL")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_user_due ON tasks(user_id, due_at)")
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            due_at=float(row["due_at"]),
            completed=(row["status"] == STATUS_DONE),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"]) if row["updated_at"] is not None else None,
        )

    def _fetch_one(self, conn: sqlite3.Connection, user_id: str, task_id: int) -> Task:
        row = conn.execute(
            "SELECT * FROM tasks WHERE id = ? AND user_id = ?",
            (int(task_id), user_id),
        ).fetchone()
        if row is None:
            raise PersistenceError(f"task {task_id} not found")
        return self._row_to_task(row)

    # ---- TaskApi ----

    async def list_tasks(self, auth_token: str) -> list[Task]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE user_id = ? ORDER BY due_at ASC, id ASC",
                (auth_token,),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]
        except sqlite3.Error as e:
            raise PersistenceError("list_tasks failed") from e
        finally:
            conn.close()

    async def create_task(self, auth_token: str, draft: TaskDraft) -> Task:
        if draft.due_at is None:
            raise PersistenceError("due_at is required")
        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                INSERT INTO tasks(user_id, title, description, due_at, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    auth_token,
                    draft.title,
                    draft.description,
                    float(draft.due_at),
                    STATUS_DONE if draft.completed else STATUS_PENDING,
                    now,
                ),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise PersistenceError("SQLite did not return lastrowid for tasks insert")
            logger.debug("Task inserted id=%s user=%s", rowid, auth_token)
            return self._fetch_one(conn, auth_token, int(rowid))
        except sqlite3.Error as e:
            raise PersistenceError("create_task failed") from e
        finally:
            conn.close()

    async def update_task(self, auth_token: str, task_id: int, draft: TaskDraft) -> Task:
        if draft.due_at is None:
            raise PersistenceError("due_at is required")
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                UPDATE tasks
                SET title = ?, description = ?, due_at = ?, status = ?, updated_at = ?
                WHERE id = ? AND user_id = ?
                """,
                (
                    draft.title,
                    draft.description,
                    float(draft.due_at),
                    STATUS_DONE if draft.completed else STATUS_PENDING,
                    time.time(),
                    int(task_id),
                    auth_token,
                ),
            )
            conn.commit()
            if cur.rowcount != 1:
                raise PersistenceError(f"task {task_id} not found")
            return self._fetch_one(conn, auth_token, task_id)
        except sqlite3.Error as e:
            raise PersistenceError("update_task failed") from e
        finally:
            conn.close()

    async def delete_task(self, auth_token: str, task_id: int) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM tasks WHERE id = ? AND user_id = ?", (int(task_id), auth_token))
            conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError("delete_task failed") from e
        finally:
            conn.close()
