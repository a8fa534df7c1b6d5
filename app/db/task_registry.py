"""Durable task registry backed by SQLite.

Every write is a single statement committed before the call returns, so a
status read never observes a half-written row. Terminal transitions are
conditional on the row still being in ``processing``; a row that already
reached ``completed``, ``error`` or ``failed`` is never changed again.
"""

import logging
import sqlite3
import threading
from typing import List, Optional

from app.jobs.models import Task, TaskStatus

logger = logging.getLogger(__name__)

_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS tasks ("
    "taskId TEXT PRIMARY KEY, status TEXT NOT NULL, downloadLink TEXT)"
)


class TaskRegistry:
    """Data access layer for the ``tasks`` table."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        with self._lock, self._conn:
            self._conn.execute(_SCHEMA)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def create_or_reset(self, task_id: str) -> None:
        """Insert a fresh ``processing`` row, overwriting any row with the same id."""
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT INTO tasks (taskId, status, downloadLink) VALUES (?, ?, NULL) "
                "ON CONFLICT(taskId) DO UPDATE SET status=excluded.status, downloadLink=NULL",
                (task_id, TaskStatus.PROCESSING.value),
            )

    def set_completed(self, task_id: str, download_link: str) -> bool:
        return self._finish(task_id, TaskStatus.COMPLETED, download_link)

    def set_error(self, task_id: str) -> bool:
        return self._finish(task_id, TaskStatus.ERROR, None)

    def set_failed(self, task_id: str) -> bool:
        """Fail a task orphaned by an unclean shutdown."""
        return self._finish(task_id, TaskStatus.FAILED, None)

    def get(self, task_id: str) -> Optional[Task]:
        with self._lock:
            row = self._conn.execute(
                "SELECT taskId, status, downloadLink FROM tasks WHERE taskId = ?",
                (task_id,),
            ).fetchone()
        return _row_to_task(row) if row else None

    def list_by_status(self, status: TaskStatus) -> List[Task]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT taskId, status, downloadLink FROM tasks WHERE status = ? ORDER BY rowid",
                (status.value,),
            ).fetchall()
        return [_row_to_task(r) for r in rows]

    def _finish(self, task_id: str, status: TaskStatus, download_link: Optional[str]) -> bool:
        with self._lock, self._conn:
            cursor = self._conn.execute(
                "UPDATE tasks SET status = ?, downloadLink = ? WHERE taskId = ? AND status = ?",
                (status.value, download_link, task_id, TaskStatus.PROCESSING.value),
            )
        if cursor.rowcount == 0:
            logger.warning(
                "Task %s not moved to %s: unknown id or already terminal", task_id, status.value
            )
            return False
        logger.info("Task %s -> %s", task_id, status.value)
        return True


def _row_to_task(row: sqlite3.Row) -> Task:
    return Task(
        id=row["taskId"],
        status=TaskStatus(row["status"]),
        download_link=row["downloadLink"],
    )
