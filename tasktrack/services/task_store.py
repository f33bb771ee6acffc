"""
TaskTrack Task Store — persistence access for tasks.

Every write that targets an existing task carries both the task id and the
owner id in its WHERE clause, so a task that vanished or changed hands
between the ownership check and the write is simply not affected.

Store failures surface as ``InternalError`` with the SQLAlchemy error chained.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tasktrack.db import Database, Task, is_valid_id
from tasktrack.db.base import utc_now
from tasktrack.db.models import DEFAULT_PRIORITY, DEFAULT_STATUS
from tasktrack.engine.errors import InternalError
from tasktrack.services.query_builder import TaskQuery

logger = logging.getLogger("tasktrack.services.task_store")

WRITABLE_FIELDS = ("title", "description", "status", "priority", "due_date", "tags")


class TaskStore:
    """
    Task persistence over a shared Database handle.

    Usage:
        store = TaskStore(database)
        task = store.create(owner_id, {"title": "Buy milk"})
        store.find(build_task_query(owner_id, {"sort": "priority"}))
    """

    def __init__(self, database: Database):
        self._db = database

    @contextmanager
    def _session(self, operation: str) -> Generator[Session, None, None]:
        try:
            with self._db.session_scope() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Task store {operation} failed: {e}")
            raise InternalError(f"Task store {operation} failed", operation=operation) from e

    # -- Reads ---------------------------------------------------------------

    def find(self, query: TaskQuery) -> List[Task]:
        with self._session("find") as session:
            return list(session.scalars(query.to_select()))

    def get(self, task_id: Any) -> Optional[Task]:
        """Fetch by id. Malformed ids are treated as absent."""
        if not is_valid_id(task_id):
            return None
        with self._session("get") as session:
            return session.get(Task, task_id)

    def tally(self, owner_id: str) -> List[Tuple[str, str, int]]:
        """(status, priority, count) rows over one owner's tasks."""
        stmt = (
            select(Task.status, Task.priority, func.count(Task.id))
            .where(Task.user_id == owner_id)
            .group_by(Task.status, Task.priority)
        )
        with self._session("tally") as session:
            return [(status, priority, count) for status, priority, count in session.execute(stmt)]

    # -- Writes --------------------------------------------------------------

    def create(self, owner_id: str, fields: Dict[str, Any]) -> Task:
        values = {k: v for k, v in fields.items() if k in WRITABLE_FIELDS and v is not None}
        values.setdefault("status", DEFAULT_STATUS)
        values.setdefault("priority", DEFAULT_PRIORITY)
        values.setdefault("tags", [])

        with self._session("create") as session:
            task = Task(user_id=owner_id, **values)
            session.add(task)
            session.flush()
            session.refresh(task)
        return task

    def update(self, task_id: str, owner_id: str, changes: Dict[str, Any]) -> Optional[Task]:
        """
        Apply ``changes`` to the task if it still exists and is still owned
        by ``owner_id``. Returns the updated task, or None when nothing matched.
        """
        if not is_valid_id(task_id):
            return None
        values = {k: v for k, v in changes.items() if k in WRITABLE_FIELDS}
        values["updated_at"] = utc_now()

        with self._session("update") as session:
            result = session.execute(
                update(Task)
                .where(Task.id == task_id, Task.user_id == owner_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            return session.get(Task, task_id, populate_existing=True)

    def delete(self, task_id: str, owner_id: str) -> bool:
        """Remove the task if still present and owned. True if a row went away."""
        if not is_valid_id(task_id):
            return False
        with self._session("delete") as session:
            result = session.execute(
                delete(Task)
                .where(Task.id == task_id, Task.user_id == owner_id)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0
