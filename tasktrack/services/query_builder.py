"""
TaskTrack Query Builder — list parameters to an owner-scoped task query.

The builder never executes anything. ``build_task_query()`` returns a
``TaskQuery`` (filters + sort key) and ``TaskQuery.to_select()`` turns it
into a SQLAlchemy ``Select`` that the task store runs.

Params:
    search    case-insensitive substring of title OR description
    status    exact match, ignored unless a known status
    priority  exact match, ignored unless a known priority
    sort      newest | oldest | priority | dueDate (default newest)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from sqlalchemy import Select, case, or_, select

from tasktrack.db.models import TASK_PRIORITIES, TASK_STATUSES, Task

SORT_NEWEST = "newest"
SORT_OLDEST = "oldest"
SORT_PRIORITY = "priority"
SORT_DUE_DATE = "dueDate"

SORT_OPTIONS = (SORT_NEWEST, SORT_OLDEST, SORT_PRIORITY, SORT_DUE_DATE)
DEFAULT_SORT = SORT_NEWEST

PRIORITY_RANK = {"high": 3, "medium": 2, "low": 1}

LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def _text_param(params: Mapping[str, Any], key: str) -> Optional[str]:
    value = params.get(key)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if not isinstance(value, str):
        return None
    return value.strip() or None


@dataclass(frozen=True)
class TaskQuery:
    """Declarative filter + sort over one owner's tasks."""

    owner_id: str
    search: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    sort: str = DEFAULT_SORT

    def to_select(self) -> Select:
        stmt = select(Task).where(Task.user_id == self.owner_id)

        if self.search:
            pattern = f"%{escape_like(self.search)}%"
            stmt = stmt.where(or_(
                Task.title.ilike(pattern, escape=LIKE_ESCAPE),
                Task.description.ilike(pattern, escape=LIKE_ESCAPE),
            ))
        if self.status:
            stmt = stmt.where(Task.status == self.status)
        if self.priority:
            stmt = stmt.where(Task.priority == self.priority)

        return stmt.order_by(*self._ordering())

    def _ordering(self):
        if self.sort == SORT_OLDEST:
            return [Task.created_at.asc(), Task.id.asc()]

        tie_break = [Task.created_at.desc(), Task.id.asc()]
        if self.sort == SORT_PRIORITY:
            rank = case(
                *((Task.priority == name, value) for name, value in PRIORITY_RANK.items()),
                else_=0,
            )
            return [rank.desc(), *tie_break]
        if self.sort == SORT_DUE_DATE:
            # Tasks without a due date go last
            return [Task.due_date.is_(None).asc(), Task.due_date.asc(), *tie_break]
        return tie_break


def build_task_query(owner_id: str, params: Optional[Mapping[str, Any]] = None) -> TaskQuery:
    """
    Build the query for ``GET /tasks``.

    The owner constraint always comes from the verified principal; nothing in
    ``params`` can widen or replace it.
    """
    params = params or {}

    status = _text_param(params, "status")
    if status not in TASK_STATUSES:
        status = None

    priority = _text_param(params, "priority")
    if priority not in TASK_PRIORITIES:
        priority = None

    sort = _text_param(params, "sort")
    if sort not in SORT_OPTIONS:
        sort = DEFAULT_SORT

    return TaskQuery(
        owner_id=owner_id,
        search=_text_param(params, "search"),
        status=status,
        priority=priority,
        sort=sort,
    )
