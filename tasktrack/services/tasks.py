"""
TaskTrack Task Controller — owner-scoped task operations.

Every operation takes an already-verified Principal. Single-task operations
follow the same order: fetch, confirm existence (404), confirm ownership
(403), then validate and act.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Tuple

from tasktrack.engine.context import get_request_context
from tasktrack.engine.errors import AuthorizationError, NotFoundError
from tasktrack.engine.logging import log, log_record_operation, log_security_event
from tasktrack.engine.security import owns
from tasktrack.schemas import (
    Principal,
    TaskCreateRequest,
    TaskOut,
    TaskStats,
    TaskUpdateRequest,
    parse_payload,
)
from tasktrack.services.query_builder import build_task_query
from tasktrack.services.stats import summarize
from tasktrack.services.task_store import TaskStore

logger = logging.getLogger("tasktrack.services.tasks")

TASK_NOT_FOUND = "Task not found"
NOT_AUTHORIZED = "Not authorized to access this task"


def _request_id() -> Optional[str]:
    ctx = get_request_context()
    return ctx.request_id if ctx else None


class TaskController:
    """List / get / create / update / delete / stats for one principal's tasks."""

    def __init__(self, store: TaskStore):
        self._store = store

    def list(self, principal: Principal, params: Optional[Mapping[str, Any]] = None) -> Tuple[List[TaskOut], int]:
        query = build_task_query(principal.id, params)
        tasks = [TaskOut.from_record(t) for t in self._store.find(query)]
        return tasks, len(tasks)

    def get(self, principal: Principal, task_id: str) -> TaskOut:
        return TaskOut.from_record(self._fetch_owned(principal, task_id, "get"))

    def create(self, principal: Principal, payload: Any) -> TaskOut:
        request = parse_payload(TaskCreateRequest, payload)
        task = self._store.create(principal.id, request.model_dump())
        log(log_record_operation(
            operation="create",
            record_type="tasks",
            record_id=task.id,
            user_id=principal.id,
            request_id=_request_id(),
            fields_changed=sorted(request.model_fields_set),
        ))
        return TaskOut.from_record(task)

    def update(self, principal: Principal, task_id: str, payload: Any) -> TaskOut:
        self._fetch_owned(principal, task_id, "update")
        changes = parse_payload(TaskUpdateRequest, payload).changes()

        task = self._store.update(task_id, principal.id, changes)
        if task is None:
            # Deleted or reassigned after the ownership check
            raise NotFoundError(TASK_NOT_FOUND, resource_id=task_id, user_id=principal.id)

        log(log_record_operation(
            operation="update",
            record_type="tasks",
            record_id=task_id,
            user_id=principal.id,
            request_id=_request_id(),
            fields_changed=list(changes),
        ))
        return TaskOut.from_record(task)

    def delete(self, principal: Principal, task_id: str) -> None:
        self._fetch_owned(principal, task_id, "delete")
        if not self._store.delete(task_id, principal.id):
            raise NotFoundError(TASK_NOT_FOUND, resource_id=task_id, user_id=principal.id)
        log(log_record_operation(
            operation="delete",
            record_type="tasks",
            record_id=task_id,
            user_id=principal.id,
            request_id=_request_id(),
        ))

    def stats(self, principal: Principal) -> TaskStats:
        return summarize(self._store, principal.id)

    def _fetch_owned(self, principal: Principal, task_id: str, operation: str):
        task = self._store.get(task_id)
        if task is None:
            raise NotFoundError(TASK_NOT_FOUND, resource_id=task_id, user_id=principal.id)
        if not owns(task, principal):
            log(log_security_event(
                event="ownership_denied",
                reason=f"{operation} on task owned by another principal",
                request_id=_request_id(),
                user_id=principal.id,
                resource_id=task_id,
            ))
            logger.info(f"Denied {operation} on task {task_id} for {principal.id}")
            raise AuthorizationError(NOT_AUTHORIZED, resource_id=task_id, user_id=principal.id)
        return task
