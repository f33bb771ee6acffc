"""Task routes: /tasks. Every handler requires a verified principal."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from tasktrack.api.dependencies import ServiceContainer, get_principal, get_services, json_body
from tasktrack.schemas import Principal

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("")
def list_tasks(
    request: Request,
    principal: Principal = Depends(get_principal),
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    tasks, count = services.tasks.list(principal, request.query_params)
    return {
        "success": True,
        "count": count,
        "tasks": [t.to_public() for t in tasks],
    }


# Registered before /{task_id} so "stats" is never read as an id
@router.get("/stats/overview")
def task_stats(
    principal: Principal = Depends(get_principal),
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    stats = services.tasks.stats(principal)
    return {"success": True, "stats": stats.to_public()}


@router.get("/{task_id}")
def get_task(
    task_id: str,
    principal: Principal = Depends(get_principal),
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    task = services.tasks.get(principal, task_id)
    return {"success": True, "task": task.to_public()}


@router.post("", status_code=201)
def create_task(
    principal: Principal = Depends(get_principal),
    services: ServiceContainer = Depends(get_services),
    body: Any = Depends(json_body),
) -> Dict[str, Any]:
    task = services.tasks.create(principal, body)
    return {
        "success": True,
        "message": "Task created successfully",
        "task": task.to_public(),
    }


@router.put("/{task_id}")
def update_task(
    task_id: str,
    principal: Principal = Depends(get_principal),
    services: ServiceContainer = Depends(get_services),
    body: Any = Depends(json_body),
) -> Dict[str, Any]:
    task = services.tasks.update(principal, task_id, body)
    return {
        "success": True,
        "message": "Task updated successfully",
        "task": task.to_public(),
    }


@router.delete("/{task_id}")
def delete_task(
    task_id: str,
    principal: Principal = Depends(get_principal),
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    services.tasks.delete(principal, task_id)
    return {"success": True, "message": "Task deleted successfully"}
