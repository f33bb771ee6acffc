"""Health route: /health. Public."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from tasktrack.api.dependencies import ServiceContainer, get_services

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(services: ServiceContainer = Depends(get_services)) -> Dict[str, Any]:
    """Always 200 while the process serves; a failed store check reports "degraded"."""
    summary = await services.health.get_service_health()
    return {
        "success": True,
        "status": summary["status"],
        "message": "Server is running",
        "checks": summary["checks"],
    }
