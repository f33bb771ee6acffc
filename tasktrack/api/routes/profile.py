"""Profile routes: /profile."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from tasktrack.api.dependencies import ServiceContainer, get_principal, get_services, json_body
from tasktrack.schemas import Principal

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("")
def get_profile(
    principal: Principal = Depends(get_principal),
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    user = services.principals.get_profile(principal)
    return {"success": True, "user": user.to_public()}


@router.put("")
def update_profile(
    principal: Principal = Depends(get_principal),
    services: ServiceContainer = Depends(get_services),
    body: Any = Depends(json_body),
) -> Dict[str, Any]:
    user = services.principals.update_profile(principal, body)
    return {
        "success": True,
        "message": "Profile updated successfully",
        "user": user.to_public(),
    }
