"""Account routes: /auth/register and /auth/login. No token required."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from tasktrack.api.dependencies import ServiceContainer, get_services, json_body

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=201)
def register(
    body: Any = Depends(json_body),
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    token, user = services.accounts.register(body)
    return {"success": True, "token": token, "user": user.to_public()}


@router.post("/login")
def login(
    body: Any = Depends(json_body),
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    token, user = services.accounts.login(body)
    return {"success": True, "token": token, "user": user.to_public()}
