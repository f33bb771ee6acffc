"""
TaskTrack API Dependencies — the service container and FastAPI dependency functions.

``create_app()`` builds one ``ServiceContainer`` and stores it on
``app.state.services``. Route handlers reach it through ``get_services``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Depends, Header, Request

from tasktrack.db import Database
from tasktrack.engine.config import TaskTrackConfig
from tasktrack.engine.errors import ValidationError
from tasktrack.engine.health import HealthCheckService
from tasktrack.engine.security import IdentityVerifier, TokenService
from tasktrack.schemas import Principal
from tasktrack.services import AccountService, PrincipalLoader, TaskController, TaskStore


@dataclass
class ServiceContainer:
    config: TaskTrackConfig
    database: Database
    tokens: TokenService
    principals: PrincipalLoader
    verifier: IdentityVerifier
    accounts: AccountService
    tasks: TaskController
    health: HealthCheckService


def build_services(config: TaskTrackConfig, database: Database) -> ServiceContainer:
    """Wire every service from one config and one Database handle."""
    tokens = TokenService(config.security)
    principals = PrincipalLoader(database)
    health = HealthCheckService()
    health.register_database_check("database", database.engine)
    return ServiceContainer(
        config=config,
        database=database,
        tokens=tokens,
        principals=principals,
        verifier=IdentityVerifier(tokens, principals),
        accounts=AccountService(database, tokens, config.security),
        tasks=TaskController(TaskStore(database)),
        health=health,
    )


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_principal(
    authorization: Optional[str] = Header(None),
    services: ServiceContainer = Depends(get_services),
) -> Principal:
    """Verify the bearer token before any task or profile handler runs."""
    return services.verifier.verify(authorization)


async def json_body(request: Request) -> Any:
    """
    Decoded JSON request body.

    An empty body decodes to None; the request model then reports it.
    """
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        raise ValidationError(
            "Validation failed",
            validation_errors=[{
                "field": "body",
                "message": "Malformed JSON body",
                "value": None,
            }],
        ) from e
