"""
TaskTrack API Application — FastAPI app factory.

``create_app(config)`` wires:
  - the service container (one Database, one TokenService, ...)
  - request middleware: RequestContext, X-Request-ID, api/requests log entries
  - exception handlers mapping the TaskTrackError hierarchy to envelopes
  - lifespan: async log queue start/stop, startup/shutdown system events

Run:
    tasktrack run
or:
    uvicorn tasktrack.api.app:create_app --factory
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import tasktrack
from tasktrack.api.dependencies import build_services
from tasktrack.api.routes import ROUTERS
from tasktrack.db import Database, open_database
from tasktrack.engine.config import TaskTrackConfig, load_config
from tasktrack.engine.context import RequestContext, clear_request_context, set_request_context
from tasktrack.engine.errors import InternalError, TaskTrackError, ValidationError
from tasktrack.engine.logging import (
    configure_stdlib_logging,
    init_logging,
    log,
    log_api_request,
    log_system_event,
    shutdown_logging,
)

logger = logging.getLogger("tasktrack.api")

SERVER_ERROR_MESSAGE = "Server error"


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------

def error_envelope(message: str, errors: Optional[list] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors is not None:
        body["errors"] = errors
    return body


def _error_response(exc: TaskTrackError) -> JSONResponse:
    if isinstance(exc, ValidationError):
        body = error_envelope(exc.message, exc.validation_errors)
    elif isinstance(exc, InternalError):
        body = error_envelope(SERVER_ERROR_MESSAGE)
    else:
        body = error_envelope(exc.message)
    return JSONResponse(status_code=exc.status_code, content=body)


def _register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(TaskTrackError)
    async def handle_tasktrack_error(request: Request, exc: TaskTrackError) -> JSONResponse:
        if isinstance(exc, InternalError):
            request_id = getattr(request.state, "request_id", None)
            logger.error(f"Internal error [{request_id}]: {exc!r}", exc_info=exc.__cause__)
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {
                "field": ".".join(str(p) for p in err.get("loc", ())[1:]) or "body",
                "message": err.get("msg", "Invalid value"),
                "value": None,
            }
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content=error_envelope("Validation failed", errors))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        request_id = getattr(request.state, "request_id", None)
        logger.exception(f"Unhandled error [{request_id}] {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content=error_envelope(SERVER_ERROR_MESSAGE))


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    config: Optional[TaskTrackConfig] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """
    Build the TaskTrack FastAPI application.

    Args:
        config: Validated configuration. Loaded from tasktrack.yaml and the
            environment when omitted (raises ConfigError if incomplete).
        database: Existing Database handle. Opened from ``config.database``
            when omitted and disposed on shutdown.
    """
    if config is None:
        config = load_config()
    config.require_complete()
    configure_stdlib_logging(config.logging.level)

    owns_database = database is None
    if database is None:
        database = open_database(config.database)

    services = build_services(config, database)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if config.logging.file_logging:
            queue_cfg = config.logging.async_queue
            init_logging(
                log_dir=config.logging.directory,
                flush_interval_ms=queue_cfg.flush_interval_ms,
                flush_batch_size=queue_cfg.flush_batch_size,
                max_queue_size=queue_cfg.max_queue_size,
            )
        log(log_system_event("startup", details={
            "environment": config.environment,
            "api_prefix": config.server.api_prefix,
        }))
        logger.info(f"{config.name} started ({config.environment})")
        try:
            yield
        finally:
            log(log_system_event("shutdown"))
            if owns_database:
                database.dispose()
            shutdown_logging()
            logger.info(f"{config.name} stopped")

    app = FastAPI(
        title=config.name,
        description="Authenticated personal task-tracking API",
        version=tasktrack.__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        ctx = RequestContext(
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )
        set_request_context(ctx)
        request.state.request_id = ctx.request_id
        start = time.monotonic()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Request-ID"] = ctx.request_id
            return response
        finally:
            log(log_api_request(
                method=ctx.method,
                path=ctx.path,
                status_code=status_code,
                duration_ms=(time.monotonic() - start) * 1000,
                request_id=ctx.request_id,
                user_id=ctx.user_id,
                client_ip=ctx.client_ip,
            ))
            clear_request_context()

    _register_exception_handlers(app)

    for router in ROUTERS:
        app.include_router(router, prefix=config.server.api_prefix)

    return app
