"""
TaskTrack Error Hierarchy — Structured exceptions mapped onto response envelopes.

Every error carries a human-readable message plus arbitrary context that is
serializable to JSON for the structured log files. The HTTP layer uses the
class-level ``status_code`` to pick the response status.

Hierarchy:
    TaskTrackError
    ├── AuthenticationError  — Missing / malformed / expired token, unknown principal (401)
    ├── ValidationError      — Request payload violates field constraints (400)
    ├── AuthorizationError   — Principal does not own the resource (403)
    ├── NotFoundError        — Resource absent or identifier malformed (404)
    ├── InternalError        — Store or infrastructure failure (500)
    └── ConfigError          — Invalid or incomplete startup configuration
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class TaskTrackError(Exception):
    """
    Base error for all TaskTrack failures.
    All context is kept serializable so it can go straight into log entries.
    """

    status_code: int = 500

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.request_id: Optional[str] = context.get("request_id")
        self.user_id: Optional[str] = context.get("user_id")
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to JSON-compatible dict for logging."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "status_code": self.status_code,
            "request_id": self.request_id,
            "user_id": self.user_id,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k not in ("request_id", "user_id")
            },
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.user_id:
            parts.append(f"user_id={self.user_id}")
        if self.request_id:
            parts.append(f"request_id={self.request_id}")
        return " | ".join(parts)


class AuthenticationError(TaskTrackError):
    """
    Identity could not be established for the request.

    ``reason`` is one of MissingToken / MalformedToken / ExpiredToken /
    PrincipalNotFound / InvalidCredentials.
    """

    status_code = 401

    MISSING_TOKEN = "MissingToken"
    MALFORMED_TOKEN = "MalformedToken"
    EXPIRED_TOKEN = "ExpiredToken"
    PRINCIPAL_NOT_FOUND = "PrincipalNotFound"
    INVALID_CREDENTIALS = "InvalidCredentials"

    def __init__(self, message: str, **context: Any):
        self.reason: Optional[str] = context.get("reason")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["reason"] = self.reason
        return d


class ValidationError(TaskTrackError):
    """
    Request payload failed validation.
    Carries one entry per violated field: {"field", "message", "value"}.
    """

    status_code = 400

    def __init__(self, message: str, **context: Any):
        self.validation_errors: List[Dict[str, Any]] = context.get("validation_errors") or []
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["validation_errors"] = self.validation_errors
        return d


class AuthorizationError(TaskTrackError):
    """Authenticated principal does not own the targeted resource."""

    status_code = 403

    def __init__(self, message: str, **context: Any):
        self.resource_id: Optional[str] = context.get("resource_id")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["resource_id"] = self.resource_id
        return d


class NotFoundError(TaskTrackError):
    """Resource absent, or its identifier is not well-formed for the store."""

    status_code = 404


class InternalError(TaskTrackError):
    """Store or infrastructure failure. Never surfaced to callers in detail."""

    status_code = 500

    def __init__(self, message: str, **context: Any):
        self.operation: Optional[str] = context.get("operation")
        super().__init__(message, **context)


class ConfigError(TaskTrackError):
    """Configuration error — missing secret, missing store URL, bad YAML."""
    pass
