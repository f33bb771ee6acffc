"""
TaskTrack Request Context — per-request correlation data held in contextvars.

Only logging reads this. Business logic receives the principal explicitly.

Usage:
    from tasktrack.engine.context import RequestContext, set_request_context
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

current_request_context: ContextVar[Optional["RequestContext"]] = ContextVar(
    "request_context", default=None
)


@dataclass
class RequestContext:
    """Correlation info for one HTTP request."""

    method: str = ""
    path: str = ""
    request_id: str = field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")
    user_id: Optional[str] = None
    client_ip: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for logging."""
        return {
            "request_id": self.request_id,
            "method": self.method,
            "path": self.path,
            "user_id": self.user_id,
            "client_ip": self.client_ip,
        }


def set_request_context(ctx: RequestContext) -> None:
    current_request_context.set(ctx)


def get_request_context() -> Optional[RequestContext]:
    return current_request_context.get()


def bind_user(user_id: str) -> None:
    """Attach the verified principal id to the current request context."""
    ctx = current_request_context.get()
    if ctx is not None:
        ctx.user_id = user_id


def clear_request_context() -> None:
    current_request_context.set(None)
