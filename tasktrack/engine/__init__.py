"""TaskTrack Engine — Configuration, errors, logging, request context, health, security."""

from tasktrack.engine.config import TaskTrackConfig, load_config  # noqa: F401
from tasktrack.engine.errors import TaskTrackError  # noqa: F401
from tasktrack.engine.health import HealthCheckService  # noqa: F401
from tasktrack.engine.security import IdentityVerifier, TokenService  # noqa: F401

__all__ = [
    "TaskTrackConfig",
    "load_config",
    "TaskTrackError",
    "HealthCheckService",
    "IdentityVerifier",
    "TokenService",
]
