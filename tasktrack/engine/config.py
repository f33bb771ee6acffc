"""
TaskTrack Configuration — Load and validate tasktrack.yaml + environment at startup.

The resulting ``TaskTrackConfig`` is built exactly once (by the CLI or the
app factory) and passed by reference to the components that need it.
Request-handling code never looks configuration up on its own.

Usage:
    from tasktrack.engine.config import load_config
    config = load_config("tasktrack.yaml")
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from tasktrack.engine.errors import ConfigError

DEFAULT_CONFIG_FILE = "tasktrack.yaml"

# Environment variable → (section, key). First match wins for each target.
ENV_OVERRIDES = [
    ("TASKTRACK_JWT_SECRET", "security", "jwt_secret"),
    ("JWT_SECRET", "security", "jwt_secret"),
    ("TASKTRACK_DATABASE_URL", "database", "url"),
    ("DATABASE_URL", "database", "url"),
    ("TASKTRACK_LOG_LEVEL", "logging", "level"),
    ("PORT", "server", "port"),
]


# ---------------------------------------------------------------------------
# Pydantic models for tasktrack.yaml
# ---------------------------------------------------------------------------

class DatabaseConfig(BaseModel):
    url: str = ""
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 1800
    pool_pre_ping: bool = True
    create_tables: bool = True
    echo: bool = False


class SecurityConfig(BaseModel):
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    token_ttl_seconds: int = 30 * 24 * 3600
    password_min_length: int = 6
    bcrypt_rounds: int = 12

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        if v not in ("HS256", "HS384", "HS512"):
            raise ValueError(f"jwt_algorithm must be HS256/HS384/HS512, got '{v}'")
        return v


class LogAsyncQueueConfig(BaseModel):
    flush_interval_ms: int = 100
    flush_batch_size: int = 50
    max_queue_size: int = 10000


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file_logging: bool = True
    directory: str = ".tasktrack/logs"
    async_queue: LogAsyncQueueConfig = LogAsyncQueueConfig()


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 5000
    api_prefix: str = "/api"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    @field_validator("api_prefix")
    @classmethod
    def normalize_prefix(cls, v: str) -> str:
        v = v.strip()
        if not v or v == "/":
            return ""
        return "/" + v.strip("/")


class TaskTrackConfig(BaseModel):
    """Root model for tasktrack.yaml."""
    name: str = "TaskTrack"
    environment: str = "dev"

    database: DatabaseConfig = DatabaseConfig()
    security: SecurityConfig = SecurityConfig()
    logging: LoggingConfig = LoggingConfig()
    server: ServerConfig = ServerConfig()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ("dev", "staging", "prod"):
            raise ValueError(f"environment must be dev/staging/prod, got '{v}'")
        return v

    def require_complete(self) -> "TaskTrackConfig":
        """
        Verify the settings the service cannot run without.

        Raises:
            ConfigError listing every missing setting.
        """
        missing = []
        if not self.security.jwt_secret:
            missing.append("security.jwt_secret (JWT_SECRET)")
        if not self.database.url:
            missing.append("database.url (DATABASE_URL)")
        if missing:
            raise ConfigError(
                f"Missing required configuration: {', '.join(missing)}",
                missing=missing,
            )
        return self


# ---------------------------------------------------------------------------
# Config Loading
# ---------------------------------------------------------------------------

def _apply_env_overrides(raw: Dict[str, Any], env: Mapping[str, str]) -> Dict[str, Any]:
    """Layer environment variables over the file contents."""
    applied = set()
    for var, section, key in ENV_OVERRIDES:
        if (section, key) in applied:
            continue
        value = env.get(var)
        if value:
            raw.setdefault(section, {})
            raw[section][key] = value
            applied.add((section, key))

    env_name = env.get("TASKTRACK_ENV")
    if env_name:
        raw["environment"] = env_name
    return raw


def load_config(
    config_path: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    require: bool = True,
) -> TaskTrackConfig:
    """
    Load and validate tasktrack.yaml, then apply environment overrides.

    Args:
        config_path: Path to the YAML file. Defaults to ./tasktrack.yaml;
            a missing file is fine, the environment may supply everything.
        env: Environment mapping (defaults to os.environ).
        require: When True, a missing secret or store URL raises ConfigError.

    Returns:
        Validated TaskTrackConfig instance.
    """
    if env is None:
        env = os.environ

    path = Path(config_path or DEFAULT_CONFIG_FILE)
    raw: Dict[str, Any] = {}
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}", path=str(path)) from e
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file {path} must contain a mapping", path=str(path))
    elif config_path is not None:
        raise ConfigError(f"Config file not found: {path}", path=str(path))

    raw = _apply_env_overrides(raw, env)

    try:
        config = TaskTrackConfig(**raw)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}", path=str(path)) from e

    if require:
        config.require_complete()
    return config
