"""
TaskTrack Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v
"""

from __future__ import annotations

from typing import Callable, Dict

import pytest
from fastapi.testclient import TestClient

from tasktrack.api import create_app
from tasktrack.engine.config import DatabaseConfig, LoggingConfig, SecurityConfig, TaskTrackConfig
from tasktrack.engine.logging import shutdown_logging
from tasktrack.schemas import Principal
from tasktrack.services.task_store import TaskStore

TEST_SECRET = "test-secret-key"


# ---------------------------------------------------------------------------
# Environment setup — in-memory SQLite, no log files
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_logging():
    """Stop any global log queue a test started."""
    yield
    shutdown_logging()


@pytest.fixture
def config() -> TaskTrackConfig:
    return TaskTrackConfig(
        database=DatabaseConfig(url="sqlite:///:memory:"),
        security=SecurityConfig(jwt_secret=TEST_SECRET, bcrypt_rounds=4),
        logging=LoggingConfig(file_logging=False),
    )


@pytest.fixture
def app(config):
    return create_app(config)


@pytest.fixture
def services(app):
    """The service container the app is wired with."""
    return app.state.services


@pytest.fixture
def database(services):
    return services.database


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


# ---------------------------------------------------------------------------
# Principals and tokens
# ---------------------------------------------------------------------------

@pytest.fixture
def alice(services) -> Principal:
    return services.accounts.create_user("Alice", "alice@example.com", "alice-password")


@pytest.fixture
def bob(services) -> Principal:
    return services.accounts.create_user("Bob", "bob@example.com", "bob-password")


@pytest.fixture
def auth_headers(services) -> Callable[[Principal], Dict[str, str]]:
    """Build an Authorization header for a principal."""

    def _headers(principal: Principal) -> Dict[str, str]:
        return {"Authorization": f"Bearer {services.tokens.issue(principal.id)}"}

    return _headers


@pytest.fixture
def controller(services):
    return services.tasks


@pytest.fixture
def store(database):
    return TaskStore(database)
