"""
TaskTrack Health Check — store connectivity monitoring for the /health endpoint.

Provides:
    - HealthCheckService: named checks (sync or async), consecutive-failure tracking
    - register_database_check(): SELECT 1 against the configured engine
    - get_service_health(): summary dict consumed by the health route
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import text

logger = logging.getLogger("tasktrack.engine.health")


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class HealthCheckResult:
    """Result of a single health check."""
    name: str
    status: HealthStatus
    latency_ms: float = 0.0
    message: str = ""
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
            "message": self.message,
            "checked_at": self.checked_at.isoformat(),
        }


@dataclass
class HealthCheckConfig:
    enabled: bool = True
    timeout: int = 5
    unhealthy_threshold: int = 1  # Consecutive failures before marking unhealthy


@dataclass
class _RegisteredCheck:
    name: str
    check_fn: Callable
    config: HealthCheckConfig
    consecutive_failures: int = 0


class HealthCheckService:
    """
    Named probes with consecutive-failure tracking.

    A probe is a sync or async callable returning True when healthy. Sync
    probes (the SQLAlchemy one) run in a worker thread so /health never
    blocks the event loop.

    Usage:
        service = HealthCheckService()
        service.register_database_check("database", database.engine)
        summary = await service.get_service_health()
    """

    def __init__(self):
        self._probes: Dict[str, _RegisteredCheck] = {}
        self._last: Dict[str, HealthCheckResult] = {}

    def register_check(
        self,
        name: str,
        check_fn: Callable,
        config: Optional[HealthCheckConfig] = None,
    ) -> None:
        self._probes[name] = _RegisteredCheck(name, check_fn, config or HealthCheckConfig())
        self._last[name] = HealthCheckResult(name, HealthStatus.UNKNOWN)
        logger.debug(f"Health probe registered: {name}")

    def register_database_check(
        self,
        name: str,
        engine,
        config: Optional[HealthCheckConfig] = None,
    ) -> None:
        """Probe the store with SELECT 1 on a pooled connection."""

        def ping() -> bool:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True

        self.register_check(name, ping, config)

    async def _probe(self, probe: _RegisteredCheck) -> bool:
        if inspect.iscoroutinefunction(probe.check_fn):
            call = probe.check_fn()
        else:
            call = asyncio.to_thread(probe.check_fn)
        return bool(await asyncio.wait_for(call, timeout=probe.config.timeout))

    async def check(self, name: str) -> HealthCheckResult:
        """Run one probe and remember the outcome."""
        probe = self._probes.get(name)
        if probe is None:
            return HealthCheckResult(name, HealthStatus.UNKNOWN, message=f"No health check registered for '{name}'")
        if not probe.config.enabled:
            return HealthCheckResult(name, HealthStatus.UNKNOWN, message="Health check disabled")

        started = time.monotonic()
        try:
            healthy = await self._probe(probe)
            message = "OK" if healthy else "Check returned unhealthy"
        except asyncio.TimeoutError:
            healthy, message = False, f"Timeout after {probe.config.timeout}s"
        except Exception as e:
            logger.warning(f"Health probe '{name}' raised: {e}")
            healthy, message = False, str(e)
        elapsed_ms = (time.monotonic() - started) * 1000

        if healthy:
            probe.consecutive_failures = 0
            status = HealthStatus.HEALTHY
        else:
            probe.consecutive_failures += 1
            threshold = probe.config.unhealthy_threshold
            status = HealthStatus.UNHEALTHY if probe.consecutive_failures >= threshold else HealthStatus.DEGRADED

        result = HealthCheckResult(name, status, elapsed_ms, message)
        self._last[name] = result
        return result

    async def check_all(self) -> Dict[str, HealthCheckResult]:
        """Run every probe concurrently."""
        if self._probes:
            await asyncio.gather(*(self.check(name) for name in self._probes))
        return dict(self._last)

    async def get_service_health(self) -> Dict[str, Any]:
        """
        Summary for the /health route.

        "ok" when every probe is healthy, otherwise "degraded". The process
        is serving either way.
        """
        results = await self.check_all()
        all_healthy = all(r.status is HealthStatus.HEALTHY for r in results.values())
        return {
            "status": "ok" if all_healthy else "degraded",
            "checks": {name: result.to_dict() for name, result in results.items()},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def get_last_result(self, name: str) -> Optional[HealthCheckResult]:
        return self._last.get(name)

    @property
    def registered_checks(self) -> List[str]:
        return list(self._probes)
