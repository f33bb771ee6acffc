"""Unit tests for tasktrack.engine.health — HealthCheckService."""

import asyncio

import pytest

from tasktrack.engine.health import (
    HealthCheckConfig,
    HealthCheckResult,
    HealthCheckService,
    HealthStatus,
)


class TestHealthStatus:
    def test_values(self):
        assert HealthStatus.HEALTHY == "healthy"
        assert HealthStatus.DEGRADED == "degraded"
        assert HealthStatus.UNHEALTHY == "unhealthy"
        assert HealthStatus.UNKNOWN == "unknown"


class TestHealthCheckResult:
    def test_to_dict(self):
        result = HealthCheckResult(name="db", status=HealthStatus.HEALTHY, latency_ms=5.234, message="OK")
        d = result.to_dict()
        assert d["name"] == "db"
        assert d["status"] == "healthy"
        assert d["latency_ms"] == 5.23
        assert d["message"] == "OK"
        assert "checked_at" in d


class TestHealthCheckService:
    def setup_method(self):
        self.svc = HealthCheckService()

    def test_register_check(self):
        async def my_check():
            return True
        self.svc.register_check("test", my_check)
        assert "test" in self.svc.registered_checks
        assert self.svc.get_last_result("test").status == HealthStatus.UNKNOWN

    def test_get_last_result_none(self):
        assert self.svc.get_last_result("nonexistent") is None

    @pytest.mark.asyncio
    async def test_async_check(self):
        async def my_check():
            return True
        self.svc.register_check("test", my_check)
        result = await self.svc.check("test")
        assert result.status == HealthStatus.HEALTHY
        assert result.message == "OK"

    @pytest.mark.asyncio
    async def test_sync_check_runs_in_thread(self):
        self.svc.register_check("sync", lambda: True)
        result = await self.svc.check("sync")
        assert result.status == HealthStatus.HEALTHY

    @pytest.mark.asyncio
    async def test_failing_check(self):
        def broken():
            raise RuntimeError("connection refused")
        self.svc.register_check("broken", broken)
        result = await self.svc.check("broken")
        assert result.status == HealthStatus.UNHEALTHY
        assert "connection refused" in result.message

    @pytest.mark.asyncio
    async def test_degraded_below_threshold(self):
        self.svc.register_check("flaky", lambda: False, HealthCheckConfig(unhealthy_threshold=3))
        result = await self.svc.check("flaky")
        assert result.status == HealthStatus.DEGRADED

    @pytest.mark.asyncio
    async def test_timeout(self):
        async def slow():
            await asyncio.sleep(5)
            return True
        self.svc.register_check("slow", slow, HealthCheckConfig(timeout=0.05))
        result = await self.svc.check("slow")
        assert result.status == HealthStatus.UNHEALTHY
        assert "Timeout" in result.message

    @pytest.mark.asyncio
    async def test_disabled_check(self):
        self.svc.register_check("off", lambda: True, HealthCheckConfig(enabled=False))
        result = await self.svc.check("off")
        assert result.status == HealthStatus.UNKNOWN

    @pytest.mark.asyncio
    async def test_unknown_check(self):
        result = await self.svc.check("missing")
        assert result.status == HealthStatus.UNKNOWN

    @pytest.mark.asyncio
    async def test_database_check(self, database):
        self.svc.register_database_check("database", database.engine)
        result = await self.svc.check("database")
        assert result.status == HealthStatus.HEALTHY

    @pytest.mark.asyncio
    async def test_service_health_summary(self):
        self.svc.register_check("a", lambda: True)
        assert (await self.svc.get_service_health())["status"] == "ok"
        self.svc.register_check("b", lambda: False)
        summary = await self.svc.get_service_health()
        assert summary["status"] == "degraded"
        assert set(summary["checks"]) == {"a", "b"}
