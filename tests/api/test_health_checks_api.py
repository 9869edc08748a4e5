"""Tests for the health check, alert rule and uptime endpoints."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from statuswatch.config import Settings
from statuswatch.health.checkers import CheckExecutor
from statuswatch.health.models import CheckResult
from statuswatch.main import app
from statuswatch.models.entity import CheckType, StatusApp
from statuswatch.workers.setup import (
    get_health_check_scheduler,
    init_workers,
    shutdown_workers,
)


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client with the monitoring workers running against the test database."""
    config = Settings(health_check_settings_source="static", smtp_host=None)
    await init_workers(config, session_factory=session_factory, start_jobs=False)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await shutdown_workers()


@pytest_asyncio.fixture
async def bare_client():
    """HTTP client without initialized workers."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, bare_client):
        response = await bare_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestWorkersNotInitialized:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/health-checks/settings"),
            ("PUT", "/api/health-checks/settings"),
            ("POST", "/api/health-checks/trigger"),
            ("POST", f"/api/health-checks/trigger/{uuid4()}"),
            ("POST", "/api/alert-rules/evaluate"),
            ("POST", "/api/uptime/backfill"),
        ],
    )
    async def test_returns_503(self, bare_client, method, path):
        response = await bare_client.request(method, path, json={})

        assert response.status_code == 503


class TestSettingsEndpoints:
    @pytest.mark.asyncio
    async def test_get_settings(self, client):
        response = await client.get("/api/health-checks/settings")

        assert response.status_code == 200
        assert response.json() == {
            "enabled": True,
            "scheduler_interval_seconds": 10,
            "pool_size": 10,
            "default_interval_seconds": 60,
            "default_timeout_seconds": 10,
        }

    @pytest.mark.asyncio
    async def test_update_settings(self, client):
        response = await client.put(
            "/api/health-checks/settings", json={"enabled": False, "pool_size": 4}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["enabled"] is False
        assert data["pool_size"] == 4
        assert data["scheduler_interval_seconds"] == 10

        response = await client.get("/api/health-checks/settings")
        assert response.json()["enabled"] is False

    @pytest.mark.asyncio
    async def test_update_rejects_non_positive(self, client):
        response = await client.put("/api/health-checks/settings", json={"pool_size": 0})

        assert response.status_code == 422


class TestTriggerEndpoints:
    @pytest.mark.asyncio
    async def test_trigger_all_with_nothing_eligible(self, client):
        response = await client.post("/api/health-checks/trigger")

        assert response.status_code == 200
        assert response.json() == {"submitted": 0}

    @pytest.mark.asyncio
    async def test_trigger_unknown_entity(self, client):
        entity_id = uuid4()

        response = await client.post(f"/api/health-checks/trigger/{entity_id}")

        assert response.status_code == 200
        assert response.json() == {
            "success": False,
            "message": f"Entity not found: {entity_id}",
            "duration_ms": None,
        }

    @pytest.mark.asyncio
    async def test_trigger_entity(self, client, session_factory):
        monitored = StatusApp(
            name="Shop",
            check_enabled=True,
            check_type=CheckType.HTTP_GET,
            check_target="https://shop.example.com",
        )
        async with session_factory() as session:
            session.add(monitored)
            await session.commit()

        executor = MagicMock(spec=CheckExecutor)
        executor.run = AsyncMock(return_value=CheckResult(success=True, message="HTTP 200 (9ms)"))
        get_health_check_scheduler().executor = executor

        response = await client.post(f"/api/health-checks/trigger/{monitored.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "HTTP 200 (9ms)"
        assert data["duration_ms"] >= 0

    @pytest.mark.asyncio
    async def test_trigger_invalid_id(self, client):
        response = await client.post("/api/health-checks/trigger/not-a-uuid")

        assert response.status_code == 422


class TestAlertAndUptimeEndpoints:
    @pytest.mark.asyncio
    async def test_evaluate_alert_rules(self, client):
        response = await client.post("/api/alert-rules/evaluate")

        assert response.status_code == 200
        assert response.json() == {"fired": 0}

    @pytest.mark.asyncio
    async def test_backfill(self, client):
        response = await client.post("/api/uptime/backfill", params={"days": 2})

        assert response.status_code == 200
        assert response.json() == {"days_processed": 2}

    @pytest.mark.asyncio
    async def test_backfill_rejects_out_of_range(self, client):
        response = await client.post("/api/uptime/backfill", params={"days": 400})

        assert response.status_code == 422
