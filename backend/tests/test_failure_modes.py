"""
Failure Injection Tests.

Validates behaviour when Redis or the registry store misbehaves.
"""

import pytest
from unittest.mock import patch, AsyncMock, MagicMock
from httpx import AsyncClient, ASGITransport
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import OperationalError

from backend.app.core.redis_client import ping_redis
from backend.app.main import app
from backend.app.services.vehicle_registry import VehicleRegistry


@pytest.mark.asyncio
async def test_health_reports_redis_down(client):
    """Health stays up when Redis is unreachable, but says so."""
    failing = MagicMock()
    failing.ping = AsyncMock(side_effect=RedisConnectionError("Connection refused"))

    with patch("backend.app.core.redis_client.redis_client", failing):
        assert await ping_redis() is False
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["redis"] == "down"


@pytest.mark.asyncio
async def test_health_reports_redis_up(client):
    response = await client.get("/health")

    assert response.json()["redis"] == "up"


@pytest.mark.asyncio
async def test_registry_health_when_store_fails():
    """A failing registry query is reported, not raised."""
    db = MagicMock()
    db.execute = AsyncMock(side_effect=OperationalError("SELECT 1", {}, Exception("server closed the connection")))

    health = await VehicleRegistry.health(db)

    assert health.status == "unhealthy"
    assert health.vehicles == 0
    assert "server closed the connection" in health.error


@pytest.mark.asyncio
async def test_unexpected_error_returns_generic_500(registry, supervisor_headers):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    with patch(
        "backend.app.api.v1.endpoints.vehicles.VehicleRegistry.require",
        AsyncMock(side_effect=RuntimeError("boom"))
    ):
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get(
                "/v1/vehicle-deployment/vehicles/registration/KA01AB1234", headers=supervisor_headers
            )

    assert response.status_code == 500
    assert response.json()["error_code"] == "ERR_INTERNAL_SERVER"
    assert "boom" not in response.json()["message"]


@pytest.mark.asyncio
async def test_correlation_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Correlation-ID": "abc-123"})

    assert response.headers["X-Correlation-ID"] == "abc-123"
    assert "X-Process-Time" in response.headers
