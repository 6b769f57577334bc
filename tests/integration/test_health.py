from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def fake_redis(monkeypatch):
    redis = MagicMock()
    redis.ping = AsyncMock(return_value=True)
    redis.aclose = AsyncMock()
    monkeypatch.setattr("app.api.health.Redis.from_url", lambda *args, **kwargs: redis)
    return redis


@pytest.mark.asyncio
async def test_health_ok(client, fake_redis):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "dependencies": {"database": "ok", "redis": "ok"},
    }
    fake_redis.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_health_reports_redis_down(client, fake_redis):
    fake_redis.ping.side_effect = ConnectionError("connection refused")

    response = await client.get("/health")

    body = response.json()
    assert body["status"] == "unhealthy"
    assert body["dependencies"]["database"] == "ok"
    assert "connection refused" in body["dependencies"]["redis"]


@pytest.mark.asyncio
async def test_request_id_is_echoed(client, fake_redis):
    response = await client.get("/health", headers={"X-Request-Id": "trace-123"})

    assert response.headers["X-Request-Id"] == "trace-123"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Referrer-Policy"] == "no-referrer"
