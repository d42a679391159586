from types import SimpleNamespace

from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from app.main import app
from app.routers import health as health_router


async def test_health_endpoint() -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Request-Id"]


async def test_healthz_endpoint_echoes_request_id() -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/healthz", headers={"X-Request-Id": "req-123"})

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Request-Id"] == "req-123"


async def test_ready_reports_down_redis(monkeypatch) -> None:
    def _broken_ping() -> None:
        raise RedisConnectionError("connection refused")

    monkeypatch.setattr(health_router, "check_db_health", lambda: True)
    monkeypatch.setattr(health_router, "get_redis_client", lambda: SimpleNamespace(ping=_broken_ping))

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/ready")

    assert response.status_code == 503
    detail = response.json()["detail"]
    assert detail["checks"] == {"db": "ok", "redis": "down"}


async def test_ready_when_dependencies_up(monkeypatch) -> None:
    monkeypatch.setattr(health_router, "check_db_health", lambda: True)
    monkeypatch.setattr(health_router, "get_redis_client", lambda: SimpleNamespace(ping=lambda: True))

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/ready")

    assert response.status_code == 200
    assert response.json()["status"] == "ready"
