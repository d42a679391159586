from __future__ import annotations

from datetime import date

from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from app.main import app
from app.services import rate_limit
from app.settings import settings

TENANT_ID = "bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb"
INACTIVE_TENANT_ID = "eeeeeeee-eeee-eeee-eeee-eeeeeeeeeeee"
UNKNOWN_TENANT_ID = "99999999-9999-9999-9999-999999999999"


def _consent(tenant_id: str = TENANT_ID, **overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "tenant_id": tenant_id,
        "anonymous_id": "anon-1",
        "necessary_cookies": False,
        "analytics_cookies": True,
        "marketing_cookies": False,
    }
    payload.update(overrides)
    return payload


async def test_record_consent_captures_request_metadata(seeded_context: dict[str, str]) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.post(
            "/api/public/cookie-consent",
            json=_consent(),
            headers={"x-forwarded-for": "203.0.113.7, 10.0.0.1", "user-agent": "pytest-agent"},
        )
        latest = await client.get(
            "/api/public/cookie-consent", params={"tenant_id": TENANT_ID, "anonymous_id": "anon-1"}
        )
        nothing = await client.get(
            "/api/public/cookie-consent", params={"tenant_id": TENANT_ID, "anonymous_id": "anon-2"}
        )
        listed = await client.get("/api/compliance/consents", headers=seeded_context)

    assert response.status_code == 201
    body = response.json()
    assert body["necessary_cookies"] is True
    assert body["analytics_cookies"] is True
    assert body["is_expired"] is False
    assert latest.json()["id"] == body["id"]
    assert nothing.status_code == 200
    assert nothing.json() is None
    assert listed.json()["pagination"]["total"] == 1


async def test_record_consent_rejects_bad_tenants(seeded_context: dict[str, str]) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        missing = await client.post("/api/public/cookie-consent", json={"anonymous_id": "anon-1"})
        unknown = await client.post("/api/public/cookie-consent", json=_consent(UNKNOWN_TENANT_ID))
        inactive = await client.post("/api/public/cookie-consent", json=_consent(INACTIVE_TENANT_ID))

    assert missing.status_code == 400
    assert unknown.status_code == 400
    assert unknown.json()["detail"] == f"Invalid tenant: {UNKNOWN_TENANT_ID}"
    assert inactive.status_code == 403


async def test_banner_settings_drive_consent_expiry(
    seeded_context: dict[str, str], member_context: dict[str, str]
) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        defaults = await client.get("/api/public/cookie-banner", params={"tenant_id": TENANT_ID})
        denied = await client.put(
            "/api/compliance/consent-banner", headers=member_context, json={"consent_expiry_days": 30}
        )
        invalid = await client.put(
            "/api/compliance/consent-banner", headers=seeded_context, json={"consent_expiry_days": 400}
        )
        updated = await client.put(
            "/api/compliance/consent-banner",
            headers=seeded_context,
            json={"consent_expiry_days": 30, "heading_text": "Cookies?", "position": "top"},
        )
        public = await client.get("/api/public/cookie-banner", params={"tenant_id": TENANT_ID})
        recorded = await client.post("/api/public/cookie-consent", json=_consent())

    assert defaults.json()["consent_expiry_days"] == 365
    assert defaults.json()["heading_text"] == "We value your privacy"
    assert denied.status_code == 403
    assert invalid.status_code == 400
    assert updated.json()["heading_text"] == "Cookies?"
    assert public.json()["position"] == "top"
    assert public.json()["accept_all_button_text"] == "Accept All"

    body = recorded.json()
    given = body["consent_given_at"][:10]
    expires = body["expires_at"][:10]
    assert given != expires
    assert (date.fromisoformat(expires) - date.fromisoformat(given)).days == 30


async def test_site_config_reports_early_access(monkeypatch) -> None:
    monkeypatch.setattr(settings, "early_access_mode", True)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/api/public/site-config")

    assert response.json() == {"early_access_mode": True}


class _CountingRedis:
    def __init__(self) -> None:
        self.counts: dict[str, int] = {}
        self.expiries: dict[str, int] = {}

    def incr(self, key: str) -> int:
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    def expire(self, key: str, seconds: int) -> bool:
        self.expiries[key] = seconds
        return True


class _UnavailableRedis:
    def incr(self, key: str) -> int:
        raise RedisConnectionError("connection refused")


async def test_consent_limit_is_per_visitor(seeded_context: dict[str, str], monkeypatch) -> None:
    redis = _CountingRedis()
    monkeypatch.setattr(rate_limit, "get_redis_client", lambda: redis)
    monkeypatch.setattr(settings, "consent_rate_limit_per_minute", 3)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        visitors = [
            await client.post(
                "/api/public/cookie-consent",
                json=_consent(anonymous_id=f"anon-{index}"),
                headers={"x-forwarded-for": f"198.51.100.{index}"},
            )
            for index in range(5)
        ]
        repeat = [
            await client.post(
                "/api/public/cookie-consent",
                json=_consent(anonymous_id="anon-busy"),
                headers={"x-forwarded-for": "203.0.113.9, 10.0.0.1"},
            )
            for _ in range(4)
        ]

    assert [response.status_code for response in visitors] == [201, 201, 201, 201, 201]
    assert [response.status_code for response in repeat] == [201, 201, 201, 429]
    assert repeat[-1].json()["detail"] == "rate limit exceeded for cookie_consent"
    assert all(seconds == 60 for seconds in redis.expiries.values())
    assert len(redis.counts) == 6


async def test_consent_limit_allows_requests_when_redis_is_down(
    seeded_context: dict[str, str], monkeypatch
) -> None:
    monkeypatch.setattr(rate_limit, "get_redis_client", lambda: _UnavailableRedis())
    monkeypatch.setattr(settings, "consent_rate_limit_per_minute", 1)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        first = await client.post("/api/public/cookie-consent", json=_consent())
        second = await client.post("/api/public/cookie-consent", json=_consent())

    assert first.status_code == 201
    assert second.status_code == 201
