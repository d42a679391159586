from __future__ import annotations

import uuid

from httpx import ASGITransport, AsyncClient

from app.main import app

TENANT_ID = "bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb"


def _category(category: str, name: str, **overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {"category": category, "name": name, "description": f"{name} cookies"}
    payload.update(overrides)
    return payload


def _cookie(category_id: str, name: str, **overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "category_id": category_id,
        "name": name,
        "provider": "Google",
        "purpose": "Distinguishes visitors",
        "duration": "2 years",
    }
    payload.update(overrides)
    return payload


async def test_cookie_categories_crud_and_public_banner(seeded_context: dict[str, str]) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        marketing = await client.post(
            "/api/compliance/cookie-categories", headers=seeded_context, json=_category("MARKETING", "Marketing")
        )
        necessary = await client.post(
            "/api/compliance/cookie-categories", headers=seeded_context, json=_category("NECESSARY", "Necessary")
        )
        duplicate = await client.post(
            "/api/compliance/cookie-categories", headers=seeded_context, json=_category("NECESSARY", "Again")
        )
        marketing_id = marketing.json()["id"]
        necessary_id = necessary.json()["id"]
        ga = await client.post("/api/compliance/cookies", headers=seeded_context, json=_cookie(marketing_id, "_gcl_au"))
        await client.post("/api/compliance/cookies", headers=seeded_context, json=_cookie(marketing_id, "_fbp"))
        await client.post(
            "/api/compliance/cookies",
            headers=seeded_context,
            json=_cookie(necessary_id, "session", provider="OneClickTag", type="http"),
        )
        renamed = await client.put(
            f"/api/compliance/cookie-categories/{marketing_id}",
            headers=seeded_context,
            json={"name": "Advertising"},
        )
        listed = await client.get("/api/compliance/cookie-categories", headers=seeded_context)
        banner = await client.get("/api/public/cookie-banner", params={"tenant_id": TENANT_ID})

    assert marketing.status_code == 201
    assert marketing.json()["is_required"] is False
    assert necessary.json()["is_required"] is True
    assert duplicate.status_code == 409
    assert ga.status_code == 201
    assert renamed.json()["name"] == "Advertising"
    assert [row["category"] for row in listed.json()] == ["NECESSARY", "MARKETING"]
    body = banner.json()
    assert body["position"] == "bottom"
    assert [row["category"] for row in body["categories"]] == ["NECESSARY", "MARKETING"]
    assert [cookie["name"] for cookie in body["categories"][1]["cookies"]] == ["_fbp", "_gcl_au"]
    assert body["categories"][0]["cookies"][0]["type"] == "http"


async def test_cookies_filter_update_and_delete(seeded_context: dict[str, str]) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        analytics = await client.post(
            "/api/compliance/cookie-categories", headers=seeded_context, json=_category("ANALYTICS", "Analytics")
        )
        marketing = await client.post(
            "/api/compliance/cookie-categories", headers=seeded_context, json=_category("MARKETING", "Marketing")
        )
        analytics_id = analytics.json()["id"]
        marketing_id = marketing.json()["id"]
        ga = await client.post("/api/compliance/cookies", headers=seeded_context, json=_cookie(analytics_id, "_ga"))
        hotjar = await client.post(
            "/api/compliance/cookies",
            headers=seeded_context,
            json=_cookie(analytics_id, "_hjid", provider="Hotjar"),
        )
        fbp = await client.post(
            "/api/compliance/cookies", headers=seeded_context, json=_cookie(marketing_id, "_fbp", provider="Meta")
        )
        by_category = await client.get(
            "/api/compliance/cookies", headers=seeded_context, params={"category_id": analytics_id}
        )
        by_provider = await client.get("/api/compliance/cookies", headers=seeded_context, params={"search": "hot"})
        moved = await client.put(
            f"/api/compliance/cookies/{hotjar.json()['id']}",
            headers=seeded_context,
            json={"category_id": marketing_id, "duration": "1 year"},
        )
        bad_move = await client.put(
            f"/api/compliance/cookies/{ga.json()['id']}",
            headers=seeded_context,
            json={"category_id": str(uuid.uuid4())},
        )
        partial_bulk = await client.request(
            "DELETE",
            "/api/compliance/cookies",
            headers=seeded_context,
            json={"ids": [fbp.json()["id"], str(uuid.uuid4())]},
        )
        still_there = await client.get(f"/api/compliance/cookies/{fbp.json()['id']}", headers=seeded_context)
        bulk = await client.request(
            "DELETE",
            "/api/compliance/cookies",
            headers=seeded_context,
            json={"ids": [fbp.json()["id"], hotjar.json()["id"]]},
        )
        removed = await client.delete(f"/api/compliance/cookies/{ga.json()['id']}", headers=seeded_context)
        dropped_category = await client.delete(
            f"/api/compliance/cookie-categories/{analytics_id}", headers=seeded_context
        )
        remaining = await client.get("/api/compliance/cookies", headers=seeded_context)
        missing_category = await client.get(
            f"/api/compliance/cookie-categories/{analytics_id}", headers=seeded_context
        )

    assert [row["name"] for row in by_category.json()] == ["_ga", "_hjid"]
    assert [row["name"] for row in by_provider.json()] == ["_hjid"]
    assert moved.json()["category_id"] == marketing_id
    assert moved.json()["duration"] == "1 year"
    assert bad_move.status_code == 404
    assert partial_bulk.status_code == 404
    assert still_there.status_code == 200
    assert bulk.json() == {"deleted": 2}
    assert removed.status_code == 204
    assert dropped_category.status_code == 204
    assert remaining.json() == []
    assert missing_category.status_code == 404
    assert missing_category.json()["detail"] == f"Cookie category with ID {analytics_id} not found"


async def test_cookie_registry_is_tenant_scoped_and_admin_only(
    seeded_context: dict[str, str], member_context: dict[str, str], other_tenant_context: dict[str, str]
) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        category = await client.post(
            "/api/compliance/cookie-categories", headers=seeded_context, json=_category("ANALYTICS", "Analytics")
        )
        category_id = category.json()["id"]
        member_create = await client.post(
            "/api/compliance/cookie-categories", headers=member_context, json=_category("MARKETING", "Marketing")
        )
        member_cookie = await client.post(
            "/api/compliance/cookies", headers=member_context, json=_cookie(category_id, "_ga")
        )
        member_read = await client.get(f"/api/compliance/cookie-categories/{category_id}", headers=member_context)
        foreign_read = await client.get(
            f"/api/compliance/cookie-categories/{category_id}", headers=other_tenant_context
        )
        foreign_cookie = await client.post(
            "/api/compliance/cookies", headers=other_tenant_context, json=_cookie(category_id, "_ga")
        )
        foreign_list = await client.get("/api/compliance/cookie-categories", headers=other_tenant_context)

    assert member_create.status_code == 403
    assert member_cookie.status_code == 403
    assert member_read.status_code == 200
    assert foreign_read.status_code == 404
    assert foreign_cookie.status_code == 404
    assert foreign_list.json() == []
