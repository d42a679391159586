from __future__ import annotations

from httpx import ASGITransport, AsyncClient

from app.main import app


async def _linked_customer(client: AsyncClient, headers: dict[str, str], email: str = "site@example.com") -> str:
    created = await client.post(
        "/api/customers",
        headers=headers,
        json={"email": email, "first_name": "Site", "last_name": "Owner"},
    )
    customer_id = created.json()["id"]
    await client.put(
        f"/api/customers/{customer_id}/google-account",
        headers=headers,
        json={"google_account_id": "google-1", "gtm_container_id": "GTM-1"},
    )
    return customer_id


async def test_scroll_depth_requires_scroll_percentage(seeded_context: dict[str, str]) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        customer_id = await _linked_customer(client, seeded_context)
        base = {"customer_id": customer_id, "name": "Deep scroll", "type": "SCROLL_DEPTH", "destinations": ["GA4"]}
        rejected = await client.post("/api/trackings", headers=seeded_context, json=base)
        out_of_range = await client.post(
            "/api/trackings", headers=seeded_context, json={**base, "config": {"scrollPercentage": 150}}
        )
        accepted = await client.post(
            "/api/trackings", headers=seeded_context, json={**base, "config": {"scrollPercentage": 75}}
        )

    assert rejected.status_code == 400
    assert rejected.json()["errors"][0]["field"] == "config.scrollPercentage"
    assert out_of_range.status_code == 400
    assert out_of_range.json()["errors"][0]["field"] == "config.scrollPercentage"

    assert accepted.status_code == 201
    body = accepted.json()
    assert body["status"] == "PENDING"
    assert body["config"] == {"scrollPercentage": 75}
    assert body["ga4_event_name"] == "scroll"
    assert body["conversion_category"] == "DEFAULT"


async def test_tracking_requires_connected_google_account(seeded_context: dict[str, str]) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        created = await client.post(
            "/api/customers",
            headers=seeded_context,
            json={"email": "plain@example.com", "first_name": "Plain", "last_name": "Customer"},
        )
        response = await client.post(
            "/api/trackings",
            headers=seeded_context,
            json={
                "customer_id": created.json()["id"],
                "name": "Buy button",
                "type": "BUTTON_CLICK",
                "selector": "#buy",
                "destinations": ["GA4"],
            },
        )

    assert response.status_code == 400
    assert response.json()["detail"] == "Customer must have a connected Google account"


async def test_custom_event_needs_explicit_event_name(seeded_context: dict[str, str]) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        customer_id = await _linked_customer(client, seeded_context)
        payload = {
            "customer_id": customer_id,
            "name": "Custom",
            "type": "CUSTOM_EVENT",
            "selector": ".cta",
            "destinations": ["BOTH"],
        }
        missing = await client.post("/api/trackings", headers=seeded_context, json=payload)
        named = await client.post(
            "/api/trackings", headers=seeded_context, json={**payload, "ga4_event_name": "cta_click"}
        )

    assert missing.status_code == 400
    assert [error["field"] for error in missing.json()["errors"]] == ["ga4EventName"]
    assert named.status_code == 201
    assert named.json()["ga4_event_name"] == "cta_click"


async def test_tracking_update_status_and_listing(
    seeded_context: dict[str, str], other_tenant_context: dict[str, str]
) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        customer_id = await _linked_customer(client, seeded_context)
        created = await client.post(
            "/api/trackings",
            headers=seeded_context,
            json={
                "customer_id": customer_id,
                "name": "Checkout",
                "type": "PURCHASE",
                "url_pattern": "/thank-you",
                "config": {"trackValue": True, "currency": "USD"},
                "destinations": ["GOOGLE_ADS"],
                "ads_conversion_value": "49.99",
            },
        )
        tracking_id = created.json()["id"]

        activate_pending = await client.patch(
            f"/api/trackings/{tracking_id}/status", headers=seeded_context, json={"status": "ACTIVE"}
        )
        paused = await client.patch(
            f"/api/trackings/{tracking_id}/status", headers=seeded_context, json={"status": "PAUSED"}
        )
        resumed = await client.patch(
            f"/api/trackings/{tracking_id}/status", headers=seeded_context, json={"status": "ACTIVE"}
        )
        retyped = await client.put(
            f"/api/trackings/{tracking_id}",
            headers=seeded_context,
            json={"type": "PAGE_VIEW", "config": {}},
        )
        listed = await client.get("/api/trackings", headers=seeded_context, params={"customer_id": customer_id})
        by_customer = await client.get(f"/api/customers/{customer_id}/trackings", headers=seeded_context)
        analytics = await client.get(f"/api/customers/{customer_id}/analytics", headers=seeded_context)
        foreign = await client.get(f"/api/trackings/{tracking_id}", headers=other_tenant_context)
        deleted = await client.delete(f"/api/trackings/{tracking_id}", headers=seeded_context)

    assert created.status_code == 201
    assert created.json()["conversion_category"] == "PURCHASE"
    assert created.json()["ga4_event_name"] == "purchase"
    assert activate_pending.status_code == 400
    assert paused.json()["status"] == "PAUSED"
    assert resumed.json()["status"] == "ACTIVE"

    assert retyped.status_code == 200
    assert retyped.json()["status"] == "PENDING"
    assert retyped.json()["ga4_event_name"] == "page_view"
    assert retyped.json()["conversion_category"] == "PAGE_VIEW"

    assert listed.json()["pagination"]["total"] == 1
    assert by_customer.json()["data"][0]["id"] == tracking_id
    assert analytics.json()["total_trackings"] == 1
    assert analytics.json()["sync_rate"] == 0
    assert foreign.status_code == 404
    assert deleted.status_code == 204


async def test_tracking_types_catalogue() -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        everything = await client.get("/api/tracking-types")
        engagement = await client.get("/api/tracking-types", params={"category": "engagement"})

    assert everything.status_code == 200
    assert len(everything.json()) == 35
    scroll = next(item for item in engagement.json() if item["type"] == "SCROLL_DEPTH")
    assert scroll["required_fields"] == ["config.scrollPercentage"]
    assert {item["category"] for item in engagement.json()} == {"engagement"}


async def test_tracking_links_to_own_customer_conversion_action(
    seeded_context: dict[str, str], other_tenant_context: dict[str, str]
) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        shop_id = await _linked_customer(client, seeded_context, email="shop@example.com")
        agency_id = await _linked_customer(client, seeded_context, email="agency@example.com")
        action = await client.post(
            f"/api/customers/{shop_id}/conversion-actions",
            headers=seeded_context,
            json={"name": "Completed order", "tracking_type": "PURCHASE"},
        )
        foreign_action = await client.post(
            f"/api/customers/{agency_id}/conversion-actions",
            headers=seeded_context,
            json={"name": "Agency lead", "category": "SUBMIT_LEAD_FORM"},
        )
        purchase = {
            "customer_id": shop_id,
            "name": "Checkout",
            "type": "PURCHASE",
            "url_pattern": "/thank-you",
            "destinations": ["GOOGLE_ADS"],
        }
        linked = await client.post(
            "/api/trackings", headers=seeded_context, json={**purchase, "conversion_action_id": action.json()["id"]}
        )
        rejected = await client.post(
            "/api/trackings",
            headers=seeded_context,
            json={**purchase, "conversion_action_id": foreign_action.json()["id"]},
        )
        listed = await client.get(f"/api/customers/{shop_id}/conversion-actions", headers=seeded_context)
        other_tenant = await client.get(f"/api/customers/{shop_id}/conversion-actions", headers=other_tenant_context)
        removed = await client.delete(
            f"/api/customers/{shop_id}/conversion-actions/{action.json()['id']}", headers=seeded_context
        )
        detached = await client.get(f"/api/trackings/{linked.json()['id']}", headers=seeded_context)

    assert action.status_code == 201
    assert action.json()["category"] == "PURCHASE"
    assert action.json()["status"] == "PENDING"
    assert foreign_action.json()["category"] == "SUBMIT_LEAD_FORM"

    assert linked.status_code == 201
    assert linked.json()["conversion_action_id"] == action.json()["id"]
    assert rejected.status_code == 400
    assert rejected.json()["detail"] == f"Conversion action not found: {foreign_action.json()['id']}"

    assert [row["name"] for row in listed.json()] == ["Completed order"]
    assert other_tenant.status_code == 404
    assert removed.status_code == 204
    assert detached.json()["conversion_action_id"] is None


async def test_tracking_search_treats_wildcards_literally(seeded_context: dict[str, str]) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        customer_id = await _linked_customer(client, seeded_context)
        for name in ("50% off banner", "500 visitors"):
            await client.post(
                "/api/trackings",
                headers=seeded_context,
                json={"customer_id": customer_id, "name": name, "type": "PAGE_VIEW", "destinations": ["GA4"]},
            )
        percent = await client.get("/api/trackings", headers=seeded_context, params={"search": "50%"})
        plain = await client.get("/api/trackings", headers=seeded_context, params={"search": "50"})

    assert [row["name"] for row in percent.json()["data"]] == ["50% off banner"]
    assert plain.json()["pagination"]["total"] == 2
