from __future__ import annotations

import uuid

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.errors import InvalidCustomerDataError
from app.main import app
from app.models import Customer
from app.schemas import CustomerCreateRequest, CustomerListQuery, CustomerUpdateRequest
from app.services import customers as customer_service
from app.services.pagination import contains_pattern

TENANT_ID = uuid.UUID("bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb")


def _customer_payload(email: str, **overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {"email": email, "first_name": "Ada", "last_name": "Lovelace"}
    payload.update(overrides)
    return payload


def test_build_full_name_trims_edges() -> None:
    assert customer_service.build_full_name("Ada", "Lovelace") == "Ada Lovelace"
    assert customer_service.build_full_name("Ada", "") == "Ada"


def test_generate_slug_uses_lowercase_alphanumerics() -> None:
    slug = customer_service.generate_slug()
    assert len(slug) == customer_service.SLUG_LENGTH
    assert set(slug) <= set(customer_service.SLUG_ALPHABET)


def test_slug_generation_gives_up_after_repeated_collisions(
    db_session: Session, seeded: dict[str, uuid.UUID], monkeypatch
) -> None:
    attempts: list[int] = []

    def _always_same() -> str:
        attempts.append(1)
        return "collide1"

    monkeypatch.setattr(customer_service, "generate_slug", _always_same)
    customer_service.create_customer(db_session, TENANT_ID, CustomerCreateRequest(**_customer_payload("a@example.com")))
    db_session.commit()
    attempts.clear()

    with pytest.raises(InvalidCustomerDataError, match="Failed to generate unique slug"):
        customer_service.create_customer(
            db_session, TENANT_ID, CustomerCreateRequest(**_customer_payload("b@example.com"))
        )
    assert len(attempts) == customer_service.SLUG_MAX_ATTEMPTS


def test_update_merges_custom_fields_and_recomputes_name(db_session: Session, seeded: dict[str, uuid.UUID]) -> None:
    customer = customer_service.create_customer(
        db_session,
        TENANT_ID,
        CustomerCreateRequest(**_customer_payload("merge@example.com", custom_fields={"plan": "pro", "seats": 3})),
    )
    updated = customer_service.update_customer(
        db_session,
        TENANT_ID,
        customer.id,
        CustomerUpdateRequest(last_name="Byron", custom_fields={"seats": 5, "region": "eu"}),
    )
    assert updated.full_name == "Ada Byron"
    assert updated.custom_fields == {"plan": "pro", "seats": 5, "region": "eu"}


def test_list_filters_echo_only_supplied_values(db_session: Session, seeded: dict[str, uuid.UUID]) -> None:
    page = customer_service.list_customers(db_session, TENANT_ID, CustomerListQuery(search="ada", tags=["vip"]))
    assert page.filters == {"search": "ada", "tags": ["vip"]}
    assert page.sort == {"field": "created_at", "order": "desc"}


async def test_create_customer_and_email_conflict_per_tenant(
    seeded_context: dict[str, str], other_tenant_context: dict[str, str], db_session: Session
) -> None:
    payload = _customer_payload("ada@example.com", tags=["vip", "vip", "b2b"], company="Analytical Engines")
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        created = await client.post("/api/customers", headers=seeded_context, json=payload)
        duplicate = await client.post("/api/customers", headers=seeded_context, json=payload)
        elsewhere = await client.post("/api/customers", headers=other_tenant_context, json=payload)

    assert created.status_code == 201
    body = created.json()
    assert body["full_name"] == "Ada Lovelace"
    assert body["tags"] == ["vip", "b2b"]
    assert body["status"] == "ACTIVE"
    assert len(body["slug"]) == 8
    assert body["google_account"] is None

    assert duplicate.status_code == 409
    assert duplicate.json()["detail"] == 'Customer with email "ada@example.com" already exists'
    assert elsewhere.status_code == 201
    assert elsewhere.json()["tenant_id"] == other_tenant_context["X-OneClickTag-Tenant-Id"]

    count = db_session.scalar(
        select(func.count()).select_from(Customer).where(Customer.email == "ada@example.com", Customer.tenant_id == TENANT_ID)
    )
    assert count == 1


async def test_create_customer_validation_errors(seeded_context: dict[str, str]) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.post(
            "/api/customers",
            headers=seeded_context,
            json={"email": "not-an-email", "first_name": "", "last_name": "X"},
        )

    assert response.status_code == 400
    fields = {error["field"] for error in response.json()["errors"]}
    assert {"email", "first_name"} <= fields


async def test_customer_crud_roundtrip(seeded_context: dict[str, str], other_tenant_context: dict[str, str]) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        created = await client.post(
            "/api/customers", headers=seeded_context, json=_customer_payload("grace@example.com")
        )
        customer_id = created.json()["id"]
        slug = created.json()["slug"]

        by_slug = await client.get(f"/api/customers/slug/{slug}", headers=seeded_context)
        hidden = await client.get(f"/api/customers/{customer_id}", headers=other_tenant_context)
        updated = await client.put(
            f"/api/customers/{customer_id}",
            headers=seeded_context,
            json={"first_name": "Grace", "last_name": "Hopper", "status": "INACTIVE"},
        )
        deleted = await client.delete(f"/api/customers/{customer_id}", headers=seeded_context)
        missing = await client.get(f"/api/customers/{customer_id}", headers=seeded_context)
        audit = await client.get("/api/audit", headers=seeded_context, params={"target_type": "customer"})

    assert by_slug.status_code == 200
    assert by_slug.json()["id"] == customer_id
    assert hidden.status_code == 404
    assert updated.status_code == 200
    assert updated.json()["full_name"] == "Grace Hopper"
    assert updated.json()["status"] == "INACTIVE"
    assert deleted.status_code == 204
    assert missing.status_code == 404
    assert missing.json()["detail"] == f"Customer not found: {customer_id}"
    actions = {entry["action"] for entry in audit.json()}
    assert {"customer.created", "customer.updated", "customer.deleted"} <= actions


async def test_list_customers_pagination_flags(seeded_context: dict[str, str]) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        for index in range(5):
            await client.post(
                "/api/customers", headers=seeded_context, json=_customer_payload(f"page{index}@example.com")
            )
        first = await client.get(
            "/api/customers", headers=seeded_context, params={"page": 1, "limit": 2, "sort_by": "email", "sort_order": "asc"}
        )
        last = await client.get(
            "/api/customers", headers=seeded_context, params={"page": 3, "limit": 2, "sort_by": "email", "sort_order": "asc"}
        )
        too_big = await client.get("/api/customers", headers=seeded_context, params={"limit": 101})

    assert first.status_code == 200
    assert first.json()["pagination"] == {
        "page": 1,
        "limit": 2,
        "total": 5,
        "total_pages": 3,
        "has_next": True,
        "has_prev": False,
    }
    assert [row["email"] for row in first.json()["data"]] == ["page0@example.com", "page1@example.com"]
    assert last.json()["pagination"]["has_next"] is False
    assert last.json()["pagination"]["has_prev"] is True
    assert [row["email"] for row in last.json()["data"]] == ["page4@example.com"]
    assert first.json()["sort"] == {"field": "email", "order": "asc"}
    assert too_big.status_code == 400


async def test_tag_filter_matches_any_supplied_tag(seeded_context: dict[str, str]) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.post("/api/customers", headers=seeded_context, json=_customer_payload("a@example.com", tags=["vip", "b2b"]))
        await client.post("/api/customers", headers=seeded_context, json=_customer_payload("b@example.com", tags=["b2b"]))
        await client.post("/api/customers", headers=seeded_context, json=_customer_payload("c@example.com"))

        vip_or_retail = await client.get("/api/customers", headers=seeded_context, params={"tags": "vip,retail"})
        b2b = await client.get("/api/customers", headers=seeded_context, params=[("tags", "b2b")])
        search = await client.get("/api/customers", headers=seeded_context, params={"search": "B@EXAMPLE"})

    assert [row["email"] for row in vip_or_retail.json()["data"]] == ["a@example.com"]
    assert vip_or_retail.json()["filters"] == {"tags": ["vip", "retail"]}
    assert sorted(row["email"] for row in b2b.json()["data"]) == ["a@example.com", "b@example.com"]
    assert [row["email"] for row in search.json()["data"]] == ["b@example.com"]


def test_contains_pattern_escapes_wildcards() -> None:
    assert contains_pattern("50%_off") == r"%50\%\_off%"
    assert contains_pattern("a\\b") == r"%a\\b%"


async def test_search_treats_wildcards_literally(seeded_context: dict[str, str]) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.post("/api/customers", headers=seeded_context, json=_customer_payload("a@example.com", company="100% Growth"))
        await client.post("/api/customers", headers=seeded_context, json=_customer_payload("b@example.com", company="1000 Growth"))
        await client.post("/api/customers", headers=seeded_context, json=_customer_payload("first_last@example.com"))
        await client.post("/api/customers", headers=seeded_context, json=_customer_payload("firstxlast@example.com"))

        percent = await client.get("/api/customers", headers=seeded_context, params={"search": "100%"})
        underscore = await client.get("/api/customers", headers=seeded_context, params={"search": "t_l"})
        company = await client.get("/api/customers", headers=seeded_context, params={"company": "0%"})

    assert [row["email"] for row in percent.json()["data"]] == ["a@example.com"]
    assert [row["email"] for row in underscore.json()["data"]] == ["first_last@example.com"]
    assert [row["email"] for row in company.json()["data"]] == ["a@example.com"]


async def test_google_account_link_filter_and_stats(seeded_context: dict[str, str]) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        linked = await client.post("/api/customers", headers=seeded_context, json=_customer_payload("l@example.com"))
        await client.post("/api/customers", headers=seeded_context, json=_customer_payload("u@example.com"))
        customer_id = linked.json()["id"]

        link = await client.put(
            f"/api/customers/{customer_id}/google-account",
            headers=seeded_context,
            json={
                "google_account_id": "google-123",
                "google_email": "owner@example.com",
                "gtm_container_id": "GTM-ABC123",
                "ga4_properties": [
                    {"property_id": "properties/1", "measurement_id": "G-XYZ", "display_name": "Main", "is_default": True}
                ],
            },
        )
        with_google = await client.get("/api/customers", headers=seeded_context, params={"has_google_account": "true"})
        stats = await client.get("/api/customers/stats", headers=seeded_context)
        unlink = await client.delete(f"/api/customers/{customer_id}/google-account", headers=seeded_context)

    assert link.status_code == 200
    summary = link.json()["google_account"]
    assert summary["has_gtm_access"] is True
    assert summary["has_ga4_access"] is True
    assert summary["has_ads_access"] is False
    assert [row["email"] for row in with_google.json()["data"]] == ["l@example.com"]

    assert stats.json()["total"] == 2
    assert stats.json()["by_status"] == {"active": 2, "inactive": 0, "suspended": 0}
    assert stats.json()["with_google_account"] == 1
    assert stats.json()["without_google_account"] == 1
    assert stats.json()["recently_created"] == 2

    assert unlink.json()["google_account_id"] is None
    assert unlink.json()["ga4_properties"] == []


async def test_bulk_create_reports_partial_failure(seeded_context: dict[str, str]) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.post(
            "/api/customers/bulk/create",
            headers=seeded_context,
            json={
                "customers": [
                    _customer_payload("one@example.com"),
                    _customer_payload("two@example.com"),
                    _customer_payload("one@example.com", first_name="Again"),
                ]
            },
        )
        listing = await client.get("/api/customers", headers=seeded_context)

    assert response.status_code == 200
    body = response.json()
    assert body["succeeded"] == 2
    assert body["failed"] == 1
    assert [result["success"] for result in body["results"]] == [True, True, False]
    assert body["results"][2]["customer_id"] == "one@example.com"
    assert "already exists" in body["results"][2]["error"]
    assert listing.json()["pagination"]["total"] == 2


async def test_bulk_update_and_delete(seeded_context: dict[str, str]) -> None:
    missing_id = str(uuid.uuid4())
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        created = await client.post("/api/customers", headers=seeded_context, json=_customer_payload("bulk@example.com"))
        customer_id = created.json()["id"]
        updated = await client.post(
            "/api/customers/bulk/update",
            headers=seeded_context,
            json={
                "updates": [
                    {"id": customer_id, "data": {"company": "Babbage & Co"}},
                    {"id": missing_id, "data": {"company": "Nobody"}},
                ]
            },
        )
        deleted = await client.post(
            "/api/customers/bulk/delete", headers=seeded_context, json={"ids": [customer_id, missing_id]}
        )

    assert updated.json()["succeeded"] == 1
    assert updated.json()["results"][0]["result"]["company"] == "Babbage & Co"
    assert updated.json()["results"][1]["error"] == f"Customer not found: {missing_id}"
    assert deleted.json()["succeeded"] == 1
    assert deleted.json()["failed"] == 1
    assert deleted.json()["results"][0]["customer_id"] == customer_id
