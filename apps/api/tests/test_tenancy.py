from __future__ import annotations

import uuid

from httpx import ASGITransport, AsyncClient
from sqlalchemy import Select, select

from app.main import app
from app.models import Customer, Role, UserRole
from app.tenancy import RequestContext, tenant_scoped

INACTIVE_TENANT_ID = "eeeeeeee-eeee-eeee-eeee-eeeeeeeeeeee"
OTHER_TENANT_ID = "cccccccc-cccc-cccc-cccc-cccccccccccc"


def test_tenant_scoped_helper_filters_by_tenant_id() -> None:
    tenant_id = uuid.uuid4()
    stmt: Select[tuple[Customer]] = select(Customer)
    scoped_stmt = tenant_scoped(stmt, tenant_id, Customer)
    compiled = str(scoped_stmt.compile(compile_kwargs={"literal_binds": True}))
    assert str(tenant_id).replace("-", "") in compiled
    assert "customers.tenant_id" in compiled


def test_request_context_admin_flag() -> None:
    base = {"current_user_id": uuid.uuid4(), "current_tenant_id": uuid.uuid4(), "current_role": Role.MEMBER}
    assert RequestContext(**base, user_role=UserRole.SUPER_ADMIN).is_admin
    assert RequestContext(**base, user_role=UserRole.ADMIN).is_admin
    assert not RequestContext(**base).is_admin


async def test_missing_or_malformed_headers_are_unauthorized(seeded_context: dict[str, str]) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        missing = await client.get("/api/customers")
        malformed = await client.get(
            "/api/customers", headers={"X-OneClickTag-User-Id": "nope", "X-OneClickTag-Tenant-Id": "nope"}
        )
        unknown_user = await client.get(
            "/api/customers", headers={**seeded_context, "X-OneClickTag-User-Id": str(uuid.uuid4())}
        )

    assert missing.status_code == 401
    assert missing.json()["detail"] == "Unauthorized"
    assert malformed.status_code == 401
    assert unknown_user.status_code == 401


async def test_tenant_membership_required(member_context: dict[str, str]) -> None:
    foreign = {**member_context, "X-OneClickTag-Tenant-Id": OTHER_TENANT_ID}
    dormant = {**member_context, "X-OneClickTag-Tenant-Id": INACTIVE_TENANT_ID}

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        own = await client.get("/api/customers", headers=member_context)
        other = await client.get("/api/customers", headers=foreign)
        inactive = await client.get("/api/customers", headers=dormant)

    assert own.status_code == 200
    assert other.status_code == 403
    assert inactive.status_code == 403


async def test_admin_routes_require_admin_role(
    seeded_context: dict[str, str], member_context: dict[str, str]
) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        denied = await client.get("/api/admin/email-templates", headers=member_context)
        allowed = await client.get("/api/admin/email-templates", headers=seeded_context)

    assert denied.status_code == 403
    assert denied.json()["detail"] == "Admin access required"
    assert allowed.status_code == 200
    assert allowed.json() == []
