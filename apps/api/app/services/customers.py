from __future__ import annotations

import logging
import secrets
import string
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, TypeVar

from sqlalchemy import asc, desc, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from packages.tracking import TrackingStatus

from ..errors import (
    CustomerEmailConflictError,
    CustomerNotFoundError,
    DomainError,
    InvalidCustomerDataError,
)
from ..models import Customer, CustomerStatus, CustomerTag, GA4Property, GoogleAdsAccount, Tracking
from ..schemas import (
    CustomerAnalyticsResponse,
    CustomerCreateRequest,
    CustomerListQuery,
    CustomerStatsResponse,
    CustomerStatusCounts,
    CustomerUpdateRequest,
    GoogleAccountLinkRequest,
    PaginationMeta,
    TrackingActivity,
)
from ..tenancy import RequestContext, tenant_scoped
from .audit import write_audit_log
from .pagination import LIKE_ESCAPE, build_pagination, contains_pattern, page_offset

logger = logging.getLogger(__name__)

SLUG_ALPHABET = string.digits + string.ascii_lowercase
SLUG_LENGTH = 8
SLUG_MAX_ATTEMPTS = 10
RECENT_WINDOW_DAYS = 30
RECENT_ACTIVITY_LIMIT = 10

_T = TypeVar("_T")


@dataclass
class CustomerPage:
    customers: list[Customer]
    pagination: PaginationMeta
    filters: dict[str, Any]
    sort: dict[str, str]


@dataclass
class BulkOutcome:
    success: bool
    customer_id: str
    customer: Customer | None = None
    error: str | None = None


def generate_slug(length: int = SLUG_LENGTH) -> str:
    return "".join(secrets.choice(SLUG_ALPHABET) for _ in range(length))


def build_full_name(first_name: str, last_name: str) -> str:
    return f"{first_name} {last_name}".strip()


def generate_unique_slug(db: Session) -> str:
    for _ in range(SLUG_MAX_ATTEMPTS):
        slug = generate_slug()
        if db.scalar(select(Customer.id).where(Customer.slug == slug)) is None:
            return slug
    raise InvalidCustomerDataError("Failed to generate unique slug")


def _email_taken(db: Session, tenant_id: uuid.UUID, email: str, exclude_id: uuid.UUID | None = None) -> bool:
    stmt = tenant_scoped(select(Customer.id).where(Customer.email == email), tenant_id, Customer)
    if exclude_id is not None:
        stmt = stmt.where(Customer.id != exclude_id)
    return db.scalar(stmt) is not None


def _apply_tags(customer: Customer, tags: Sequence[str]) -> None:
    existing = {row.tag: row for row in customer.tag_rows}
    rows: list[CustomerTag] = []
    for position, tag in enumerate(dict.fromkeys(tags)):
        row = existing.get(tag) or CustomerTag(tag=tag)
        row.position = position
        rows.append(row)
    customer.tag_rows = rows


def get_customer(db: Session, tenant_id: uuid.UUID, customer_id: uuid.UUID) -> Customer:
    customer = db.scalar(tenant_scoped(select(Customer).where(Customer.id == customer_id), tenant_id, Customer))
    if customer is None:
        raise CustomerNotFoundError(customer_id)
    return customer


def get_customer_by_slug(db: Session, tenant_id: uuid.UUID, slug: str) -> Customer:
    customer = db.scalar(tenant_scoped(select(Customer).where(Customer.slug == slug), tenant_id, Customer))
    if customer is None:
        raise CustomerNotFoundError(slug)
    return customer


def create_customer(
    db: Session,
    tenant_id: uuid.UUID,
    payload: CustomerCreateRequest,
    actor_id: uuid.UUID | None = None,
) -> Customer:
    if _email_taken(db, tenant_id, payload.email):
        raise CustomerEmailConflictError(payload.email)

    customer = Customer(
        tenant_id=tenant_id,
        slug=generate_unique_slug(db),
        email=payload.email,
        first_name=payload.first_name,
        last_name=payload.last_name,
        full_name=build_full_name(payload.first_name, payload.last_name),
        company=payload.company,
        phone=payload.phone,
        website_url=str(payload.website_url) if payload.website_url else None,
        status=payload.status,
        notes=payload.notes,
        custom_fields=dict(payload.custom_fields),
        created_by=actor_id,
        updated_by=actor_id,
    )
    _apply_tags(customer, payload.tags)
    db.add(customer)
    db.flush()
    logger.info("customer created tenant=%s customer=%s slug=%s", tenant_id, customer.id, customer.slug)
    return customer


def update_customer(
    db: Session,
    tenant_id: uuid.UUID,
    customer_id: uuid.UUID,
    payload: CustomerUpdateRequest,
    actor_id: uuid.UUID | None = None,
) -> Customer:
    customer = get_customer(db, tenant_id, customer_id)
    changes = payload.model_dump(exclude_unset=True)

    email = changes.get("email")
    if email is not None and email != customer.email:
        if _email_taken(db, tenant_id, email, exclude_id=customer.id):
            raise CustomerEmailConflictError(email)
        customer.email = email

    if changes.get("status") is not None:
        customer.status = changes["status"]
    for field in ("company", "phone", "notes"):
        if field in changes:
            setattr(customer, field, changes[field])
    if "website_url" in changes:
        customer.website_url = str(changes["website_url"]) if changes["website_url"] else None

    name_touched = False
    for field in ("first_name", "last_name"):
        if changes.get(field) is not None:
            setattr(customer, field, changes[field])
            name_touched = True
    if name_touched:
        customer.full_name = build_full_name(customer.first_name, customer.last_name)

    if changes.get("custom_fields") is not None:
        customer.custom_fields = {**(customer.custom_fields or {}), **changes["custom_fields"]}
    if changes.get("tags") is not None:
        _apply_tags(customer, changes["tags"])

    customer.updated_by = actor_id
    db.flush()
    return customer


def delete_customer(db: Session, tenant_id: uuid.UUID, customer_id: uuid.UUID) -> None:
    customer = get_customer(db, tenant_id, customer_id)
    db.delete(customer)
    db.flush()
    logger.info("customer deleted tenant=%s customer=%s", tenant_id, customer_id)


def list_customers(db: Session, tenant_id: uuid.UUID, query: CustomerListQuery) -> CustomerPage:
    conditions: list[Any] = [Customer.tenant_id == tenant_id]
    if query.search and query.search.strip():
        term = contains_pattern(query.search.strip())
        conditions.append(
            or_(
                Customer.first_name.ilike(term, escape=LIKE_ESCAPE),
                Customer.last_name.ilike(term, escape=LIKE_ESCAPE),
                Customer.full_name.ilike(term, escape=LIKE_ESCAPE),
                Customer.email.ilike(term, escape=LIKE_ESCAPE),
                Customer.company.ilike(term, escape=LIKE_ESCAPE),
            )
        )
    if query.status is not None:
        conditions.append(Customer.status == query.status)
    if query.company:
        conditions.append(Customer.company.ilike(contains_pattern(query.company), escape=LIKE_ESCAPE))
    if query.tags:
        conditions.append(Customer.tag_rows.any(CustomerTag.tag.in_(query.tags)))
    if query.has_google_account is True:
        conditions.append(Customer.google_account_id.is_not(None))
    elif query.has_google_account is False:
        conditions.append(Customer.google_account_id.is_(None))
    if query.created_after is not None:
        conditions.append(Customer.created_at >= query.created_after)
    if query.created_before is not None:
        conditions.append(Customer.created_at <= query.created_before)

    total = db.scalar(select(func.count()).select_from(Customer).where(*conditions)) or 0
    sort_column = getattr(Customer, query.sort_by.value)
    direction = asc if query.sort_order == "asc" else desc
    rows = db.scalars(
        select(Customer)
        .where(*conditions)
        .order_by(direction(sort_column), direction(Customer.id))
        .offset(page_offset(query.page, query.limit))
        .limit(query.limit)
    ).all()

    return CustomerPage(
        customers=list(rows),
        pagination=build_pagination(query.page, query.limit, total),
        filters=query.model_dump(
            mode="json", exclude={"page", "limit", "sort_by", "sort_order"}, exclude_none=True
        ),
        sort={"field": query.sort_by.value, "order": query.sort_order},
    )


def link_google_account(
    db: Session,
    tenant_id: uuid.UUID,
    customer_id: uuid.UUID,
    payload: GoogleAccountLinkRequest,
    actor_id: uuid.UUID | None = None,
) -> Customer:
    customer = get_customer(db, tenant_id, customer_id)
    customer.google_account_id = payload.google_account_id
    customer.google_email = payload.google_email
    customer.gtm_account_id = payload.gtm_account_id
    customer.gtm_container_id = payload.gtm_container_id
    customer.gtm_workspace_id = payload.gtm_workspace_id
    customer.gtm_container_name = payload.gtm_container_name
    if payload.server_side_enabled is not None:
        customer.server_side_enabled = payload.server_side_enabled

    if payload.ga4_properties is not None:
        existing_properties = {row.property_id: row for row in customer.ga4_properties}
        properties: list[GA4Property] = []
        for item in payload.ga4_properties:
            row = existing_properties.get(item.property_id) or GA4Property(
                tenant_id=tenant_id, property_id=item.property_id
            )
            row.measurement_id = item.measurement_id
            row.display_name = item.display_name
            row.is_default = item.is_default
            properties.append(row)
        customer.ga4_properties = properties

    if payload.google_ads_accounts is not None:
        existing_accounts = {row.google_account_id: row for row in customer.google_ads_accounts}
        accounts: list[GoogleAdsAccount] = []
        for item in payload.google_ads_accounts:
            row = existing_accounts.get(item.google_account_id) or GoogleAdsAccount(
                tenant_id=tenant_id, google_account_id=item.google_account_id
            )
            row.account_name = item.account_name
            row.currency = item.currency
            row.time_zone = item.time_zone
            row.is_active = item.is_active
            accounts.append(row)
        customer.google_ads_accounts = accounts

    customer.updated_by = actor_id
    db.flush()
    return customer


def unlink_google_account(
    db: Session,
    tenant_id: uuid.UUID,
    customer_id: uuid.UUID,
    actor_id: uuid.UUID | None = None,
) -> Customer:
    customer = get_customer(db, tenant_id, customer_id)
    customer.google_account_id = None
    customer.google_email = None
    customer.gtm_account_id = None
    customer.gtm_container_id = None
    customer.gtm_workspace_id = None
    customer.gtm_container_name = None
    customer.ga4_properties = []
    customer.google_ads_accounts = []
    customer.updated_by = actor_id
    db.flush()
    return customer


def get_customer_stats(db: Session, tenant_id: uuid.UUID) -> CustomerStatsResponse:
    scoped = select(func.count()).select_from(Customer).where(Customer.tenant_id == tenant_id)
    total = db.scalar(scoped) or 0
    by_status = {
        status: count
        for status, count in db.execute(
            select(Customer.status, func.count()).where(Customer.tenant_id == tenant_id).group_by(Customer.status)
        ).all()
    }
    with_google = db.scalar(scoped.where(Customer.google_account_id.is_not(None))) or 0
    now = datetime.now(UTC)
    recent = db.scalar(scoped.where(Customer.created_at >= now - timedelta(days=RECENT_WINDOW_DAYS))) or 0
    return CustomerStatsResponse(
        tenant_id=tenant_id,
        total=total,
        by_status=CustomerStatusCounts(
            active=by_status.get(CustomerStatus.ACTIVE, 0),
            inactive=by_status.get(CustomerStatus.INACTIVE, 0),
            suspended=by_status.get(CustomerStatus.SUSPENDED, 0),
        ),
        with_google_account=with_google,
        without_google_account=total - with_google,
        recently_created=recent,
        last_updated=now,
    )


def get_customer_analytics(
    db: Session,
    tenant_id: uuid.UUID,
    customer_id: uuid.UUID,
    start: datetime | None = None,
    end: datetime | None = None,
) -> CustomerAnalyticsResponse:
    customer = get_customer(db, tenant_id, customer_id)
    conditions: list[Any] = [Tracking.tenant_id == tenant_id, Tracking.customer_id == customer.id]
    if start is not None:
        conditions.append(Tracking.created_at >= start)
    if end is not None:
        conditions.append(Tracking.created_at <= end)

    counts = {
        status: count
        for status, count in db.execute(
            select(Tracking.status, func.count()).where(*conditions).group_by(Tracking.status)
        ).all()
    }
    total = sum(counts.values())
    active = counts.get(TrackingStatus.ACTIVE, 0)
    failed = counts.get(TrackingStatus.FAILED, 0)
    recent = db.scalars(
        select(Tracking).where(*conditions).order_by(desc(Tracking.updated_at)).limit(RECENT_ACTIVITY_LIMIT)
    ).all()
    return CustomerAnalyticsResponse(
        customer_id=customer.id,
        total_trackings=total,
        active_trackings=active,
        failed_trackings=failed,
        sync_rate=round(active / total * 100) if total else 0,
        total_events=0,
        recent_activity=[
            TrackingActivity(
                id=row.id,
                name=row.name,
                type=row.type,
                status=row.status,
                last_error=row.last_error,
                updated_at=row.updated_at,
            )
            for row in recent
        ],
    )


def _run_bulk(
    db: Session,
    items: Sequence[_T],
    item_key: Callable[[_T], str],
    operation: Callable[[_T], Customer | None],
) -> list[BulkOutcome]:
    outcomes: list[BulkOutcome] = []
    for item in items:
        try:
            customer = operation(item)
            db.commit()
        except DomainError as exc:
            db.rollback()
            outcomes.append(BulkOutcome(success=False, customer_id=item_key(item), error=exc.message))
            continue
        except IntegrityError as exc:
            db.rollback()
            logger.warning("bulk customer operation hit a constraint: %s", exc.orig)
            outcomes.append(BulkOutcome(success=False, customer_id=item_key(item), error="constraint violation"))
            continue
        key = str(customer.id) if customer is not None else item_key(item)
        outcomes.append(BulkOutcome(success=True, customer_id=key, customer=customer))
    return outcomes


def bulk_create_customers(
    db: Session, context: RequestContext, payloads: Sequence[CustomerCreateRequest]
) -> list[BulkOutcome]:
    def _create(payload: CustomerCreateRequest) -> Customer:
        customer = create_customer(db, context.current_tenant_id, payload, actor_id=context.current_user_id)
        write_audit_log(db=db, context=context, action="customer.created", target_type="customer", target_id=str(customer.id))
        return customer

    return _run_bulk(db, payloads, lambda payload: payload.email, _create)


def bulk_update_customers(
    db: Session,
    context: RequestContext,
    updates: Sequence[tuple[uuid.UUID, CustomerUpdateRequest]],
) -> list[BulkOutcome]:
    def _update(item: tuple[uuid.UUID, CustomerUpdateRequest]) -> Customer:
        customer_id, payload = item
        customer = update_customer(db, context.current_tenant_id, customer_id, payload, actor_id=context.current_user_id)
        write_audit_log(
            db=db,
            context=context,
            action="customer.updated",
            target_type="customer",
            target_id=str(customer.id),
            metadata_json={"fields": sorted(payload.model_fields_set)},
        )
        return customer

    return _run_bulk(db, updates, lambda item: str(item[0]), _update)


def bulk_delete_customers(db: Session, context: RequestContext, customer_ids: Sequence[uuid.UUID]) -> list[BulkOutcome]:
    def _delete(customer_id: uuid.UUID) -> None:
        delete_customer(db, context.current_tenant_id, customer_id)
        write_audit_log(db=db, context=context, action="customer.deleted", target_type="customer", target_id=str(customer_id))
        return None

    return _run_bulk(db, customer_ids, str, _delete)
