from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import ConversionAction, Customer, CustomerStatus
from ..schemas import (
    BulkCreateCustomersRequest,
    BulkDeleteCustomersRequest,
    BulkOperationResponse,
    BulkOperationResult,
    BulkUpdateCustomersRequest,
    ConversionActionCreateRequest,
    ConversionActionResponse,
    CustomerAnalyticsResponse,
    CustomerCreateRequest,
    CustomerListQuery,
    CustomerListResponse,
    CustomerResponse,
    CustomerSortField,
    CustomerStatsResponse,
    CustomerUpdateRequest,
    GA4PropertyResponse,
    GoogleAccountLinkRequest,
    GoogleAccountSummary,
    GoogleAdsAccountResponse,
    TrackingListResponse,
)
from ..services import conversion_actions as conversion_action_service
from ..services import customers as customer_service
from ..services.audit import write_audit_log
from ..services.customers import BulkOutcome
from ..services.trackings import list_customer_trackings
from ..tenancy import RequestContext, get_request_context
from .trackings import serialize_tracking

router = APIRouter(prefix="/api/customers", tags=["customers"])


def serialize_customer(row: Customer) -> CustomerResponse:
    google_account = None
    if row.google_account_id:
        google_account = GoogleAccountSummary(
            google_account_id=row.google_account_id,
            google_email=row.google_email,
            gtm_container_id=row.gtm_container_id,
            gtm_container_name=row.gtm_container_name,
            has_gtm_access=bool(row.gtm_container_id),
            has_ga4_access=bool(row.ga4_properties),
            has_ads_access=bool(row.google_ads_accounts),
        )
    return CustomerResponse(
        id=row.id,
        tenant_id=row.tenant_id,
        slug=row.slug,
        email=row.email,
        first_name=row.first_name,
        last_name=row.last_name,
        full_name=row.full_name,
        company=row.company,
        phone=row.phone,
        website_url=row.website_url,
        status=row.status,
        tags=row.tags,
        notes=row.notes,
        custom_fields=row.custom_fields or {},
        google_account_id=row.google_account_id,
        google_email=row.google_email,
        gtm_account_id=row.gtm_account_id,
        gtm_container_id=row.gtm_container_id,
        gtm_workspace_id=row.gtm_workspace_id,
        gtm_container_name=row.gtm_container_name,
        server_side_enabled=row.server_side_enabled,
        google_account=google_account,
        ga4_properties=[
            GA4PropertyResponse(
                id=prop.id,
                property_id=prop.property_id,
                measurement_id=prop.measurement_id,
                display_name=prop.display_name,
                is_default=prop.is_default,
            )
            for prop in row.ga4_properties
        ],
        google_ads_accounts=[
            GoogleAdsAccountResponse(
                id=account.id,
                google_account_id=account.google_account_id,
                account_name=account.account_name,
                currency=account.currency,
                time_zone=account.time_zone,
                is_active=account.is_active,
            )
            for account in row.google_ads_accounts
        ],
        created_by=row.created_by,
        updated_by=row.updated_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def serialize_conversion_action(row: ConversionAction) -> ConversionActionResponse:
    return ConversionActionResponse(
        id=row.id,
        customer_id=row.customer_id,
        name=row.name,
        category=row.category,
        status=row.status,
        google_conversion_action_id=row.google_conversion_action_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _bulk_response(outcomes: list[BulkOutcome]) -> BulkOperationResponse:
    results = [
        BulkOperationResult(
            success=outcome.success,
            customer_id=outcome.customer_id,
            result=serialize_customer(outcome.customer) if outcome.customer is not None else None,
            error=outcome.error,
        )
        for outcome in outcomes
    ]
    succeeded = sum(1 for outcome in outcomes if outcome.success)
    return BulkOperationResponse(results=results, succeeded=succeeded, failed=len(outcomes) - succeeded)


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
def create_customer(
    payload: CustomerCreateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CustomerResponse:
    customer = customer_service.create_customer(
        db, context.current_tenant_id, payload, actor_id=context.current_user_id
    )
    write_audit_log(
        db=db,
        context=context,
        action="customer.created",
        target_type="customer",
        target_id=str(customer.id),
        metadata_json={"slug": customer.slug},
    )
    db.commit()
    db.refresh(customer)
    return serialize_customer(customer)


@router.get("", response_model=CustomerListResponse)
def list_customers(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    search: str | None = Query(default=None),
    status_filter: CustomerStatus | None = Query(default=None, alias="status"),
    company: str | None = Query(default=None),
    tags: list[str] | None = Query(default=None),
    has_google_account: bool | None = Query(default=None),
    created_after: datetime | None = Query(default=None),
    created_before: datetime | None = Query(default=None),
    sort_by: CustomerSortField = Query(default=CustomerSortField.CREATED_AT),
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CustomerListResponse:
    # ?tags=a,b and ?tags=a&tags=b are both accepted.
    tag_filter = [part.strip() for raw in tags or [] for part in raw.split(",") if part.strip()] or None
    query = CustomerListQuery(
        page=page,
        limit=limit,
        search=search,
        status=status_filter,
        company=company,
        tags=tag_filter,
        has_google_account=has_google_account,
        created_after=created_after,
        created_before=created_before,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    result = customer_service.list_customers(db, context.current_tenant_id, query)
    return CustomerListResponse(
        data=[serialize_customer(row) for row in result.customers],
        pagination=result.pagination,
        filters=result.filters,
        sort=result.sort,
    )


@router.get("/stats", response_model=CustomerStatsResponse)
def customer_stats(
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CustomerStatsResponse:
    return customer_service.get_customer_stats(db, context.current_tenant_id)


@router.get("/slug/{slug}", response_model=CustomerResponse)
def get_customer_by_slug(
    slug: str,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CustomerResponse:
    return serialize_customer(customer_service.get_customer_by_slug(db, context.current_tenant_id, slug))


@router.post("/bulk/create", response_model=BulkOperationResponse)
def bulk_create_customers(
    payload: BulkCreateCustomersRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> BulkOperationResponse:
    return _bulk_response(customer_service.bulk_create_customers(db, context, payload.customers))


@router.post("/bulk/update", response_model=BulkOperationResponse)
def bulk_update_customers(
    payload: BulkUpdateCustomersRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> BulkOperationResponse:
    updates = [(item.id, item.data) for item in payload.updates]
    return _bulk_response(customer_service.bulk_update_customers(db, context, updates))


@router.post("/bulk/delete", response_model=BulkOperationResponse)
def bulk_delete_customers(
    payload: BulkDeleteCustomersRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> BulkOperationResponse:
    return _bulk_response(customer_service.bulk_delete_customers(db, context, payload.ids))


@router.get("/{customer_id}", response_model=CustomerResponse)
def get_customer(
    customer_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CustomerResponse:
    return serialize_customer(customer_service.get_customer(db, context.current_tenant_id, customer_id))


@router.put("/{customer_id}", response_model=CustomerResponse)
def update_customer(
    customer_id: uuid.UUID,
    payload: CustomerUpdateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CustomerResponse:
    customer = customer_service.update_customer(
        db, context.current_tenant_id, customer_id, payload, actor_id=context.current_user_id
    )
    write_audit_log(
        db=db,
        context=context,
        action="customer.updated",
        target_type="customer",
        target_id=str(customer.id),
        metadata_json={"fields": sorted(payload.model_fields_set)},
    )
    db.commit()
    db.refresh(customer)
    return serialize_customer(customer)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(
    customer_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> Response:
    customer_service.delete_customer(db, context.current_tenant_id, customer_id)
    write_audit_log(
        db=db, context=context, action="customer.deleted", target_type="customer", target_id=str(customer_id)
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{customer_id}/analytics", response_model=CustomerAnalyticsResponse)
def customer_analytics(
    customer_id: uuid.UUID,
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CustomerAnalyticsResponse:
    return customer_service.get_customer_analytics(
        db, context.current_tenant_id, customer_id, start=start_date, end=end_date
    )


@router.get("/{customer_id}/trackings", response_model=TrackingListResponse)
def customer_trackings(
    customer_id: uuid.UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> TrackingListResponse:
    result = list_customer_trackings(db, context.current_tenant_id, customer_id, page=page, limit=limit)
    return TrackingListResponse(
        data=[serialize_tracking(row) for row in result.trackings], pagination=result.pagination
    )


@router.put("/{customer_id}/google-account", response_model=CustomerResponse)
def link_google_account(
    customer_id: uuid.UUID,
    payload: GoogleAccountLinkRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CustomerResponse:
    customer = customer_service.link_google_account(
        db, context.current_tenant_id, customer_id, payload, actor_id=context.current_user_id
    )
    write_audit_log(
        db=db,
        context=context,
        action="customer.google_account.linked",
        target_type="customer",
        target_id=str(customer.id),
        metadata_json={"google_account_id": payload.google_account_id},
    )
    db.commit()
    db.refresh(customer)
    return serialize_customer(customer)


@router.delete("/{customer_id}/google-account", response_model=CustomerResponse)
def unlink_google_account(
    customer_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CustomerResponse:
    customer = customer_service.unlink_google_account(
        db, context.current_tenant_id, customer_id, actor_id=context.current_user_id
    )
    write_audit_log(
        db=db,
        context=context,
        action="customer.google_account.unlinked",
        target_type="customer",
        target_id=str(customer.id),
    )
    db.commit()
    db.refresh(customer)
    return serialize_customer(customer)


@router.get("/{customer_id}/conversion-actions", response_model=list[ConversionActionResponse])
def list_conversion_actions(
    customer_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> list[ConversionActionResponse]:
    rows = conversion_action_service.list_conversion_actions(db, context.current_tenant_id, customer_id)
    return [serialize_conversion_action(row) for row in rows]


@router.post(
    "/{customer_id}/conversion-actions",
    response_model=ConversionActionResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_conversion_action(
    customer_id: uuid.UUID,
    payload: ConversionActionCreateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> ConversionActionResponse:
    action = conversion_action_service.create_conversion_action(db, context.current_tenant_id, customer_id, payload)
    write_audit_log(
        db=db,
        context=context,
        action="conversion_action.created",
        target_type="conversion_action",
        target_id=str(action.id),
        metadata_json={"customer_id": str(customer_id), "category": action.category},
    )
    db.commit()
    db.refresh(action)
    return serialize_conversion_action(action)


@router.delete("/{customer_id}/conversion-actions/{conversion_action_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_conversion_action(
    customer_id: uuid.UUID,
    conversion_action_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> Response:
    conversion_action_service.delete_conversion_action(
        db, context.current_tenant_id, customer_id, conversion_action_id
    )
    write_audit_log(
        db=db,
        context=context,
        action="conversion_action.deleted",
        target_type="conversion_action",
        target_id=str(conversion_action_id),
        metadata_json={"customer_id": str(customer_id)},
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
