from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from packages.tracking import (
    TrackingCategory,
    TrackingDestination,
    TrackingStatus,
    TrackingType,
    google_ads_conversion_category,
    list_metadata,
)

from ..db import get_db
from ..models import Tracking
from ..schemas import (
    TrackingCreateRequest,
    TrackingListResponse,
    TrackingResponse,
    TrackingStatusUpdateRequest,
    TrackingTypeMetadataResponse,
    TrackingUpdateRequest,
)
from ..services import trackings as tracking_service
from ..services.audit import write_audit_log
from ..tenancy import RequestContext, get_request_context

router = APIRouter(prefix="/api/trackings", tags=["trackings"])
types_router = APIRouter(prefix="/api/tracking-types", tags=["trackings"])


def serialize_tracking(row: Tracking) -> TrackingResponse:
    return TrackingResponse(
        id=row.id,
        tenant_id=row.tenant_id,
        customer_id=row.customer_id,
        name=row.name,
        type=row.type,
        description=row.description,
        status=row.status,
        selector=row.selector,
        url_pattern=row.url_pattern,
        selector_config=row.selector_config,
        config=row.config or {},
        destinations=[TrackingDestination(value) for value in row.destinations or []],
        ga4_event_name=row.ga4_event_name,
        ga4_parameters=row.ga4_parameters,
        ga4_property_id=row.ga4_property_id,
        ads_conversion_value=row.ads_conversion_value,
        conversion_action_id=row.conversion_action_id,
        conversion_category=google_ads_conversion_category(row.type),
        last_error=row.last_error,
        last_sync_at=row.last_sync_at,
        sync_attempts=row.sync_attempts,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


@types_router.get("", response_model=list[TrackingTypeMetadataResponse])
def list_tracking_types(category: TrackingCategory | None = Query(default=None)) -> list[TrackingTypeMetadataResponse]:
    return [
        TrackingTypeMetadataResponse(
            type=meta.type,
            label=meta.label,
            description=meta.description,
            category=meta.category,
            icon=meta.icon,
            required_fields=list(meta.required_fields),
            optional_fields=list(meta.optional_fields),
            default_ga4_event_name=meta.default_ga4_event_name,
            supports_value=meta.supports_value,
            conversion_category=google_ads_conversion_category(meta.type),
        )
        for meta in list_metadata(category)
    ]


@router.post("", response_model=TrackingResponse, status_code=status.HTTP_201_CREATED)
def create_tracking(
    payload: TrackingCreateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> TrackingResponse:
    tracking = tracking_service.create_tracking(
        db, context.current_tenant_id, payload, actor_id=context.current_user_id
    )
    write_audit_log(
        db=db,
        context=context,
        action="tracking.created",
        target_type="tracking",
        target_id=str(tracking.id),
        metadata_json={"customer_id": str(tracking.customer_id), "type": tracking.type.value},
    )
    db.commit()
    db.refresh(tracking)
    return serialize_tracking(tracking)


@router.get("", response_model=TrackingListResponse)
def list_trackings(
    customer_id: uuid.UUID | None = Query(default=None),
    status_filter: TrackingStatus | None = Query(default=None, alias="status"),
    tracking_type: TrackingType | None = Query(default=None, alias="type"),
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> TrackingListResponse:
    result = tracking_service.list_trackings(
        db,
        context.current_tenant_id,
        customer_id=customer_id,
        status=status_filter,
        tracking_type=tracking_type,
        search=search,
        page=page,
        limit=limit,
    )
    return TrackingListResponse(
        data=[serialize_tracking(row) for row in result.trackings], pagination=result.pagination
    )


@router.get("/{tracking_id}", response_model=TrackingResponse)
def get_tracking(
    tracking_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> TrackingResponse:
    return serialize_tracking(tracking_service.get_tracking(db, context.current_tenant_id, tracking_id))


@router.put("/{tracking_id}", response_model=TrackingResponse)
def update_tracking(
    tracking_id: uuid.UUID,
    payload: TrackingUpdateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> TrackingResponse:
    tracking = tracking_service.update_tracking(
        db, context.current_tenant_id, tracking_id, payload, actor_id=context.current_user_id
    )
    write_audit_log(
        db=db,
        context=context,
        action="tracking.updated",
        target_type="tracking",
        target_id=str(tracking.id),
        metadata_json={"fields": sorted(payload.model_fields_set), "status": tracking.status.value},
    )
    db.commit()
    db.refresh(tracking)
    return serialize_tracking(tracking)


@router.patch("/{tracking_id}/status", response_model=TrackingResponse)
def update_tracking_status(
    tracking_id: uuid.UUID,
    payload: TrackingStatusUpdateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> TrackingResponse:
    tracking = tracking_service.set_tracking_status(
        db, context.current_tenant_id, tracking_id, payload.status, actor_id=context.current_user_id
    )
    write_audit_log(
        db=db,
        context=context,
        action="tracking.status_changed",
        target_type="tracking",
        target_id=str(tracking.id),
        metadata_json={"status": tracking.status.value},
    )
    db.commit()
    db.refresh(tracking)
    return serialize_tracking(tracking)


@router.delete("/{tracking_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tracking(
    tracking_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> Response:
    tracking_service.delete_tracking(db, context.current_tenant_id, tracking_id)
    write_audit_log(
        db=db, context=context, action="tracking.deleted", target_type="tracking", target_id=str(tracking_id)
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
