from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy import desc, func, or_, select
from sqlalchemy.orm import Session

from packages.tracking import (
    TrackingStatus,
    TrackingType,
    default_event_name,
    normalize_config,
    validate_tracking,
)

from ..errors import InvalidDataError, TrackingNotFoundError, TrackingValidationError
from ..models import ConversionAction, Tracking
from ..schemas import PaginationMeta, TrackingCreateRequest, TrackingUpdateRequest
from ..tenancy import tenant_scoped
from .customers import get_customer
from .pagination import LIKE_ESCAPE, build_pagination, contains_pattern, page_offset

logger = logging.getLogger(__name__)

# Fields whose change means the rule on the customer's container is stale.
SYNC_RELEVANT_FIELDS = frozenset(
    {"type", "selector", "url_pattern", "config", "destinations", "ga4_event_name", "ga4_parameters", "ads_conversion_value"}
)
RESYNC_STATUSES = frozenset({TrackingStatus.ACTIVE, TrackingStatus.FAILED})


@dataclass
class TrackingPage:
    trackings: list[Tracking]
    pagination: PaginationMeta


def _validate_definition(
    tracking_type: TrackingType,
    selector: str | None,
    url_pattern: str | None,
    config: dict[str, Any] | None,
    ga4_event_name: str | None,
) -> dict[str, Any]:
    errors = validate_tracking(
        tracking_type,
        selector=selector,
        url_pattern=url_pattern,
        config=config,
        ga4_event_name=ga4_event_name,
    )
    if errors:
        raise TrackingValidationError(
            f"Invalid tracking definition for {tracking_type.value}",
            errors=[error.model_dump() for error in errors],
        )
    return normalize_config(tracking_type, config)


def _check_conversion_action(
    db: Session, tenant_id: uuid.UUID, customer_id: uuid.UUID, conversion_action_id: uuid.UUID | None
) -> None:
    if conversion_action_id is None:
        return
    found = db.scalar(
        tenant_scoped(
            select(ConversionAction.id).where(
                ConversionAction.id == conversion_action_id, ConversionAction.customer_id == customer_id
            ),
            tenant_id,
            ConversionAction,
        )
    )
    if found is None:
        raise InvalidDataError(f"Conversion action not found: {conversion_action_id}")


def get_tracking(db: Session, tenant_id: uuid.UUID, tracking_id: uuid.UUID) -> Tracking:
    tracking = db.scalar(tenant_scoped(select(Tracking).where(Tracking.id == tracking_id), tenant_id, Tracking))
    if tracking is None:
        raise TrackingNotFoundError(tracking_id)
    return tracking


def create_tracking(
    db: Session,
    tenant_id: uuid.UUID,
    payload: TrackingCreateRequest,
    actor_id: uuid.UUID | None = None,
) -> Tracking:
    customer = get_customer(db, tenant_id, payload.customer_id)
    if not customer.google_account_id:
        raise InvalidDataError("Customer must have a connected Google account")

    config = _validate_definition(
        payload.type, payload.selector, payload.url_pattern, payload.config, payload.ga4_event_name
    )
    ga4_event_name = payload.ga4_event_name or default_event_name(payload.type)
    _check_conversion_action(db, tenant_id, customer.id, payload.conversion_action_id)

    tracking = Tracking(
        tenant_id=tenant_id,
        customer_id=customer.id,
        name=payload.name,
        type=payload.type,
        description=payload.description,
        status=TrackingStatus.PENDING,
        selector=payload.selector,
        url_pattern=payload.url_pattern,
        selector_config=payload.selector_config.model_dump(exclude_none=True) if payload.selector_config else None,
        config=config,
        destinations=[destination.value for destination in payload.destinations],
        ga4_event_name=ga4_event_name,
        ga4_parameters=payload.ga4_parameters,
        ga4_property_id=payload.ga4_property_id,
        ads_conversion_value=payload.ads_conversion_value,
        conversion_action_id=payload.conversion_action_id,
        created_by=actor_id,
        updated_by=actor_id,
    )
    db.add(tracking)
    db.flush()
    logger.info("tracking created tenant=%s tracking=%s type=%s", tenant_id, tracking.id, tracking.type.value)
    return tracking


def update_tracking(
    db: Session,
    tenant_id: uuid.UUID,
    tracking_id: uuid.UUID,
    payload: TrackingUpdateRequest,
    actor_id: uuid.UUID | None = None,
) -> Tracking:
    tracking = get_tracking(db, tenant_id, tracking_id)
    changes = payload.model_dump(exclude_unset=True)

    tracking_type = changes.get("type") or tracking.type
    selector = changes["selector"] if "selector" in changes else tracking.selector
    url_pattern = changes["url_pattern"] if "url_pattern" in changes else tracking.url_pattern
    config = changes["config"] if changes.get("config") is not None else tracking.config
    if "ga4_event_name" in changes:
        explicit_event_name = changes["ga4_event_name"]
    elif tracking_type != tracking.type:
        explicit_event_name = None
    else:
        explicit_event_name = tracking.ga4_event_name

    normalized = _validate_definition(tracking_type, selector, url_pattern, config, explicit_event_name)
    ga4_event_name = explicit_event_name or default_event_name(tracking_type)
    if "conversion_action_id" in changes:
        _check_conversion_action(db, tenant_id, tracking.customer_id, changes["conversion_action_id"])

    tracking.type = tracking_type
    tracking.selector = selector
    tracking.url_pattern = url_pattern
    tracking.config = normalized
    tracking.ga4_event_name = ga4_event_name
    if changes.get("name") is not None:
        tracking.name = changes["name"]
    for field in ("description", "ga4_parameters", "ga4_property_id", "ads_conversion_value", "conversion_action_id"):
        if field in changes:
            setattr(tracking, field, changes[field])
    if "selector_config" in changes:
        tracking.selector_config = payload.selector_config.model_dump(exclude_none=True) if payload.selector_config else None
    if payload.destinations is not None:
        tracking.destinations = [destination.value for destination in payload.destinations]

    if tracking.status in RESYNC_STATUSES and SYNC_RELEVANT_FIELDS & changes.keys():
        tracking.status = TrackingStatus.PENDING
        tracking.last_error = None
    tracking.updated_by = actor_id
    db.flush()
    return tracking


def set_tracking_status(
    db: Session,
    tenant_id: uuid.UUID,
    tracking_id: uuid.UUID,
    status: TrackingStatus,
    actor_id: uuid.UUID | None = None,
) -> Tracking:
    tracking = get_tracking(db, tenant_id, tracking_id)
    if status == TrackingStatus.ACTIVE and tracking.status != TrackingStatus.PAUSED:
        raise InvalidDataError(f"Cannot activate a tracking in status {tracking.status.value}")
    tracking.status = status
    if status == TrackingStatus.PENDING:
        tracking.last_error = None
    tracking.updated_by = actor_id
    db.flush()
    return tracking


def delete_tracking(db: Session, tenant_id: uuid.UUID, tracking_id: uuid.UUID) -> None:
    tracking = get_tracking(db, tenant_id, tracking_id)
    db.delete(tracking)
    db.flush()


def list_trackings(
    db: Session,
    tenant_id: uuid.UUID,
    *,
    customer_id: uuid.UUID | None = None,
    status: TrackingStatus | None = None,
    tracking_type: TrackingType | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> TrackingPage:
    conditions: list[Any] = [Tracking.tenant_id == tenant_id]
    if customer_id is not None:
        conditions.append(Tracking.customer_id == customer_id)
    if status is not None:
        conditions.append(Tracking.status == status)
    if tracking_type is not None:
        conditions.append(Tracking.type == tracking_type)
    if search and search.strip():
        term = contains_pattern(search.strip())
        conditions.append(
            or_(
                Tracking.name.ilike(term, escape=LIKE_ESCAPE),
                Tracking.description.ilike(term, escape=LIKE_ESCAPE),
                Tracking.ga4_event_name.ilike(term, escape=LIKE_ESCAPE),
            )
        )

    total = db.scalar(select(func.count()).select_from(Tracking).where(*conditions)) or 0
    rows = db.scalars(
        select(Tracking)
        .where(*conditions)
        .order_by(desc(Tracking.created_at), desc(Tracking.id))
        .offset(page_offset(page, limit))
        .limit(limit)
    ).all()
    return TrackingPage(trackings=list(rows), pagination=build_pagination(page, limit, total))


def list_customer_trackings(
    db: Session, tenant_id: uuid.UUID, customer_id: uuid.UUID, page: int = 1, limit: int = 20
) -> TrackingPage:
    customer = get_customer(db, tenant_id, customer_id)
    return list_trackings(db, tenant_id, customer_id=customer.id, page=page, limit=limit)
