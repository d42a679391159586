from __future__ import annotations

import logging
import uuid

from sqlalchemy import asc, select, update
from sqlalchemy.orm import Session

from packages.tracking import google_ads_conversion_category

from ..errors import ConversionActionNotFoundError
from ..models import ConversionAction, Tracking
from ..schemas import ConversionActionCreateRequest
from ..tenancy import tenant_scoped
from .customers import get_customer

logger = logging.getLogger(__name__)


def list_conversion_actions(db: Session, tenant_id: uuid.UUID, customer_id: uuid.UUID) -> list[ConversionAction]:
    customer = get_customer(db, tenant_id, customer_id)
    stmt = (
        select(ConversionAction)
        .where(ConversionAction.customer_id == customer.id)
        .order_by(asc(ConversionAction.name), asc(ConversionAction.id))
    )
    return list(db.scalars(tenant_scoped(stmt, tenant_id, ConversionAction)).all())


def get_conversion_action(
    db: Session, tenant_id: uuid.UUID, customer_id: uuid.UUID, conversion_action_id: uuid.UUID
) -> ConversionAction:
    action = db.scalar(
        tenant_scoped(
            select(ConversionAction).where(
                ConversionAction.id == conversion_action_id, ConversionAction.customer_id == customer_id
            ),
            tenant_id,
            ConversionAction,
        )
    )
    if action is None:
        raise ConversionActionNotFoundError(conversion_action_id)
    return action


def create_conversion_action(
    db: Session, tenant_id: uuid.UUID, customer_id: uuid.UUID, payload: ConversionActionCreateRequest
) -> ConversionAction:
    customer = get_customer(db, tenant_id, customer_id)
    category = payload.category
    if category is None:
        category = google_ads_conversion_category(payload.tracking_type) if payload.tracking_type else "DEFAULT"
    action = ConversionAction(
        tenant_id=tenant_id,
        customer_id=customer.id,
        name=payload.name,
        google_conversion_action_id=payload.google_conversion_action_id,
        category=category,
        status=payload.status,
    )
    db.add(action)
    db.flush()
    logger.info("conversion action created tenant=%s customer=%s action=%s", tenant_id, customer.id, action.id)
    return action


def delete_conversion_action(
    db: Session, tenant_id: uuid.UUID, customer_id: uuid.UUID, conversion_action_id: uuid.UUID
) -> None:
    action = get_conversion_action(db, tenant_id, customer_id, conversion_action_id)
    # Trackings keep working without an Ads conversion; detach them first.
    db.execute(
        update(Tracking)
        .where(Tracking.tenant_id == tenant_id, Tracking.conversion_action_id == action.id)
        .values(conversion_action_id=None)
    )
    db.delete(action)
    db.flush()
