from __future__ import annotations

import asyncio
import logging
import uuid

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import EmailTriggerAction, Lead
from ..schemas import (
    CookieConsentCreateRequest,
    CookieConsentResponse,
    LeadResponse,
    LeadSignupRequest,
    LeadSignupResponse,
    PublicCookieBanner,
    SiteConfigResponse,
    UnsubscribeRequest,
)
from ..services import consent as consent_service
from ..services import cookies as cookie_service
from ..services import email as email_service
from ..services.mailer import Mailer, get_mailer
from ..services.rate_limit import enforce_visitor_rate_limit
from ..settings import settings
from .compliance import serialize_consent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/public", tags=["public"])


def _serialize_lead(row: Lead) -> LeadResponse:
    return LeadResponse(
        id=row.id,
        name=row.name,
        email=row.email,
        purpose=row.purpose,
        source=row.source,
        marketing_consent=row.marketing_consent,
        unsubscribed=row.unsubscribed,
        created_at=row.created_at,
    )


@router.post("/cookie-consent", response_model=CookieConsentResponse, status_code=status.HTTP_201_CREATED)
def record_cookie_consent(
    payload: CookieConsentCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> CookieConsentResponse:
    fallback_ip = request.client.host if request.client else None
    ip_address = consent_service.client_ip(request.headers, fallback=fallback_ip)
    enforce_visitor_rate_limit(
        tenant_id=payload.tenant_id,
        visitor=ip_address or f"anon:{payload.anonymous_id}",
        bucket_name="cookie_consent",
        max_requests=settings.consent_rate_limit_per_minute,
    )
    consent = consent_service.record_consent(
        db,
        payload,
        ip_address=ip_address,
        user_agent=request.headers.get("user-agent"),
    )
    db.commit()
    db.refresh(consent)
    return serialize_consent(consent)


@router.get("/cookie-consent", response_model=CookieConsentResponse | None)
def get_cookie_consent(
    tenant_id: uuid.UUID = Query(),
    anonymous_id: str = Query(min_length=1, max_length=100),
    db: Session = Depends(get_db),
) -> CookieConsentResponse | None:
    consent = consent_service.get_latest_consent(db, tenant_id, anonymous_id)
    return serialize_consent(consent) if consent is not None else None


@router.get("/cookie-banner", response_model=PublicCookieBanner)
def get_cookie_banner(
    tenant_id: uuid.UUID = Query(),
    db: Session = Depends(get_db),
) -> PublicCookieBanner:
    tenant = consent_service.get_active_tenant(db, tenant_id)
    return cookie_service.public_banner(db, tenant.id)


@router.get("/site-config", response_model=SiteConfigResponse)
def site_config() -> SiteConfigResponse:
    return SiteConfigResponse(early_access_mode=settings.early_access_mode)


@router.post("/leads", response_model=LeadSignupResponse)
def signup_lead(
    payload: LeadSignupRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
) -> LeadSignupResponse:
    lead, created = email_service.capture_lead(db, payload)
    db.commit()
    db.refresh(lead)

    email_sent = False
    email_skipped = False
    try:
        result = asyncio.run(
            email_service.send_triggered_email(
                db, EmailTriggerAction.LEAD_SIGNUP, email_service.lead_send_options(lead), mailer
            )
        )
        email_sent = result.success and not result.skipped
        email_skipped = result.skipped
        if not result.success:
            logger.warning("lead welcome email to %s failed: %s", lead.email, result.error)
    except Exception:
        # The signup is already stored; the email is best effort.
        db.rollback()
        logger.exception("lead welcome email to %s raised", lead.email)

    db.refresh(lead)
    return LeadSignupResponse(
        lead=_serialize_lead(lead), created=created, email_sent=email_sent, email_skipped=email_skipped
    )


@router.post("/leads/{lead_id}/unsubscribe", response_model=LeadResponse)
def unsubscribe_lead(
    lead_id: uuid.UUID,
    payload: UnsubscribeRequest | None = None,
    db: Session = Depends(get_db),
) -> LeadResponse:
    lead = email_service.unsubscribe_lead(db, lead_id, reason=payload.reason if payload else None)
    db.commit()
    db.refresh(lead)
    return _serialize_lead(lead)
