from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from ..errors import TenantInactiveError, TenantNotFoundError
from ..models import CookieConsentBanner, Tenant, UserCookieConsent
from ..schemas import CookieBannerSettings, CookieBannerUpdateRequest, CookieConsentCreateRequest, PaginationMeta
from .pagination import build_pagination, page_offset

logger = logging.getLogger(__name__)

DEFAULT_CONSENT_EXPIRY_DAYS = 365
CLIENT_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def client_ip(headers: Mapping[str, str], fallback: str | None = None) -> str | None:
    for header in CLIENT_IP_HEADERS:
        raw = headers.get(header)
        if raw:
            first = raw.split(",")[0].strip()
            if first:
                return first
    return fallback


def is_expired(consent: UserCookieConsent, now: datetime | None = None) -> bool:
    return _as_utc(consent.expires_at) <= (now or datetime.now(UTC))


def _get_banner(db: Session, tenant_id: uuid.UUID) -> CookieConsentBanner | None:
    return db.scalar(select(CookieConsentBanner).where(CookieConsentBanner.tenant_id == tenant_id))


def get_active_tenant(db: Session, tenant_id: uuid.UUID) -> Tenant:
    tenant = db.scalar(select(Tenant).where(Tenant.id == tenant_id, Tenant.deleted_at.is_(None)))
    if tenant is None:
        raise TenantNotFoundError(tenant_id)
    if not tenant.is_active:
        raise TenantInactiveError(tenant_id)
    return tenant


def record_consent(
    db: Session,
    payload: CookieConsentCreateRequest,
    *,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> UserCookieConsent:
    tenant = get_active_tenant(db, payload.tenant_id)
    banner = _get_banner(db, tenant.id)
    expiry_days = banner.consent_expiry_days if banner is not None else DEFAULT_CONSENT_EXPIRY_DAYS

    now = datetime.now(UTC)
    consent = UserCookieConsent(
        tenant_id=tenant.id,
        anonymous_id=payload.anonymous_id,
        necessary_cookies=True,
        analytics_cookies=payload.analytics_cookies,
        marketing_cookies=payload.marketing_cookies,
        ip_address=ip_address,
        user_agent=user_agent[:1000] if user_agent else None,
        consent_given_at=now,
        expires_at=now + timedelta(days=expiry_days),
    )
    db.add(consent)
    db.flush()
    logger.info(
        "cookie consent recorded tenant=%s analytics=%s marketing=%s",
        tenant.id,
        consent.analytics_cookies,
        consent.marketing_cookies,
    )
    return consent


def get_latest_consent(db: Session, tenant_id: uuid.UUID, anonymous_id: str) -> UserCookieConsent | None:
    return db.scalar(
        select(UserCookieConsent)
        .where(UserCookieConsent.tenant_id == tenant_id, UserCookieConsent.anonymous_id == anonymous_id)
        .order_by(desc(UserCookieConsent.consent_given_at), desc(UserCookieConsent.created_at))
        .limit(1)
    )


def list_consents(
    db: Session, tenant_id: uuid.UUID, page: int = 1, limit: int = 50
) -> tuple[list[UserCookieConsent], PaginationMeta]:
    total = (
        db.scalar(select(func.count()).select_from(UserCookieConsent).where(UserCookieConsent.tenant_id == tenant_id))
        or 0
    )
    rows = db.scalars(
        select(UserCookieConsent)
        .where(UserCookieConsent.tenant_id == tenant_id)
        .order_by(desc(UserCookieConsent.consent_given_at), desc(UserCookieConsent.id))
        .offset(page_offset(page, limit))
        .limit(limit)
    ).all()
    return list(rows), build_pagination(page, limit, total)


def get_banner_settings(db: Session, tenant_id: uuid.UUID) -> CookieBannerSettings:
    banner = _get_banner(db, tenant_id)
    if banner is None:
        return CookieBannerSettings()
    return CookieBannerSettings.model_validate(banner, from_attributes=True)


def upsert_banner(db: Session, tenant_id: uuid.UUID, payload: CookieBannerUpdateRequest) -> CookieConsentBanner:
    banner = _get_banner(db, tenant_id)
    if banner is None:
        banner = CookieConsentBanner(tenant_id=tenant_id, **CookieBannerSettings().model_dump())
        db.add(banner)
    changes = payload.model_dump(exclude_unset=True)
    for key, value in changes.items():
        if value is None and key not in {"privacy_policy_url", "cookie_policy_url"}:
            continue
        setattr(banner, key, value)
    db.flush()
    return banner
