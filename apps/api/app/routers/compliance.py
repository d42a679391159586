from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import Cookie, CookieCategory, Role, UserCookieConsent
from ..schemas import (
    CookieBannerSettings,
    CookieBannerUpdateRequest,
    CookieBulkDeleteRequest,
    CookieBulkDeleteResponse,
    CookieCategoryCreateRequest,
    CookieCategoryResponse,
    CookieCategoryUpdateRequest,
    CookieConsentListResponse,
    CookieConsentResponse,
    CookieCreateRequest,
    CookieResponse,
    CookieUpdateRequest,
)
from ..services import consent as consent_service
from ..services import cookies as cookie_service
from ..services.audit import write_audit_log
from ..tenancy import RequestContext, get_request_context, require_role

router = APIRouter(prefix="/api/compliance", tags=["compliance"])


def serialize_consent(row: UserCookieConsent) -> CookieConsentResponse:
    return CookieConsentResponse(
        id=row.id,
        tenant_id=row.tenant_id,
        anonymous_id=row.anonymous_id,
        necessary_cookies=row.necessary_cookies,
        analytics_cookies=row.analytics_cookies,
        marketing_cookies=row.marketing_cookies,
        consent_given_at=row.consent_given_at,
        expires_at=row.expires_at,
        is_expired=consent_service.is_expired(row),
    )


@router.get("/consent-banner", response_model=CookieBannerSettings)
def get_consent_banner(
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CookieBannerSettings:
    return consent_service.get_banner_settings(db, context.current_tenant_id)


@router.put("/consent-banner", response_model=CookieBannerSettings)
def update_consent_banner(
    payload: CookieBannerUpdateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CookieBannerSettings:
    require_role(context, Role.ADMIN)
    banner = consent_service.upsert_banner(db, context.current_tenant_id, payload)
    write_audit_log(
        db=db,
        context=context,
        action="consent_banner.updated",
        target_type="cookie_consent_banner",
        target_id=str(banner.id),
        metadata_json={"fields": sorted(payload.model_fields_set)},
    )
    db.commit()
    return consent_service.get_banner_settings(db, context.current_tenant_id)


@router.get("/consents", response_model=CookieConsentListResponse)
def list_consents(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CookieConsentListResponse:
    rows, pagination = consent_service.list_consents(db, context.current_tenant_id, page=page, limit=limit)
    return CookieConsentListResponse(data=[serialize_consent(row) for row in rows], pagination=pagination)


def serialize_category(row: CookieCategory) -> CookieCategoryResponse:
    return CookieCategoryResponse.model_validate(row)


def serialize_cookie(row: Cookie) -> CookieResponse:
    return CookieResponse.model_validate(row)


@router.get("/cookie-categories", response_model=list[CookieCategoryResponse])
def list_cookie_categories(
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> list[CookieCategoryResponse]:
    return [serialize_category(row) for row in cookie_service.list_categories(db, context.current_tenant_id)]


@router.post("/cookie-categories", response_model=CookieCategoryResponse, status_code=status.HTTP_201_CREATED)
def create_cookie_category(
    payload: CookieCategoryCreateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CookieCategoryResponse:
    require_role(context, Role.ADMIN)
    category = cookie_service.create_category(db, context.current_tenant_id, payload)
    write_audit_log(
        db=db,
        context=context,
        action="cookie_category.created",
        target_type="cookie_category",
        target_id=str(category.id),
        metadata_json={"category": category.category.value},
    )
    db.commit()
    db.refresh(category)
    return serialize_category(category)


@router.get("/cookie-categories/{category_id}", response_model=CookieCategoryResponse)
def get_cookie_category(
    category_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CookieCategoryResponse:
    return serialize_category(cookie_service.get_category(db, context.current_tenant_id, category_id))


@router.put("/cookie-categories/{category_id}", response_model=CookieCategoryResponse)
def update_cookie_category(
    category_id: uuid.UUID,
    payload: CookieCategoryUpdateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CookieCategoryResponse:
    require_role(context, Role.ADMIN)
    category = cookie_service.update_category(db, context.current_tenant_id, category_id, payload)
    write_audit_log(
        db=db,
        context=context,
        action="cookie_category.updated",
        target_type="cookie_category",
        target_id=str(category.id),
        metadata_json={"fields": sorted(payload.model_fields_set)},
    )
    db.commit()
    db.refresh(category)
    return serialize_category(category)


@router.delete("/cookie-categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_cookie_category(
    category_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> Response:
    require_role(context, Role.ADMIN)
    cookie_service.delete_category(db, context.current_tenant_id, category_id)
    write_audit_log(
        db=db,
        context=context,
        action="cookie_category.deleted",
        target_type="cookie_category",
        target_id=str(category_id),
        metadata_json={},
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/cookies", response_model=list[CookieResponse])
def list_cookies(
    category_id: uuid.UUID | None = Query(default=None),
    search: str | None = Query(default=None, max_length=255),
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> list[CookieResponse]:
    rows = cookie_service.list_cookies(db, context.current_tenant_id, category_id=category_id, search=search)
    return [serialize_cookie(row) for row in rows]


@router.post("/cookies", response_model=CookieResponse, status_code=status.HTTP_201_CREATED)
def create_cookie(
    payload: CookieCreateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CookieResponse:
    require_role(context, Role.ADMIN)
    cookie = cookie_service.create_cookie(db, context.current_tenant_id, payload)
    write_audit_log(
        db=db,
        context=context,
        action="cookie.created",
        target_type="cookie",
        target_id=str(cookie.id),
        metadata_json={"name": cookie.name, "category_id": str(cookie.category_id)},
    )
    db.commit()
    db.refresh(cookie)
    return serialize_cookie(cookie)


@router.delete("/cookies", response_model=CookieBulkDeleteResponse)
def bulk_delete_cookies(
    payload: CookieBulkDeleteRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CookieBulkDeleteResponse:
    require_role(context, Role.ADMIN)
    deleted = cookie_service.delete_cookies(db, context.current_tenant_id, payload.ids)
    write_audit_log(
        db=db,
        context=context,
        action="cookie.bulk_deleted",
        target_type="cookie",
        target_id="bulk",
        metadata_json={"ids": [str(cookie_id) for cookie_id in payload.ids]},
    )
    db.commit()
    return CookieBulkDeleteResponse(deleted=deleted)


@router.get("/cookies/{cookie_id}", response_model=CookieResponse)
def get_cookie(
    cookie_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CookieResponse:
    return serialize_cookie(cookie_service.get_cookie(db, context.current_tenant_id, cookie_id))


@router.put("/cookies/{cookie_id}", response_model=CookieResponse)
def update_cookie(
    cookie_id: uuid.UUID,
    payload: CookieUpdateRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> CookieResponse:
    require_role(context, Role.ADMIN)
    cookie = cookie_service.update_cookie(db, context.current_tenant_id, cookie_id, payload)
    write_audit_log(
        db=db,
        context=context,
        action="cookie.updated",
        target_type="cookie",
        target_id=str(cookie.id),
        metadata_json={"fields": sorted(payload.model_fields_set)},
    )
    db.commit()
    db.refresh(cookie)
    return serialize_cookie(cookie)


@router.delete("/cookies/{cookie_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_cookie(
    cookie_id: uuid.UUID,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> Response:
    require_role(context, Role.ADMIN)
    cookie_service.delete_cookie(db, context.current_tenant_id, cookie_id)
    write_audit_log(
        db=db,
        context=context,
        action="cookie.deleted",
        target_type="cookie",
        target_id=str(cookie_id),
        metadata_json={},
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
