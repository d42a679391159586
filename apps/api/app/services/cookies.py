from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from sqlalchemy import asc, delete, or_, select
from sqlalchemy.orm import Session

from ..errors import CookieCategoryNotFoundError, CookieNotFoundError
from ..models import Cookie, CookieCategory, CookieConsentCategory
from ..schemas import (
    CookieCategoryCreateRequest,
    CookieCategoryResponse,
    CookieCategoryUpdateRequest,
    CookieCreateRequest,
    CookieUpdateRequest,
    PublicCookieBanner,
)
from ..tenancy import tenant_scoped
from . import consent as consent_service
from .pagination import LIKE_ESCAPE, contains_pattern

logger = logging.getLogger(__name__)

# Banner customize panel order.
CATEGORY_ORDER = {
    CookieConsentCategory.NECESSARY: 0,
    CookieConsentCategory.ANALYTICS: 1,
    CookieConsentCategory.MARKETING: 2,
}


def list_categories(db: Session, tenant_id: uuid.UUID) -> list[CookieCategory]:
    rows = db.scalars(tenant_scoped(select(CookieCategory), tenant_id, CookieCategory)).all()
    return sorted(rows, key=lambda row: (CATEGORY_ORDER[row.category], row.name))


def get_category(db: Session, tenant_id: uuid.UUID, category_id: uuid.UUID) -> CookieCategory:
    category = db.scalar(
        tenant_scoped(select(CookieCategory).where(CookieCategory.id == category_id), tenant_id, CookieCategory)
    )
    if category is None:
        raise CookieCategoryNotFoundError(category_id)
    return category


def create_category(db: Session, tenant_id: uuid.UUID, payload: CookieCategoryCreateRequest) -> CookieCategory:
    is_required = payload.is_required
    if is_required is None:
        is_required = payload.category == CookieConsentCategory.NECESSARY
    category = CookieCategory(
        tenant_id=tenant_id,
        category=payload.category,
        name=payload.name,
        description=payload.description,
        is_required=is_required,
    )
    db.add(category)
    db.flush()
    return category


def update_category(
    db: Session, tenant_id: uuid.UUID, category_id: uuid.UUID, payload: CookieCategoryUpdateRequest
) -> CookieCategory:
    category = get_category(db, tenant_id, category_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(category, key, value)
    db.flush()
    return category


def delete_category(db: Session, tenant_id: uuid.UUID, category_id: uuid.UUID) -> None:
    category = get_category(db, tenant_id, category_id)
    db.delete(category)
    db.flush()
    logger.info("cookie category deleted tenant=%s category=%s", tenant_id, category_id)


def list_cookies(
    db: Session, tenant_id: uuid.UUID, *, category_id: uuid.UUID | None = None, search: str | None = None
) -> list[Cookie]:
    stmt = select(Cookie).order_by(asc(Cookie.name), asc(Cookie.id))
    if category_id is not None:
        stmt = stmt.where(Cookie.category_id == category_id)
    if search and search.strip():
        term = contains_pattern(search.strip())
        stmt = stmt.where(or_(Cookie.name.ilike(term, escape=LIKE_ESCAPE), Cookie.provider.ilike(term, escape=LIKE_ESCAPE)))
    return list(db.scalars(tenant_scoped(stmt, tenant_id, Cookie)).all())


def get_cookie(db: Session, tenant_id: uuid.UUID, cookie_id: uuid.UUID) -> Cookie:
    cookie = db.scalar(tenant_scoped(select(Cookie).where(Cookie.id == cookie_id), tenant_id, Cookie))
    if cookie is None:
        raise CookieNotFoundError(cookie_id)
    return cookie


def create_cookie(db: Session, tenant_id: uuid.UUID, payload: CookieCreateRequest) -> Cookie:
    category = get_category(db, tenant_id, payload.category_id)
    cookie = Cookie(tenant_id=tenant_id, **payload.model_dump(exclude={"category_id"}), category_id=category.id)
    db.add(cookie)
    db.flush()
    return cookie


def update_cookie(db: Session, tenant_id: uuid.UUID, cookie_id: uuid.UUID, payload: CookieUpdateRequest) -> Cookie:
    cookie = get_cookie(db, tenant_id, cookie_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("category_id") is not None:
        get_category(db, tenant_id, changes["category_id"])
    for key, value in changes.items():
        if value is None and key != "type":
            continue
        setattr(cookie, key, value)
    db.flush()
    return cookie


def delete_cookie(db: Session, tenant_id: uuid.UUID, cookie_id: uuid.UUID) -> None:
    cookie = get_cookie(db, tenant_id, cookie_id)
    db.delete(cookie)
    db.flush()


def delete_cookies(db: Session, tenant_id: uuid.UUID, cookie_ids: Sequence[uuid.UUID]) -> int:
    """Delete all of the given cookies or none of them."""
    wanted = list(dict.fromkeys(cookie_ids))
    found = set(db.scalars(tenant_scoped(select(Cookie.id).where(Cookie.id.in_(wanted)), tenant_id, Cookie)).all())
    missing = [cookie_id for cookie_id in wanted if cookie_id not in found]
    if missing:
        raise CookieNotFoundError(", ".join(str(cookie_id) for cookie_id in missing))
    db.execute(delete(Cookie).where(Cookie.tenant_id == tenant_id, Cookie.id.in_(wanted)))
    db.flush()
    return len(wanted)


def public_banner(db: Session, tenant_id: uuid.UUID) -> PublicCookieBanner:
    settings = consent_service.get_banner_settings(db, tenant_id)
    categories = [CookieCategoryResponse.model_validate(row) for row in list_categories(db, tenant_id)]
    return PublicCookieBanner(**settings.model_dump(), categories=categories)
