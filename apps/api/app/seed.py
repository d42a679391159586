from __future__ import annotations

import logging
import uuid

from sqlalchemy import select

from .db import session_scope
from .logging_config import configure_logging
from .models import CookieConsentBanner, Membership, Role, Tenant, User, UserRole
from .services.email import initialize_default_templates
from .settings import settings

logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging()
    dev_user_id = uuid.UUID(settings.dev_user_id)
    dev_tenant_id = uuid.UUID(settings.dev_tenant_id)
    with session_scope() as db:
        tenant = db.scalar(select(Tenant).where(Tenant.id == dev_tenant_id))
        if tenant is None:
            tenant = Tenant(id=dev_tenant_id, name="OneClickTag Dev Tenant", domain="localhost", is_active=True)
            db.add(tenant)

        user = db.scalar(select(User).where(User.id == dev_user_id))
        if user is None:
            user = User(id=dev_user_id, email="dev@oneclicktag.local", full_name="Dev Admin", role=UserRole.ADMIN)
            db.add(user)
        db.flush()

        membership = db.scalar(
            select(Membership).where(Membership.tenant_id == dev_tenant_id, Membership.user_id == dev_user_id)
        )
        if membership is None:
            db.add(Membership(tenant_id=dev_tenant_id, user_id=dev_user_id, role=Role.OWNER))

        if db.scalar(select(CookieConsentBanner.id).where(CookieConsentBanner.tenant_id == dev_tenant_id)) is None:
            db.add(CookieConsentBanner(tenant_id=dev_tenant_id))

        created = initialize_default_templates(db)
    logger.info(
        "seed complete tenant=%s user=%s templates_created=%s",
        dev_tenant_id,
        dev_user_id,
        len(created),
    )


if __name__ == "__main__":
    main()
