from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from .db import get_db
from .models import Membership, Role, Tenant, User, UserRole
from .settings import settings

ADMIN_ROLES = frozenset({UserRole.ADMIN, UserRole.SUPER_ADMIN})

ROLE_ORDER: dict[Role, int] = {
    Role.OWNER: 3,
    Role.ADMIN: 2,
    Role.MEMBER: 1,
}


@dataclass(frozen=True)
class RequestContext:
    current_user_id: uuid.UUID
    current_tenant_id: uuid.UUID
    current_role: Role
    user_role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.user_role in ADMIN_ROLES


def tenant_scoped(stmt: Any, tenant_id: uuid.UUID, model: Any) -> Any:
    return stmt.where(getattr(model, "tenant_id") == tenant_id)


def require_role(context: RequestContext, minimum_role: Role) -> None:
    if ROLE_ORDER[context.current_role] < ROLE_ORDER[minimum_role]:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden: insufficient role")


def require_admin(context: RequestContext) -> None:
    if not context.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")


def _parse_user_role(value: str) -> UserRole:
    try:
        return UserRole(value.upper())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized") from exc


def get_request_context(
    db: Session = Depends(get_db),
    x_oneclicktag_user_id: str | None = Header(default=None),
    x_oneclicktag_tenant_id: str | None = Header(default=None),
) -> RequestContext:
    if settings.dev_auth_bypass:
        return RequestContext(
            current_user_id=uuid.UUID(settings.dev_user_id),
            current_tenant_id=uuid.UUID(settings.dev_tenant_id),
            current_role=Role.OWNER,
            user_role=_parse_user_role(settings.dev_user_role),
        )

    if not x_oneclicktag_user_id or not x_oneclicktag_tenant_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    try:
        user_id = uuid.UUID(x_oneclicktag_user_id)
        tenant_id = uuid.UUID(x_oneclicktag_tenant_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized") from exc

    user = db.scalar(select(User).where(User.id == user_id, User.deleted_at.is_(None)))
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    membership = db.scalar(
        select(Membership)
        .join(Tenant, Tenant.id == Membership.tenant_id)
        .where(
            Membership.tenant_id == tenant_id,
            Membership.user_id == user_id,
            Membership.deleted_at.is_(None),
            Tenant.deleted_at.is_(None),
            Tenant.is_active.is_(True),
        )
    )
    if membership is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden: tenant membership required")

    return RequestContext(
        current_user_id=user_id,
        current_tenant_id=tenant_id,
        current_role=membership.role,
        user_role=user.role,
    )


def get_admin_context(context: RequestContext = Depends(get_request_context)) -> RequestContext:
    require_admin(context)
    return context
