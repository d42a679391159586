from __future__ import annotations
# ruff: noqa: E402

import sys
import uuid
from collections.abc import Generator
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

API_ROOT = Path(__file__).resolve().parents[1]
WORKER_ROOT = Path(__file__).resolve().parents[2] / "worker"
REPO_ROOT = Path(__file__).resolve().parents[3]
for path in (API_ROOT, WORKER_ROOT, REPO_ROOT):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from app.db import get_db
from app.main import app
from app.models import Base, Membership, Role, Tenant, User, UserRole
from app.services.mailer import EmailDeliveryError, OutgoingEmail, get_mailer
from app.settings import settings

ADMIN_USER_ID = uuid.UUID("aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa")
MEMBER_USER_ID = uuid.UUID("dddddddd-dddd-dddd-dddd-dddddddddddd")
TENANT_ID = uuid.UUID("bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb")
OTHER_TENANT_ID = uuid.UUID("cccccccc-cccc-cccc-cccc-cccccccccccc")
INACTIVE_TENANT_ID = uuid.UUID("eeeeeeee-eeee-eeee-eeee-eeeeeeeeeeee")


def tenant_headers(user_id: uuid.UUID = ADMIN_USER_ID, tenant_id: uuid.UUID = TENANT_ID) -> dict[str, str]:
    return {"X-OneClickTag-User-Id": str(user_id), "X-OneClickTag-Tenant-Id": str(tenant_id)}


@dataclass
class FakeMailer:
    configured: bool = True
    fail_for: set[str] = field(default_factory=set)
    sent: list[OutgoingEmail] = field(default_factory=list)
    attempted: list[str] = field(default_factory=list)

    @property
    def is_configured(self) -> bool:
        return self.configured

    def send(self, message: OutgoingEmail) -> str:
        self.attempted.append(message.to)
        if message.to in self.fail_for:
            raise EmailDeliveryError(f"mailbox unavailable for {message.to}")
        self.sent.append(message)
        return f"<{len(self.sent)}@test.oneclicktag>"


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session
        session.rollback()


@pytest.fixture()
def seeded(db_session: Session) -> dict[str, uuid.UUID]:
    db_session.add_all(
        [
            User(id=ADMIN_USER_ID, email="admin@oneclicktag.local", role=UserRole.ADMIN),
            User(id=MEMBER_USER_ID, email="member@oneclicktag.local", role=UserRole.USER),
            Tenant(id=TENANT_ID, name="Tenant One"),
            Tenant(id=OTHER_TENANT_ID, name="Tenant Two"),
            Tenant(id=INACTIVE_TENANT_ID, name="Dormant Tenant", is_active=False),
        ]
    )
    db_session.flush()
    db_session.add_all(
        [
            Membership(tenant_id=TENANT_ID, user_id=ADMIN_USER_ID, role=Role.OWNER),
            Membership(tenant_id=OTHER_TENANT_ID, user_id=ADMIN_USER_ID, role=Role.OWNER),
            Membership(tenant_id=TENANT_ID, user_id=MEMBER_USER_ID, role=Role.MEMBER),
        ]
    )
    db_session.commit()
    return {
        "admin_user_id": ADMIN_USER_ID,
        "member_user_id": MEMBER_USER_ID,
        "tenant_id": TENANT_ID,
        "other_tenant_id": OTHER_TENANT_ID,
        "inactive_tenant_id": INACTIVE_TENANT_ID,
    }


@pytest.fixture()
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture(autouse=True)
def _disable_consent_rate_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "consent_rate_limit_per_minute", 0)
    monkeypatch.setattr(settings, "dev_auth_bypass", False)


@pytest.fixture()
def seeded_context(
    session_factory: sessionmaker[Session],
    seeded: dict[str, uuid.UUID],
    mailer: FakeMailer,
) -> Generator[dict[str, str], None, None]:
    def _get_test_db() -> Generator[Session, None, None]:
        with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    try:
        yield tenant_headers()
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def member_context(seeded_context: dict[str, str]) -> dict[str, str]:
    return tenant_headers(user_id=MEMBER_USER_ID)


@pytest.fixture()
def other_tenant_context(seeded_context: dict[str, str]) -> dict[str, str]:
    return tenant_headers(tenant_id=OTHER_TENANT_ID)
