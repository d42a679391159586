from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy import JSON as JsonType
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import Uuid

from packages.tracking import TrackingStatus, TrackingType


class Base(DeclarativeBase):
    pass


class Role(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class UserRole(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class CustomerStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class EmailTemplateType(str, enum.Enum):
    QUESTIONNAIRE_THANK_YOU = "QUESTIONNAIRE_THANK_YOU"
    LEAD_WELCOME = "LEAD_WELCOME"
    CUSTOM = "CUSTOM"


class EmailTriggerAction(str, enum.Enum):
    LEAD_SIGNUP = "LEAD_SIGNUP"
    QUESTIONNAIRE_COMPLETE = "QUESTIONNAIRE_COMPLETE"


class EmailStatus(str, enum.Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class CookieConsentCategory(str, enum.Enum):
    NECESSARY = "NECESSARY"
    ANALYTICS = "ANALYTICS"
    MARKETING = "MARKETING"


class IdMixin:
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class SoftDeleteMixin:
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class Tenant(Base, IdMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "tenants"
    __table_args__ = (
        UniqueConstraint("domain", name="uq_tenants_domain"),
        Index("ix_tenants_created_at", "created_at"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    domain: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class User(Base, IdMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        Index("ix_users_created_at", "created_at"),
    )

    email: Mapped[str] = mapped_column(String(320), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[UserRole] = mapped_column(Enum(UserRole, name="user_role_enum"), nullable=False, default=UserRole.USER)


class Membership(Base, IdMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "memberships"
    __table_args__ = (
        UniqueConstraint("tenant_id", "user_id", name="uq_memberships_tenant_user"),
        Index("ix_memberships_tenant_id", "tenant_id"),
        Index("ix_memberships_created_at", "created_at"),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    role: Mapped[Role] = mapped_column(Enum(Role, name="role_enum"), nullable=False)


class Customer(Base, IdMixin, TimestampMixin):
    __tablename__ = "customers"
    __table_args__ = (
        UniqueConstraint("slug", name="uq_customers_slug"),
        UniqueConstraint("tenant_id", "email", name="uq_customers_tenant_email"),
        Index("ix_customers_tenant_id", "tenant_id"),
        Index("ix_customers_tenant_status", "tenant_id", "status"),
        Index("ix_customers_created_at", "created_at"),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    slug: Mapped[str] = mapped_column(String(16), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    full_name: Mapped[str] = mapped_column(String(101), nullable=False)
    company: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    website_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    status: Mapped[CustomerStatus] = mapped_column(
        Enum(CustomerStatus, name="customer_status_enum"), nullable=False, default=CustomerStatus.ACTIVE
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    custom_fields: Mapped[dict[str, object]] = mapped_column(JsonType, nullable=False, default=dict)
    google_account_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    google_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    gtm_account_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    gtm_container_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    gtm_workspace_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    gtm_container_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    server_side_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    updated_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    tag_rows: Mapped[list[CustomerTag]] = relationship(
        back_populates="customer", cascade="all, delete-orphan", lazy="selectin", order_by="CustomerTag.position"
    )
    ga4_properties: Mapped[list[GA4Property]] = relationship(
        back_populates="customer", cascade="all, delete-orphan", lazy="selectin"
    )
    google_ads_accounts: Mapped[list[GoogleAdsAccount]] = relationship(
        back_populates="customer", cascade="all, delete-orphan", lazy="selectin"
    )
    trackings: Mapped[list[Tracking]] = relationship(back_populates="customer", cascade="all, delete-orphan")
    conversion_actions: Mapped[list[ConversionAction]] = relationship(
        back_populates="customer", cascade="all, delete-orphan"
    )

    @property
    def tags(self) -> list[str]:
        return [row.tag for row in self.tag_rows]


class CustomerTag(Base, IdMixin):
    __tablename__ = "customer_tags"
    __table_args__ = (
        UniqueConstraint("customer_id", "tag", name="uq_customer_tags_customer_tag"),
        Index("ix_customer_tags_tag", "tag"),
    )

    customer_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)
    tag: Mapped[str] = mapped_column(String(30), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    customer: Mapped[Customer] = relationship(back_populates="tag_rows")


class GA4Property(Base, IdMixin, TimestampMixin):
    __tablename__ = "ga4_properties"
    __table_args__ = (
        UniqueConstraint("customer_id", "property_id", name="uq_ga4_properties_customer_property"),
        Index("ix_ga4_properties_tenant_id", "tenant_id"),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    customer_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)
    property_id: Mapped[str] = mapped_column(String(100), nullable=False)
    measurement_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    customer: Mapped[Customer] = relationship(back_populates="ga4_properties")


class GoogleAdsAccount(Base, IdMixin, TimestampMixin):
    __tablename__ = "google_ads_accounts"
    __table_args__ = (
        UniqueConstraint("customer_id", "google_account_id", name="uq_google_ads_accounts_customer_account"),
        Index("ix_google_ads_accounts_tenant_id", "tenant_id"),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    customer_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)
    google_account_id: Mapped[str] = mapped_column(String(100), nullable=False)
    account_name: Mapped[str] = mapped_column(String(255), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    time_zone: Mapped[str] = mapped_column(String(100), nullable=False, default="UTC")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    customer: Mapped[Customer] = relationship(back_populates="google_ads_accounts")


class ConversionAction(Base, IdMixin, TimestampMixin):
    __tablename__ = "conversion_actions"
    __table_args__ = (Index("ix_conversion_actions_tenant_customer", "tenant_id", "customer_id"),)

    tenant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    customer_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    google_conversion_action_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="DEFAULT")
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="PENDING")

    customer: Mapped[Customer] = relationship(back_populates="conversion_actions")


class Tracking(Base, IdMixin, TimestampMixin):
    __tablename__ = "trackings"
    __table_args__ = (
        Index("ix_trackings_tenant_id", "tenant_id"),
        Index("ix_trackings_customer_id", "customer_id"),
        Index("ix_trackings_tenant_status", "tenant_id", "status"),
        Index("ix_trackings_updated_at", "updated_at"),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    customer_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[TrackingType] = mapped_column(Enum(TrackingType, name="tracking_type_enum"), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[TrackingStatus] = mapped_column(
        Enum(TrackingStatus, name="tracking_status_enum"), nullable=False, default=TrackingStatus.PENDING
    )
    selector: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    url_pattern: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    selector_config: Mapped[dict[str, object] | None] = mapped_column(JsonType, nullable=True)
    config: Mapped[dict[str, object]] = mapped_column(JsonType, nullable=False, default=dict)
    destinations: Mapped[list[str]] = mapped_column(JsonType, nullable=False, default=list)
    ga4_event_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    ga4_parameters: Mapped[dict[str, object] | None] = mapped_column(JsonType, nullable=True)
    ga4_property_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    ads_conversion_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    conversion_action_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("conversion_actions.id", ondelete="SET NULL"), nullable=True
    )
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    sync_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    updated_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    customer: Mapped[Customer] = relationship(back_populates="trackings")


class EmailTemplate(Base, IdMixin, TimestampMixin):
    __tablename__ = "email_templates"
    __table_args__ = (UniqueConstraint("type", name="uq_email_templates_type"),)

    type: Mapped[EmailTemplateType] = mapped_column(Enum(EmailTemplateType, name="email_template_type_enum"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    html_content: Mapped[str] = mapped_column(Text, nullable=False)
    text_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    available_variables: Mapped[dict[str, object] | None] = mapped_column(JsonType, nullable=True)


class EmailTrigger(Base, IdMixin, TimestampMixin):
    __tablename__ = "email_triggers"
    __table_args__ = (UniqueConstraint("action", name="uq_email_triggers_action"),)

    action: Mapped[EmailTriggerAction] = mapped_column(
        Enum(EmailTriggerAction, name="email_trigger_action_enum"), nullable=False
    )
    template_type: Mapped[EmailTemplateType] = mapped_column(
        Enum(EmailTemplateType, name="email_template_type_enum"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Lead(Base, IdMixin, TimestampMixin):
    __tablename__ = "leads"
    __table_args__ = (
        UniqueConstraint("email", name="uq_leads_email"),
        Index("ix_leads_marketing_consent_unsubscribed", "marketing_consent", "unsubscribed"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    purpose: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source: Mapped[str | None] = mapped_column(String(100), nullable=True)
    marketing_consent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    unsubscribed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    unsubscribed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    unsubscribe_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)


class EmailLog(Base, IdMixin, TimestampMixin):
    __tablename__ = "email_logs"
    __table_args__ = (
        Index("ix_email_logs_status", "status"),
        Index("ix_email_logs_created_at", "created_at"),
    )

    template_type: Mapped[EmailTemplateType] = mapped_column(
        Enum(EmailTemplateType, name="email_template_type_enum"), nullable=False
    )
    recipient: Mapped[str] = mapped_column(String(320), nullable=False)
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[EmailStatus] = mapped_column(
        Enum(EmailStatus, name="email_status_enum"), nullable=False, default=EmailStatus.PENDING
    )
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    lead_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("leads.id", ondelete="SET NULL"), nullable=True)
    metadata_json: Mapped[dict[str, object]] = mapped_column(JsonType, nullable=False, default=dict)


class CookieConsentBanner(Base, IdMixin, TimestampMixin):
    __tablename__ = "cookie_consent_banners"
    __table_args__ = (UniqueConstraint("tenant_id", name="uq_cookie_consent_banners_tenant_id"),)

    tenant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    heading_text: Mapped[str] = mapped_column(String(255), nullable=False, default="We value your privacy")
    body_text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="We use cookies to enhance your browsing experience and analyze our traffic.",
    )
    accept_all_button_text: Mapped[str] = mapped_column(String(100), nullable=False, default="Accept All")
    reject_all_button_text: Mapped[str] = mapped_column(String(100), nullable=False, default="Reject All")
    customize_button_text: Mapped[str] = mapped_column(String(100), nullable=False, default="Customize")
    save_preferences_text: Mapped[str] = mapped_column(String(100), nullable=False, default="Save Preferences")
    position: Mapped[str] = mapped_column(String(20), nullable=False, default="bottom")
    background_color: Mapped[str] = mapped_column(String(20), nullable=False, default="#ffffff")
    text_color: Mapped[str] = mapped_column(String(20), nullable=False, default="#000000")
    accept_button_color: Mapped[str] = mapped_column(String(20), nullable=False, default="#3b82f6")
    reject_button_color: Mapped[str] = mapped_column(String(20), nullable=False, default="#6b7280")
    customize_button_color: Mapped[str] = mapped_column(String(20), nullable=False, default="#6b7280")
    consent_expiry_days: Mapped[int] = mapped_column(Integer, nullable=False, default=365)
    show_on_every_page: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    block_cookies_until_consent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    privacy_policy_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    cookie_policy_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class CookieCategory(Base, IdMixin, TimestampMixin):
    __tablename__ = "cookie_categories"
    __table_args__ = (UniqueConstraint("tenant_id", "category", name="uq_cookie_categories_tenant_category"),)

    tenant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    category: Mapped[CookieConsentCategory] = mapped_column(
        Enum(CookieConsentCategory, name="cookie_consent_category_enum"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    cookies: Mapped[list[Cookie]] = relationship(
        back_populates="category", cascade="all, delete-orphan", lazy="selectin", order_by="Cookie.name"
    )


class Cookie(Base, IdMixin, TimestampMixin):
    __tablename__ = "cookies"
    __table_args__ = (
        Index("ix_cookies_tenant_id", "tenant_id"),
        Index("ix_cookies_category_id", "category_id"),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    category_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("cookie_categories.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    provider: Mapped[str] = mapped_column(String(255), nullable=False)
    purpose: Mapped[str] = mapped_column(Text, nullable=False)
    duration: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    category: Mapped[CookieCategory] = relationship(back_populates="cookies")

class UserCookieConsent(Base, IdMixin, TimestampMixin):
    __tablename__ = "user_cookie_consents"
    __table_args__ = (
        Index("ix_user_cookie_consents_tenant_anonymous", "tenant_id", "anonymous_id"),
        Index("ix_user_cookie_consents_consent_given_at", "consent_given_at"),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    anonymous_id: Mapped[str] = mapped_column(String(100), nullable=False)
    necessary_cookies: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    analytics_cookies: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    marketing_cookies: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    consent_given_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class AuditLog(Base, IdMixin, TimestampMixin):
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_tenant_id", "tenant_id"),
        Index("ix_audit_logs_created_at", "created_at"),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    actor_user_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    target_type: Mapped[str] = mapped_column(String(100), nullable=False)
    target_id: Mapped[str] = mapped_column(String(255), nullable=False)
    metadata_json: Mapped[dict[str, object]] = mapped_column(JsonType, nullable=False, default=dict)
