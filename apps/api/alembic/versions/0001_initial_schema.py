"""initial oneclicktag schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 00:00:00
"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


role_enum = postgresql.ENUM("OWNER", "ADMIN", "MEMBER", name="role_enum", create_type=False)
user_role_enum = postgresql.ENUM("USER", "ADMIN", "SUPER_ADMIN", name="user_role_enum", create_type=False)
customer_status_enum = postgresql.ENUM(
    "ACTIVE", "INACTIVE", "SUSPENDED", name="customer_status_enum", create_type=False
)
tracking_type_enum = postgresql.ENUM(
    "BUTTON_CLICK",
    "LINK_CLICK",
    "PAGE_VIEW",
    "ELEMENT_VISIBILITY",
    "FORM_SUBMIT",
    "FORM_START",
    "FORM_ABANDON",
    "ADD_TO_CART",
    "REMOVE_FROM_CART",
    "ADD_TO_WISHLIST",
    "VIEW_CART",
    "CHECKOUT_START",
    "CHECKOUT_STEP",
    "PURCHASE",
    "PRODUCT_VIEW",
    "PHONE_CALL_CLICK",
    "EMAIL_CLICK",
    "DOWNLOAD",
    "DEMO_REQUEST",
    "SIGNUP",
    "SCROLL_DEPTH",
    "TIME_ON_PAGE",
    "VIDEO_PLAY",
    "VIDEO_COMPLETE",
    "SITE_SEARCH",
    "FILTER_USE",
    "TAB_SWITCH",
    "ACCORDION_EXPAND",
    "MODAL_OPEN",
    "SOCIAL_SHARE",
    "SOCIAL_CLICK",
    "PDF_DOWNLOAD",
    "FILE_DOWNLOAD",
    "NEWSLETTER_SIGNUP",
    "CUSTOM_EVENT",
    name="tracking_type_enum",
    create_type=False,
)
tracking_status_enum = postgresql.ENUM(
    "PENDING", "CREATING", "ACTIVE", "FAILED", "PAUSED", "SYNCING", name="tracking_status_enum", create_type=False
)
email_template_type_enum = postgresql.ENUM(
    "QUESTIONNAIRE_THANK_YOU", "LEAD_WELCOME", "CUSTOM", name="email_template_type_enum", create_type=False
)
email_trigger_action_enum = postgresql.ENUM(
    "LEAD_SIGNUP", "QUESTIONNAIRE_COMPLETE", name="email_trigger_action_enum", create_type=False
)
email_status_enum = postgresql.ENUM("PENDING", "SENT", "FAILED", name="email_status_enum", create_type=False)

ALL_ENUMS = (
    role_enum,
    user_role_enum,
    customer_status_enum,
    tracking_type_enum,
    tracking_status_enum,
    email_template_type_enum,
    email_trigger_action_enum,
    email_status_enum,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ALL_ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "tenants",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("domain", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("domain", name="uq_tenants_domain"),
    )
    op.create_index("ix_tenants_created_at", "tenants", ["created_at"], unique=False)

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("role", user_role_enum, nullable=False, server_default="USER"),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_created_at", "users", ["created_at"], unique=False)

    op.create_table(
        "memberships",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("role", role_enum, nullable=False),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "user_id", name="uq_memberships_tenant_user"),
    )
    op.create_index("ix_memberships_tenant_id", "memberships", ["tenant_id"], unique=False)
    op.create_index("ix_memberships_created_at", "memberships", ["created_at"], unique=False)

    op.create_table(
        "customers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("slug", sa.String(length=16), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column("full_name", sa.String(length=101), nullable=False),
        sa.Column("company", sa.String(length=100), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("website_url", sa.String(length=2048), nullable=True),
        sa.Column("status", customer_status_enum, nullable=False, server_default="ACTIVE"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("custom_fields", sa.JSON(), nullable=False),
        sa.Column("google_account_id", sa.String(length=255), nullable=True),
        sa.Column("google_email", sa.String(length=320), nullable=True),
        sa.Column("gtm_account_id", sa.String(length=100), nullable=True),
        sa.Column("gtm_container_id", sa.String(length=100), nullable=True),
        sa.Column("gtm_workspace_id", sa.String(length=100), nullable=True),
        sa.Column("gtm_container_name", sa.String(length=255), nullable=True),
        sa.Column("server_side_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.Column("updated_by", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["updated_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug", name="uq_customers_slug"),
        sa.UniqueConstraint("tenant_id", "email", name="uq_customers_tenant_email"),
    )
    op.create_index("ix_customers_tenant_id", "customers", ["tenant_id"], unique=False)
    op.create_index("ix_customers_tenant_status", "customers", ["tenant_id", "status"], unique=False)
    op.create_index("ix_customers_created_at", "customers", ["created_at"], unique=False)

    op.create_table(
        "customer_tags",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=False),
        sa.Column("tag", sa.String(length=30), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("customer_id", "tag", name="uq_customer_tags_customer_tag"),
    )
    op.create_index("ix_customer_tags_tag", "customer_tags", ["tag"], unique=False)

    op.create_table(
        "ga4_properties",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=False),
        sa.Column("property_id", sa.String(length=100), nullable=False),
        sa.Column("measurement_id", sa.String(length=100), nullable=True),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("customer_id", "property_id", name="uq_ga4_properties_customer_property"),
    )
    op.create_index("ix_ga4_properties_tenant_id", "ga4_properties", ["tenant_id"], unique=False)

    op.create_table(
        "google_ads_accounts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=False),
        sa.Column("google_account_id", sa.String(length=100), nullable=False),
        sa.Column("account_name", sa.String(length=255), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="USD"),
        sa.Column("time_zone", sa.String(length=100), nullable=False, server_default="UTC"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("customer_id", "google_account_id", name="uq_google_ads_accounts_customer_account"),
    )
    op.create_index("ix_google_ads_accounts_tenant_id", "google_ads_accounts", ["tenant_id"], unique=False)

    op.create_table(
        "conversion_actions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("google_conversion_action_id", sa.String(length=100), nullable=True),
        sa.Column("category", sa.String(length=50), nullable=False, server_default="DEFAULT"),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="PENDING"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_conversion_actions_tenant_customer", "conversion_actions", ["tenant_id", "customer_id"], unique=False
    )

    op.create_table(
        "trackings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", tracking_type_enum, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", tracking_status_enum, nullable=False, server_default="PENDING"),
        sa.Column("selector", sa.String(length=1000), nullable=True),
        sa.Column("url_pattern", sa.String(length=1000), nullable=True),
        sa.Column("selector_config", sa.JSON(), nullable=True),
        sa.Column("config", sa.JSON(), nullable=False),
        sa.Column("destinations", sa.JSON(), nullable=False),
        sa.Column("ga4_event_name", sa.String(length=100), nullable=True),
        sa.Column("ga4_parameters", sa.JSON(), nullable=True),
        sa.Column("ga4_property_id", sa.String(length=100), nullable=True),
        sa.Column("ads_conversion_value", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("conversion_action_id", sa.Uuid(), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("last_sync_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sync_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.Column("updated_by", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["conversion_action_id"], ["conversion_actions.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["updated_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_trackings_tenant_id", "trackings", ["tenant_id"], unique=False)
    op.create_index("ix_trackings_customer_id", "trackings", ["customer_id"], unique=False)
    op.create_index("ix_trackings_tenant_status", "trackings", ["tenant_id", "status"], unique=False)
    op.create_index("ix_trackings_updated_at", "trackings", ["updated_at"], unique=False)

    op.create_table(
        "email_templates",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("type", email_template_type_enum, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("subject", sa.String(length=200), nullable=False),
        sa.Column("html_content", sa.Text(), nullable=False),
        sa.Column("text_content", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("available_variables", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("type", name="uq_email_templates_type"),
    )

    op.create_table(
        "email_triggers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("action", email_trigger_action_enum, nullable=False),
        sa.Column("template_type", email_template_type_enum, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("action", name="uq_email_triggers_action"),
    )

    op.create_table(
        "leads",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("purpose", sa.String(length=255), nullable=True),
        sa.Column("source", sa.String(length=100), nullable=True),
        sa.Column("marketing_consent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("unsubscribed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("unsubscribed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("unsubscribe_reason", sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_leads_email"),
    )
    op.create_index(
        "ix_leads_marketing_consent_unsubscribed", "leads", ["marketing_consent", "unsubscribed"], unique=False
    )

    op.create_table(
        "email_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("template_type", email_template_type_enum, nullable=False),
        sa.Column("recipient", sa.String(length=320), nullable=False),
        sa.Column("subject", sa.String(length=500), nullable=False),
        sa.Column("status", email_status_enum, nullable=False, server_default="PENDING"),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("lead_id", sa.Uuid(), nullable=True),
        sa.Column("metadata_json", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["lead_id"], ["leads.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_email_logs_status", "email_logs", ["status"], unique=False)
    op.create_index("ix_email_logs_created_at", "email_logs", ["created_at"], unique=False)

    op.create_table(
        "cookie_consent_banners",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("heading_text", sa.String(length=255), nullable=False),
        sa.Column("body_text", sa.Text(), nullable=False),
        sa.Column("accept_all_button_text", sa.String(length=100), nullable=False),
        sa.Column("reject_all_button_text", sa.String(length=100), nullable=False),
        sa.Column("customize_button_text", sa.String(length=100), nullable=False),
        sa.Column("save_preferences_text", sa.String(length=100), nullable=False),
        sa.Column("position", sa.String(length=20), nullable=False),
        sa.Column("background_color", sa.String(length=20), nullable=False),
        sa.Column("text_color", sa.String(length=20), nullable=False),
        sa.Column("accept_button_color", sa.String(length=20), nullable=False),
        sa.Column("reject_button_color", sa.String(length=20), nullable=False),
        sa.Column("customize_button_color", sa.String(length=20), nullable=False),
        sa.Column("consent_expiry_days", sa.Integer(), nullable=False, server_default="365"),
        sa.Column("show_on_every_page", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("block_cookies_until_consent", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("privacy_policy_url", sa.String(length=2048), nullable=True),
        sa.Column("cookie_policy_url", sa.String(length=2048), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", name="uq_cookie_consent_banners_tenant_id"),
    )

    op.create_table(
        "user_cookie_consents",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("anonymous_id", sa.String(length=100), nullable=False),
        sa.Column("necessary_cookies", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("analytics_cookies", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("marketing_cookies", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=1000), nullable=True),
        sa.Column("consent_given_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_user_cookie_consents_tenant_anonymous",
        "user_cookie_consents",
        ["tenant_id", "anonymous_id"],
        unique=False,
    )
    op.create_index(
        "ix_user_cookie_consents_consent_given_at", "user_cookie_consents", ["consent_given_at"], unique=False
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("actor_user_id", sa.Uuid(), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("target_type", sa.String(length=100), nullable=False),
        sa.Column("target_id", sa.String(length=255), nullable=False),
        sa.Column("metadata_json", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_tenant_id", "audit_logs", ["tenant_id"], unique=False)
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"], unique=False)


def downgrade() -> None:
    bind = op.get_bind()
    op.drop_index("ix_audit_logs_created_at", table_name="audit_logs")
    op.drop_index("ix_audit_logs_tenant_id", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_user_cookie_consents_consent_given_at", table_name="user_cookie_consents")
    op.drop_index("ix_user_cookie_consents_tenant_anonymous", table_name="user_cookie_consents")
    op.drop_table("user_cookie_consents")
    op.drop_table("cookie_consent_banners")

    op.drop_index("ix_email_logs_created_at", table_name="email_logs")
    op.drop_index("ix_email_logs_status", table_name="email_logs")
    op.drop_table("email_logs")
    op.drop_index("ix_leads_marketing_consent_unsubscribed", table_name="leads")
    op.drop_table("leads")
    op.drop_table("email_triggers")
    op.drop_table("email_templates")

    op.drop_index("ix_trackings_updated_at", table_name="trackings")
    op.drop_index("ix_trackings_tenant_status", table_name="trackings")
    op.drop_index("ix_trackings_customer_id", table_name="trackings")
    op.drop_index("ix_trackings_tenant_id", table_name="trackings")
    op.drop_table("trackings")
    op.drop_index("ix_conversion_actions_tenant_customer", table_name="conversion_actions")
    op.drop_table("conversion_actions")
    op.drop_index("ix_google_ads_accounts_tenant_id", table_name="google_ads_accounts")
    op.drop_table("google_ads_accounts")
    op.drop_index("ix_ga4_properties_tenant_id", table_name="ga4_properties")
    op.drop_table("ga4_properties")
    op.drop_index("ix_customer_tags_tag", table_name="customer_tags")
    op.drop_table("customer_tags")

    op.drop_index("ix_customers_created_at", table_name="customers")
    op.drop_index("ix_customers_tenant_status", table_name="customers")
    op.drop_index("ix_customers_tenant_id", table_name="customers")
    op.drop_table("customers")

    op.drop_index("ix_memberships_created_at", table_name="memberships")
    op.drop_index("ix_memberships_tenant_id", table_name="memberships")
    op.drop_table("memberships")
    op.drop_index("ix_users_created_at", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_tenants_created_at", table_name="tenants")
    op.drop_table("tenants")

    for enum_type in reversed(ALL_ENUMS):
        enum_type.drop(bind, checkfirst=True)
