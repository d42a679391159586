"""cookie categories and cookie inventory

Revision ID: 0002_cookie_registry
Revises: 0001_initial_schema
Create Date: 2026-10-18 00:00:00
"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0002_cookie_registry"
down_revision: str | None = "0001_initial_schema"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


cookie_consent_category_enum = postgresql.ENUM(
    "NECESSARY", "ANALYTICS", "MARKETING", name="cookie_consent_category_enum", create_type=False
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    cookie_consent_category_enum.create(bind, checkfirst=True)

    op.create_table(
        "cookie_categories",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("category", cookie_consent_category_enum, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "category", name="uq_cookie_categories_tenant_category"),
    )

    op.create_table(
        "cookies",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("category_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("provider", sa.String(length=255), nullable=False),
        sa.Column("purpose", sa.Text(), nullable=False),
        sa.Column("duration", sa.String(length=100), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["category_id"], ["cookie_categories.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_cookies_tenant_id", "cookies", ["tenant_id"], unique=False)
    op.create_index("ix_cookies_category_id", "cookies", ["category_id"], unique=False)


def downgrade() -> None:
    bind = op.get_bind()
    op.drop_index("ix_cookies_category_id", table_name="cookies")
    op.drop_index("ix_cookies_tenant_id", table_name="cookies")
    op.drop_table("cookies")
    op.drop_table("cookie_categories")
    cookie_consent_category_enum.drop(bind, checkfirst=True)
