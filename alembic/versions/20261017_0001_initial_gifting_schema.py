"""initial gifting schema

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261017_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(*, soft_delete: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]
    if soft_delete:
        columns.append(sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True))
    return columns


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("first_name", sa.String(length=64), nullable=False),
        sa.Column("last_name", sa.String(length=64), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="User"),
        sa.Column("company_id", sa.String(length=36), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        *_timestamps(soft_delete=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_company_id", "users", ["company_id"], unique=False)
    op.create_index("ux_users_email_lower", "users", [sa.text("lower(email)")], unique=True)
    op.create_index("ux_users_username_lower", "users", [sa.text("lower(username)")], unique=True)

    op.create_table(
        "companies",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("owner_id", sa.String(length=36), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("suffix", sa.String(length=64), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("vat", sa.String(length=64), nullable=True),
        sa.Column("domain", sa.String(length=255), nullable=True),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_companies_owner_id", "companies", ["owner_id"], unique=False)

    op.create_table(
        "campaigns",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("company_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="draft"),
        sa.Column("description", sa.String(length=1024), nullable=True),
        sa.Column("quota", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("correction_quota", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("used_quota", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_note_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_campaigns_company_id", "campaigns", ["company_id"], unique=False)
    op.create_index("ix_campaigns_company_name_type", "campaigns", ["company_id", "name", "type"], unique=False)

    op.create_table(
        "campaign_addresses",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("campaign_id", sa.String(length=36), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("company_name", sa.String(length=255), nullable=True),
        sa.Column("street", sa.String(length=255), nullable=True),
        sa.Column("zip", sa.String(length=32), nullable=True),
        sa.Column("city", sa.String(length=128), nullable=True),
        sa.Column("country", sa.String(length=128), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_campaign_addresses_campaign_id", "campaign_addresses", ["campaign_id"], unique=False)
    op.create_index(
        "ix_campaign_addresses_campaign_type",
        "campaign_addresses",
        ["campaign_id", "type"],
        unique=False,
    )

    op.create_table(
        "access_permissions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("company_id", sa.String(length=36), nullable=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("module", sa.String(length=64), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("permission", sa.String(length=16), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_access_permissions_company_id", "access_permissions", ["company_id"], unique=False)
    op.create_index(
        "ix_access_permissions_company_module_role",
        "access_permissions",
        ["company_id", "module", "role"],
        unique=False,
    )

    op.create_table(
        "privacy_rules",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("company_id", sa.String(length=36), nullable=False),
        sa.Column("module", sa.String(length=64), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_privacy_rules_company_id", "privacy_rules", ["company_id"], unique=False)
    op.create_index(
        "ix_privacy_rules_company_module_role",
        "privacy_rules",
        ["company_id", "module", "role"],
        unique=False,
    )

    op.create_table(
        "api_keys",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("key_prefix", sa.String(length=24), nullable=False),
        sa.Column("key_hash", sa.String(length=128), nullable=False),
        sa.Column("permissions_json", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(soft_delete=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key_hash"),
    )
    op.create_index("ix_api_keys_user_id", "api_keys", ["user_id"], unique=False)
    op.create_index("ix_api_keys_key_prefix", "api_keys", ["key_prefix"], unique=False)
    op.create_index(
        "ix_api_keys_user_status_created_at",
        "api_keys",
        ["user_id", "status", "created_at"],
        unique=False,
    )

    op.create_table(
        "pending_orders",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("campaign_id", sa.String(length=36), nullable=True),
        sa.Column("company_id", sa.String(length=36), nullable=True),
        sa.Column("customer_id", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("posted_order_id", sa.String(length=32), nullable=False),
        sa.Column("cost_center", sa.String(length=255), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="EUR"),
        sa.Column("order_no", sa.String(length=64), nullable=False, server_default="0"),
        sa.Column("shipping_id", sa.Integer(), nullable=True),
        sa.Column("shipped", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deliverydate", sa.DateTime(timezone=True), nullable=True),
        sa.Column("note", sa.String(length=1024), nullable=True),
        sa.Column("description", sa.String(length=1024), nullable=True),
        sa.Column("payment_type", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("payment_target", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("discount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("order_status", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("inetorderno", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("platform", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("language", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_posted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_queued", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_greeting_card_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_invoice_generated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_order_confirmation_generated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_packing_slip_generated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("jtl_id", sa.Integer(), nullable=True),
        sa.Column("jtl_number", sa.String(length=64), nullable=True),
        sa.Column("order_line_requests", sa.JSON(), nullable=False),
        sa.Column("shipping_address_requests", sa.JSON(), nullable=False),
        sa.Column("billing_address_requests", sa.JSON(), nullable=True),
        sa.Column("payment_information_requests", sa.JSON(), nullable=True),
        sa.Column("created", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        sa.Column("updated_by", sa.String(length=255), nullable=False),
        sa.Column("created_by_full_name", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"]),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_pending_orders_user_id", "pending_orders", ["user_id"], unique=False)
    op.create_index("ix_pending_orders_campaign_id", "pending_orders", ["campaign_id"], unique=False)
    op.create_index("ix_pending_orders_company_id", "pending_orders", ["company_id"], unique=False)
    op.create_index("ix_pending_orders_posted_order_id", "pending_orders", ["posted_order_id"], unique=False)
    op.create_index(
        "ix_pending_orders_company_created_at",
        "pending_orders",
        ["company_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_pending_orders_user_created_at",
        "pending_orders",
        ["user_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_pending_orders_lifecycle",
        "pending_orders",
        ["is_posted", "is_queued", "order_status"],
        unique=False,
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("company_id", sa.String(length=36), nullable=True),
        sa.Column("actor_user_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("target_type", sa.String(length=100), nullable=False),
        sa.Column("target_id", sa.String(length=36), nullable=True),
        sa.Column("metadata_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_company_id", "audit_logs", ["company_id"], unique=False)
    op.create_index("ix_audit_logs_actor_user_id", "audit_logs", ["actor_user_id"], unique=False)
    op.create_index("ix_audit_logs_target_id", "audit_logs", ["target_id"], unique=False)
    op.create_index("ix_audit_logs_company_created_at", "audit_logs", ["company_id", "created_at"], unique=False)
    op.create_index(
        "ix_audit_logs_actor_action_created_at",
        "audit_logs",
        ["actor_user_id", "action", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    for table_name in (
        "audit_logs",
        "pending_orders",
        "api_keys",
        "privacy_rules",
        "access_permissions",
        "campaign_addresses",
        "campaigns",
        "companies",
        "users",
    ):
        op.drop_table(table_name)
