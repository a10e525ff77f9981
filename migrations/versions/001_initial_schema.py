"""Initial schema: store records, audit ledger, compliance bookkeeping

Revision ID: 001
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("actor_id", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("object_type", sa.String(50), nullable=True),
        sa.Column("object_id", sa.BigInteger, nullable=True),
        sa.Column("detail", JSON_TYPE, nullable=False),
        sa.Column("source_address", sa.String(45), nullable=False, server_default=""),
        _created_at(),
    ]


def upgrade() -> None:
    # Store records
    op.create_table(
        "customers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(60), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("display_name", sa.String(250), nullable=False, server_default=""),
        sa.Column("billing_address", sa.String(255), nullable=True),
        sa.Column("billing_city", sa.String(100), nullable=True),
        sa.Column("billing_state", sa.String(100), nullable=True),
        sa.Column("billing_zip", sa.String(20), nullable=True),
        sa.Column("billing_country", sa.String(2), nullable=True),
        sa.Column("phone", sa.String(40), nullable=True),
        sa.Column("crm_contact_id", sa.String(64), nullable=True),
        sa.Column("crm_last_synced_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_customers_created_at", "customers", ["created_at"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "customer_id",
            sa.Integer,
            sa.ForeignKey("customers.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("order_number", sa.String(40), nullable=False),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("total", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("items", JSON_TYPE, nullable=False),
        sa.Column("billing_details", JSON_TYPE, nullable=False),
        sa.Column("crm_deal_id", sa.String(64), nullable=True),
        sa.Column("crm_invoice_id", sa.String(64), nullable=True),
        _created_at(),
    )
    op.create_index("idx_orders_customer", "orders", ["customer_id"])
    op.create_index("ix_orders_created_at", "orders", ["created_at"])

    op.create_table(
        "cart_items",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("session_id", sa.String(255), nullable=False),
        sa.Column("customer_id", sa.BigInteger, nullable=True),
        sa.Column("product_id", sa.BigInteger, nullable=False),
        sa.Column("crm_product_id", sa.String(64), nullable=False, server_default=""),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="1"),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        _created_at(),
    )
    op.create_index("ix_cart_items_session_id", "cart_items", ["session_id"])
    op.create_index("ix_cart_items_customer_id", "cart_items", ["customer_id"])
    op.create_index("ix_cart_items_created_at", "cart_items", ["created_at"])

    # Audit ledger: active ids are never reused once archived
    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        *_audit_columns(),
        sqlite_autoincrement=True,
    )
    op.create_index("idx_audit_log_actor", "audit_log", ["actor_id"])
    op.create_index("idx_audit_log_action", "audit_log", ["action"])
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])

    op.create_table(
        "audit_log_archive",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=False),
        *_audit_columns(),
    )
    op.create_index("idx_audit_archive_actor", "audit_log_archive", ["actor_id"])
    op.create_index("idx_audit_archive_action", "audit_log_archive", ["action"])
    op.create_index("ix_audit_log_archive_created_at", "audit_log_archive", ["created_at"])

    # Compliance bookkeeping
    op.create_table(
        "deletion_tokens",
        sa.Column("subject_id", sa.BigInteger, primary_key=True, autoincrement=False),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "compliance_snapshots",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("counts", JSON_TYPE, nullable=False),
        sa.Column("oldest_cart_session", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "cleanup_runs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("succeeded", sa.Boolean, nullable=False),
        sa.Column("results", JSON_TYPE, nullable=False),
    )


def downgrade() -> None:
    op.drop_table("cleanup_runs")
    op.drop_table("compliance_snapshots")
    op.drop_table("deletion_tokens")
    op.drop_table("audit_log_archive")
    op.drop_table("audit_log")
    op.drop_table("cart_items")
    op.drop_table("orders")
    op.drop_table("customers")
