"""Initial POS transaction engine schema

Revision ID: 20261019_initial_pos
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial_pos"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "register_sessions",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("opened_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_register_sessions_tenant_status", "register_sessions", ["tenant_id", "status"], unique=False)

    op.create_table(
        "sale_transactions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        sa.Column("transaction_number", sa.String(length=64), nullable=False),
        sa.Column("subtotal", sa.Integer(), nullable=False),
        sa.Column("tax_amount", sa.Integer(), nullable=False),
        sa.Column("discount_amount", sa.Integer(), nullable=False),
        sa.Column("total", sa.Integer(), nullable=False),
        sa.Column("payment_status", sa.String(length=16), nullable=False),
        sa.Column("paid_amount", sa.Integer(), nullable=False),
        sa.Column("change_amount", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("customer_id", sa.String(length=64), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("customer_tax_number", sa.String(length=32), nullable=True),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("voided_at", sa.DateTime(), nullable=True),
        sa.Column("voided_by", sa.String(length=64), nullable=True),
        sa.Column("void_reason", sa.String(length=255), nullable=True),
        sa.Column("refunded_at", sa.DateTime(), nullable=True),
        sa.Column("needs_reconciliation", sa.Boolean(), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["session_id"], ["register_sessions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "transaction_number", name="uq_sale_transactions_tenant_number"),
    )
    op.create_index("ix_sale_transactions_tenant_id", "sale_transactions", ["tenant_id", "id"], unique=False)
    op.create_index(
        "ix_sale_transactions_tenant_status_created",
        "sale_transactions",
        ["tenant_id", "status", "created_at"],
        unique=False,
    )
    op.create_index("ix_sale_transactions_session_id", "sale_transactions", ["session_id"], unique=False)
    op.create_index("ix_sale_transactions_payment_status", "sale_transactions", ["payment_status"], unique=False)

    op.create_table(
        "sale_items",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("transaction_id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        sa.Column("product_code", sa.String(length=64), nullable=False),
        sa.Column("product_name", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Integer(), nullable=False),
        sa.Column("tax_rate", sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column("discount_percent", sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column("line_subtotal", sa.Integer(), nullable=False),
        sa.Column("line_tax", sa.Integer(), nullable=False),
        sa.Column("line_total", sa.Integer(), nullable=False),
        sa.Column("inventory_deducted", sa.Boolean(), nullable=False),
        sa.Column("warehouse_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["transaction_id"], ["sale_transactions.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sale_items_tenant_transaction", "sale_items", ["tenant_id", "transaction_id"], unique=False)
    op.create_index("ix_sale_items_transaction_id", "sale_items", ["transaction_id"], unique=False)

    op.create_table(
        "sale_payments",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("transaction_id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("method", sa.String(length=16), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("received_at", sa.DateTime(), nullable=False),
        sa.Column("card_transaction_id", sa.String(length=128), nullable=True),
        sa.Column("card_last_four", sa.String(length=4), nullable=True),
        sa.Column("card_brand", sa.String(length=32), nullable=True),
        sa.ForeignKeyConstraint(["transaction_id"], ["sale_transactions.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sale_payments_tenant_transaction", "sale_payments", ["tenant_id", "transaction_id"], unique=False)
    op.create_index("ix_sale_payments_transaction_id", "sale_payments", ["transaction_id"], unique=False)
    op.create_index("ix_sale_payments_method", "sale_payments", ["method"], unique=False)

    op.create_table(
        "transaction_sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("period", sa.String(length=16), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "period", name="uq_transaction_sequences_tenant_period"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_transaction_sequences_tenant_id", "transaction_sequences", ["tenant_id"], unique=False)

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("payload", sa.Text(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_audit_events_tenant_entity", "audit_events", ["tenant_id", "entity_type", "entity_id"], unique=False)
    op.create_index("ix_audit_events_action", "audit_events", ["action"], unique=False)

    op.create_table(
        "stock_levels",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        sa.Column("warehouse_id", sa.String(length=64), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "tenant_id", "product_id", "warehouse_id", name="uq_stock_levels_tenant_product_warehouse"
        ),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stock_levels_tenant_id", "stock_levels", ["tenant_id"], unique=False)


def downgrade():
    op.drop_index("ix_stock_levels_tenant_id", table_name="stock_levels")
    op.drop_table("stock_levels")
    op.drop_index("ix_audit_events_action", table_name="audit_events")
    op.drop_index("ix_audit_events_tenant_entity", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_index("ix_transaction_sequences_tenant_id", table_name="transaction_sequences")
    op.drop_table("transaction_sequences")
    op.drop_index("ix_sale_payments_method", table_name="sale_payments")
    op.drop_index("ix_sale_payments_transaction_id", table_name="sale_payments")
    op.drop_index("ix_sale_payments_tenant_transaction", table_name="sale_payments")
    op.drop_table("sale_payments")
    op.drop_index("ix_sale_items_transaction_id", table_name="sale_items")
    op.drop_index("ix_sale_items_tenant_transaction", table_name="sale_items")
    op.drop_table("sale_items")
    op.drop_index("ix_sale_transactions_payment_status", table_name="sale_transactions")
    op.drop_index("ix_sale_transactions_session_id", table_name="sale_transactions")
    op.drop_index("ix_sale_transactions_tenant_status_created", table_name="sale_transactions")
    op.drop_index("ix_sale_transactions_tenant_id", table_name="sale_transactions")
    op.drop_table("sale_transactions")
    op.drop_index("ix_register_sessions_tenant_status", table_name="register_sessions")
    op.drop_table("register_sessions")
