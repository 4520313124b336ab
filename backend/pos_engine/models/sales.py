from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow


class SaleTransactionRecord(db.Model):
    """
    Persisted sale transaction.

    Monetary columns are derived by the engine (item ledger and payments),
    never written directly from client input. All amounts in minor units.
    """
    __tablename__ = "sale_transactions"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "transaction_number", name="uq_sale_transactions_tenant_number"),
        db.Index("ix_sale_transactions_tenant_id", "tenant_id", "id"),
        # Composite index for tenant-scoped listing by status and date
        db.Index("ix_sale_transactions_tenant_status_created", "tenant_id", "status", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True)
    tenant_id = db.Column(db.String(64), nullable=False)
    session_id = db.Column(db.String(64), db.ForeignKey("register_sessions.id"), nullable=False, index=True)

    # Human-readable number (e.g., "ELADAS-2026-0001"), immutable once assigned
    transaction_number = db.Column(db.String(64), nullable=False)

    subtotal = db.Column(db.Integer, nullable=False, default=0)
    tax_amount = db.Column(db.Integer, nullable=False, default=0)
    discount_amount = db.Column(db.Integer, nullable=False, default=0)
    total = db.Column(db.Integer, nullable=False, default=0)

    payment_status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)  # PENDING, PARTIAL, PAID
    paid_amount = db.Column(db.Integer, nullable=False, default=0)
    change_amount = db.Column(db.Integer, nullable=False, default=0)

    # Lifecycle status
    status = db.Column(db.String(16), nullable=False, default="IN_PROGRESS")  # IN_PROGRESS, PENDING_PAYMENT, COMPLETED, VOIDED

    customer_id = db.Column(db.String(64), nullable=True)
    customer_name = db.Column(db.String(255), nullable=True)
    customer_tax_number = db.Column(db.String(32), nullable=True)

    created_by = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)

    # Void audit trail
    voided_at = db.Column(db.DateTime, nullable=True)
    voided_by = db.Column(db.String(64), nullable=True)
    void_reason = db.Column(db.String(255), nullable=True)

    refunded_at = db.Column(db.DateTime, nullable=True)
    needs_reconciliation = db.Column(db.Boolean, nullable=False, default=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}


class SaleItemRecord(db.Model):
    """Line item on a sale transaction, with product data snapshotted at add time."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.Index("ix_sale_items_tenant_transaction", "tenant_id", "transaction_id"),
    )

    id = db.Column(db.String(36), primary_key=True)
    transaction_id = db.Column(db.String(36), db.ForeignKey("sale_transactions.id"), nullable=False, index=True)
    tenant_id = db.Column(db.String(64), nullable=False)

    product_id = db.Column(db.String(64), nullable=False)
    product_code = db.Column(db.String(64), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Integer, nullable=False)
    tax_rate = db.Column(db.Numeric(5, 2), nullable=False)
    discount_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    line_subtotal = db.Column(db.Integer, nullable=False)
    line_tax = db.Column(db.Integer, nullable=False)
    line_total = db.Column(db.Integer, nullable=False)

    # True once a deduction was attempted, whether or not it succeeded
    inventory_deducted = db.Column(db.Boolean, nullable=False, default=False)
    warehouse_id = db.Column(db.String(64), nullable=True)

    # Orders items as added
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    transaction = db.relationship("SaleTransactionRecord", backref=db.backref("items", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}


class SalePaymentRecord(db.Model):
    """
    Money collected against a sale transaction.

    Cash payments store the amount applied to the sale, never the amount
    tendered; the difference is change.
    """
    __tablename__ = "sale_payments"
    __table_args__ = (
        db.Index("ix_sale_payments_tenant_transaction", "tenant_id", "transaction_id"),
    )

    id = db.Column(db.String(36), primary_key=True)
    transaction_id = db.Column(db.String(36), db.ForeignKey("sale_transactions.id"), nullable=False, index=True)
    tenant_id = db.Column(db.String(64), nullable=False)

    method = db.Column(db.String(16), nullable=False, index=True)  # CASH, CARD
    amount = db.Column(db.Integer, nullable=False)
    received_at = db.Column(db.DateTime, nullable=False)

    # Card gateway reference info
    card_transaction_id = db.Column(db.String(128), nullable=True)
    card_last_four = db.Column(db.String(4), nullable=True)
    card_brand = db.Column(db.String(32), nullable=True)

    transaction = db.relationship("SaleTransactionRecord", backref=db.backref("payments", lazy=True))
