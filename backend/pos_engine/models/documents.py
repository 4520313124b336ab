from __future__ import annotations

from ..extensions import db


class TransactionSequence(db.Model):
    """
    Atomic per-tenant, per-period transaction number counters.

    WHY: Prevent two checkouts from receiving the same transaction number.
    """
    __tablename__ = "transaction_sequences"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "period", name="uq_transaction_sequences_tenant_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.String(64), nullable=False, index=True)
    period = db.Column(db.String(16), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())


class AuditEvent(db.Model):
    """
    Append-only audit trail of POS domain events.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "audit_events"
    __table_args__ = (
        db.Index("ix_audit_events_tenant_entity", "tenant_id", "entity_type", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.String(64), nullable=False)
    action = db.Column(db.String(64), nullable=False, index=True)
    entity_type = db.Column(db.String(64), nullable=False)
    entity_id = db.Column(db.String(64), nullable=False)
    user_id = db.Column(db.String(64), nullable=True)
    payload = db.Column(db.Text, nullable=True)  # JSON-encoded metadata
    occurred_at = db.Column(db.DateTime, nullable=False)
