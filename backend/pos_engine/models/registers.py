from __future__ import annotations

from ..extensions import db


class RegisterSession(db.Model):
    """
    Cash-register session (shift).

    Owned by the register module; the POS engine only reads it to check that a
    transaction is opened against an OPEN session of the same tenant.
    """
    __tablename__ = "register_sessions"
    __table_args__ = (
        db.Index("ix_register_sessions_tenant_status", "tenant_id", "status"),
    )

    id = db.Column(db.String(64), primary_key=True)
    tenant_id = db.Column(db.String(64), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="OPEN")  # OPEN, CLOSED

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
