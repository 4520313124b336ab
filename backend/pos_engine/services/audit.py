# Overview: Fire-and-forget audit event recording for engine operations.

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

ENTITY_SALE_TRANSACTION = "sale_transaction"


def record_audit_event(
    audit_log,
    *,
    action: str,
    entity_id: str,
    user_id: str | None,
    tenant_id: str,
    metadata: dict | None = None,
    entity_type: str = ENTITY_SALE_TRANSACTION,
) -> None:
    """
    Append an audit event without letting an audit failure block the operation.

    The audit trail is observational; the sale record is authoritative.
    """
    try:
        audit_log.log(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            tenant_id=tenant_id,
            metadata=metadata,
        )
    except Exception:
        logger.exception("Failed to write audit event %s for %s %s", action, entity_type, entity_id)
