"""
Tenant scoping for POS records.

SECURITY INVARIANTS:
1. Existence is checked first: a missing record is "not found".
2. Tenant is checked second: a record of another tenant is "Access denied".
   Sessions are the exception: a foreign session is reported as "not found"
   so a cashier can never learn that another tenant's session id exists.
"""

from __future__ import annotations

from ..domain import RegisterSessionInfo, SaleTransaction
from ..errors import AccessDeniedError, NotFoundError


def require_transaction(
    transactions,
    transaction_id: str,
    tenant_id: str,
    *,
    for_update: bool = False,
) -> SaleTransaction:
    transaction = transactions.find_by_id(transaction_id, for_update=for_update)
    if not transaction:
        raise NotFoundError("Transaction not found")
    if transaction.tenant_id != tenant_id:
        raise AccessDeniedError("Access denied")
    return transaction


def require_session_in_tenant(sessions, session_id: str, tenant_id: str) -> RegisterSessionInfo:
    session = sessions.find_by_id(session_id)
    if not session or session.tenant_id != tenant_id:
        # Don't reveal it exists for another tenant
        raise NotFoundError("Session not found")
    return session
