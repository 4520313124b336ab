# Overview: In-memory implementations of the POS engine's storage and collaborator contracts.

"""
In-memory storage and collaborators.

Used by the unit tests and for running the engine without a database. Records
are copied on the way in and out so callers can never mutate stored state
behind the repository's back.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace

from ..domain import (
    RegisterSessionInfo,
    SESSION_STATUS_OPEN,
    SaleItem,
    SalePayment,
    SaleTransaction,
    StockDeduction,
)
from ..errors import NotFoundError
from ..time_utils import utcnow
from ..validation import TransactionFilter


class InMemoryTransactionRepository:

    def __init__(self):
        self._rows: dict[str, SaleTransaction] = {}

    def find_by_id(self, transaction_id: str, *, for_update: bool = False) -> SaleTransaction | None:
        row = self._rows.get(transaction_id)
        return replace(row) if row else None

    def find_by_number(self, tenant_id: str, transaction_number: str) -> SaleTransaction | None:
        for row in self._rows.values():
            if row.tenant_id == tenant_id and row.transaction_number == transaction_number:
                return replace(row)
        return None

    def find_all(self, tenant_id: str, filter: TransactionFilter | None = None) -> list[SaleTransaction]:
        rows = [r for r in self._rows.values() if r.tenant_id == tenant_id]
        if filter is not None:
            if filter.status:
                rows = [r for r in rows if r.status == filter.status]
            if filter.session_id:
                rows = [r for r in rows if r.session_id == filter.session_id]
            if filter.created_from:
                rows = [r for r in rows if r.created_at >= filter.created_from]
            if filter.created_to:
                rows = [r for r in rows if r.created_at <= filter.created_to]
        rows.sort(key=lambda r: (r.created_at, r.transaction_number), reverse=True)
        return [replace(r) for r in rows]

    def create(self, transaction: SaleTransaction) -> SaleTransaction:
        for row in self._rows.values():
            if row.tenant_id == transaction.tenant_id and row.transaction_number == transaction.transaction_number:
                raise ValueError(f"Duplicate transaction number {transaction.transaction_number}")
        self._rows[transaction.id] = replace(transaction)
        return replace(transaction)

    def update(self, transaction_id: str, **changes) -> SaleTransaction:
        row = self._rows.get(transaction_id)
        if not row:
            raise NotFoundError("Transaction not found")
        updated = replace(row, **changes)
        self._rows[transaction_id] = updated
        return replace(updated)


class InMemorySaleItemRepository:

    def __init__(self):
        # Insertion order doubles as "added at" order
        self._rows: dict[str, SaleItem] = {}

    def find_by_id(self, item_id: str, *, for_update: bool = False) -> SaleItem | None:
        row = self._rows.get(item_id)
        return replace(row) if row else None

    def find_by_transaction(self, transaction_id: str) -> list[SaleItem]:
        return [replace(r) for r in self._rows.values() if r.transaction_id == transaction_id]

    def create(self, item: SaleItem) -> SaleItem:
        self._rows[item.id] = replace(item)
        return replace(item)

    def update(self, item_id: str, **changes) -> SaleItem:
        row = self._rows.get(item_id)
        if not row:
            raise NotFoundError("Item not found")
        updated = replace(row, **changes)
        self._rows[item_id] = updated
        return replace(updated)

    def delete(self, item_id: str) -> None:
        self._rows.pop(item_id, None)

    def delete_by_transaction(self, transaction_id: str) -> int:
        doomed = [k for k, r in self._rows.items() if r.transaction_id == transaction_id]
        for key in doomed:
            del self._rows[key]
        return len(doomed)


class InMemoryPaymentRepository:

    def __init__(self):
        self._rows: dict[str, SalePayment] = {}

    def find_by_transaction(self, transaction_id: str) -> list[SalePayment]:
        return [replace(r) for r in self._rows.values() if r.transaction_id == transaction_id]

    def create(self, payment: SalePayment) -> SalePayment:
        self._rows[payment.id] = replace(payment)
        return replace(payment)

    def delete_by_transaction(self, transaction_id: str) -> int:
        doomed = [k for k, r in self._rows.items() if r.transaction_id == transaction_id]
        for key in doomed:
            del self._rows[key]
        return len(doomed)

    def sum_by_transaction(self, transaction_id: str) -> int:
        return sum(r.amount for r in self._rows.values() if r.transaction_id == transaction_id)


class InMemorySequenceCounter:

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: dict[tuple[str, str], int] = {}

    def increment(self, tenant_id: str, period: str) -> int:
        with self._lock:
            key = (tenant_id, period)
            value = self._counters.get(key, 0) + 1
            self._counters[key] = value
            return value


class InMemorySessionProvider:

    def __init__(self, sessions: list[RegisterSessionInfo] | None = None):
        self._sessions = {s.id: s for s in sessions or []}

    def add(self, session_id: str, tenant_id: str, status: str = SESSION_STATUS_OPEN) -> RegisterSessionInfo:
        session = RegisterSessionInfo(id=session_id, tenant_id=tenant_id, status=status)
        self._sessions[session_id] = session
        return session

    def find_by_id(self, session_id: str) -> RegisterSessionInfo | None:
        return self._sessions.get(session_id)


class InMemoryInventoryService:
    """
    Stock levels keyed by (tenant, product, warehouse).

    `fail_products` forces a failed deduction for the given product ids,
    mirroring an inventory module that rejects the movement.
    """

    def __init__(self):
        self.stock: dict[tuple[str, str, str | None], int] = {}
        self.fail_products: dict[str, str] = {}
        self.calls: list[dict] = []

    def set_stock(self, tenant_id: str, product_id: str, warehouse_id: str | None, quantity: int) -> None:
        self.stock[(tenant_id, product_id, warehouse_id)] = quantity

    def deduct_stock(
        self,
        product_id: str,
        warehouse_id: str | None,
        quantity: int,
        *,
        tenant_id: str,
        reference: str,
    ) -> StockDeduction:
        self.calls.append({
            "product_id": product_id,
            "warehouse_id": warehouse_id,
            "quantity": quantity,
            "tenant_id": tenant_id,
            "reference": reference,
        })

        if product_id in self.fail_products:
            return StockDeduction(success=False, error_message=self.fail_products[product_id])

        key = (tenant_id, product_id, warehouse_id)
        if key not in self.stock:
            return StockDeduction(
                success=False,
                error_message=f"No stock record for product {product_id} in warehouse {warehouse_id}",
            )
        on_hand = self.stock[key]
        if on_hand < quantity:
            return StockDeduction(
                success=False,
                new_quantity=on_hand,
                error_message=f"Insufficient stock: on hand {on_hand}, requested {quantity}",
            )
        self.stock[key] = on_hand - quantity
        return StockDeduction(success=True, new_quantity=on_hand - quantity)


@dataclass
class RecordedAuditEvent:
    action: str
    entity_type: str
    entity_id: str
    user_id: str | None
    tenant_id: str
    metadata: dict | None
    occurred_at: object


class InMemoryAuditLog:

    def __init__(self):
        self.events: list[RecordedAuditEvent] = []
        self.fail_with: Exception | None = None

    def log(
        self,
        *,
        action: str,
        entity_type: str,
        entity_id: str,
        user_id: str | None,
        tenant_id: str,
        metadata: dict | None = None,
    ) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.events.append(RecordedAuditEvent(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            tenant_id=tenant_id,
            metadata=dict(metadata) if metadata else None,
            occurred_at=utcnow(),
        ))

    def actions(self) -> list[str]:
        return [e.action for e in self.events]


class InMemoryUnitOfWork:
    """Serializes engine operations with a re-entrant lock."""

    def __init__(self):
        self._lock = threading.RLock()

    def run(self, func, *, retry: bool = True):
        with self._lock:
            return func()
