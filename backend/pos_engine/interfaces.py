"""
Collaborator contracts consumed by the POS engine.

Every contract has exactly two implementations: a production one
(repositories.sql, gateways.mypos) and an in-memory one (repositories.memory,
gateways.memory). Services receive them as constructor arguments; nothing is
looked up from a global registry.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, TypeVar

from .domain import (
    CardCharge,
    CardRefund,
    RegisterSessionInfo,
    SaleItem,
    SalePayment,
    SaleTransaction,
    StockDeduction,
)
from .validation import TransactionFilter

T = TypeVar("T")


class TransactionRepository(Protocol):
    def find_by_id(self, transaction_id: str, *, for_update: bool = False) -> SaleTransaction | None: ...

    def find_by_number(self, tenant_id: str, transaction_number: str) -> SaleTransaction | None: ...

    def find_all(self, tenant_id: str, filter: TransactionFilter | None = None) -> list[SaleTransaction]: ...

    def create(self, transaction: SaleTransaction) -> SaleTransaction: ...

    def update(self, transaction_id: str, **changes: Any) -> SaleTransaction: ...


class SaleItemRepository(Protocol):
    def find_by_id(self, item_id: str, *, for_update: bool = False) -> SaleItem | None: ...

    def find_by_transaction(self, transaction_id: str) -> list[SaleItem]: ...

    def create(self, item: SaleItem) -> SaleItem: ...

    def update(self, item_id: str, **changes: Any) -> SaleItem: ...

    def delete(self, item_id: str) -> None: ...

    def delete_by_transaction(self, transaction_id: str) -> int: ...


class PaymentRepository(Protocol):
    def find_by_transaction(self, transaction_id: str) -> list[SalePayment]: ...

    def create(self, payment: SalePayment) -> SalePayment: ...

    def delete_by_transaction(self, transaction_id: str) -> int: ...

    def sum_by_transaction(self, transaction_id: str) -> int: ...


class SequenceCounter(Protocol):
    def increment(self, tenant_id: str, period: str) -> int:
        """Atomically allocate the next value (starting at 1) for (tenant, period)."""
        ...


class SessionProvider(Protocol):
    def find_by_id(self, session_id: str) -> RegisterSessionInfo | None: ...


class InventoryService(Protocol):
    def deduct_stock(
        self,
        product_id: str,
        warehouse_id: str | None,
        quantity: int,
        *,
        tenant_id: str,
        reference: str,
    ) -> StockDeduction: ...


class CardGateway(Protocol):
    def charge(self, amount: int, reference: str) -> CardCharge: ...

    def refund(self, card_transaction_id: str) -> CardRefund: ...


class AuditLog(Protocol):
    def log(
        self,
        *,
        action: str,
        entity_type: str,
        entity_id: str,
        user_id: str | None,
        tenant_id: str,
        metadata: dict | None = None,
    ) -> None: ...


class UnitOfWork(Protocol):
    def run(self, func: Callable[[], T], *, retry: bool = True) -> T:
        """
        Run func as one all-or-nothing unit, serialized against other units.

        retry=False for units that call external services (a retried unit
        could charge a card twice).
        """
        ...
