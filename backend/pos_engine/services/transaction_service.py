# Overview: Service-layer operations for sale transactions; owns the transaction state machine.

"""
Sale Transaction Service

WHY: A sale is a document that lives through item entry, payment and
completion, or is voided. This service owns that lifecycle and every item
mutation, keeping the derived totals in step with the items.

STATE MACHINE:
- IN_PROGRESS -> PENDING_PAYMENT (complete_transaction, needs items)
- IN_PROGRESS | PENDING_PAYMENT -> VOIDED (void_transaction, needs a reason)
- PENDING_PAYMENT -> COMPLETED happens in the payment service when the
  transaction is fully paid.

Every mutating operation runs as one unit of work: it either applies fully or
leaves nothing behind.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from ..domain import (
    EDITABLE_STATUSES,
    SESSION_STATUS_OPEN,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_PENDING_PAYMENT,
    STATUS_VOIDED,
    VOIDABLE_STATUSES,
    SaleItem,
    SaleTransaction,
)
from ..errors import InvalidStateError, NotFoundError, ValidationError
from ..time_utils import utcnow
from ..validation import (
    AddItemInput,
    CreateTransactionInput,
    SetCustomerInput,
    TransactionFilter,
    UpdateItemInput,
    VoidTransactionInput,
    coerce_input,
)
from .audit import record_audit_event
from .line_items import LineItemLedger
from .tenancy import require_session_in_tenant, require_transaction

if TYPE_CHECKING:
    from ..interfaces import (
        AuditLog,
        SaleItemRepository,
        SessionProvider,
        TransactionRepository,
        UnitOfWork,
    )
    from .sequencer import TransactionNumberSequencer

logger = logging.getLogger(__name__)


class TransactionManager:

    def __init__(
        self,
        *,
        transactions: TransactionRepository,
        items: SaleItemRepository,
        sessions: SessionProvider,
        sequencer: TransactionNumberSequencer,
        audit_log: AuditLog,
        unit_of_work: UnitOfWork,
    ):
        self.transactions = transactions
        self.items = items
        self.sessions = sessions
        self.sequencer = sequencer
        self.audit_log = audit_log
        self.unit_of_work = unit_of_work
        self.ledger = LineItemLedger(items, transactions)

    # =========================================================================
    # CREATION
    # =========================================================================

    def create_transaction(self, data, tenant_id: str, user_id: str) -> SaleTransaction:
        """
        Open a new sale against a register session.

        Raises:
            NotFoundError: session missing or owned by another tenant
            InvalidStateError: session is not OPEN
            FatalError: transaction number could not be allocated
        """
        data = coerce_input(CreateTransactionInput, data)

        def _op():
            session = require_session_in_tenant(self.sessions, data.session_id, tenant_id)
            if session.status != SESSION_STATUS_OPEN:
                raise InvalidStateError("Session is not open", details={"session_id": session.id})

            transaction = self.transactions.create(SaleTransaction(
                id=str(uuid.uuid4()),
                tenant_id=tenant_id,
                session_id=session.id,
                transaction_number=self.sequencer.next_number(tenant_id),
                created_by=user_id,
                created_at=utcnow(),
                customer_id=data.customer_id,
                customer_name=data.customer_name,
                customer_tax_number=data.customer_tax_number,
            ))

            record_audit_event(
                self.audit_log,
                action="transaction_created",
                entity_id=transaction.id,
                user_id=user_id,
                tenant_id=tenant_id,
                metadata={
                    "transaction_number": transaction.transaction_number,
                    "session_id": transaction.session_id,
                },
            )
            return transaction

        transaction = self.unit_of_work.run(_op)
        logger.info("Created transaction %s for tenant %s", transaction.transaction_number, tenant_id)
        return transaction

    # =========================================================================
    # ITEMS
    # =========================================================================

    def _require_editable(self, transaction_id: str, tenant_id: str) -> SaleTransaction:
        transaction = require_transaction(self.transactions, transaction_id, tenant_id, for_update=True)
        if transaction.status not in EDITABLE_STATUSES:
            raise InvalidStateError("Cannot modify completed or voided transaction")
        # Editing a partly paid cart could push the total below what was collected
        if transaction.paid_amount > 0:
            raise InvalidStateError(
                "Cannot modify items after a payment has been recorded",
                details={"paid_amount": transaction.paid_amount},
            )
        return transaction

    def _require_item(self, transaction_id: str, item_id: str) -> SaleItem:
        item = self.items.find_by_id(item_id)
        if not item or item.transaction_id != transaction_id:
            raise NotFoundError("Item not found")
        return item

    def add_item(self, transaction_id: str, data, tenant_id: str) -> SaleItem:
        """Add a product line; product code and name are snapshotted here."""
        data = coerce_input(AddItemInput, data)

        def _op():
            transaction = self._require_editable(transaction_id, tenant_id)
            item, _ = self.ledger.add(SaleItem(
                id=str(uuid.uuid4()),
                transaction_id=transaction.id,
                tenant_id=tenant_id,
                product_id=data.product_id,
                product_code=data.product_code,
                product_name=data.product_name,
                quantity=data.quantity,
                unit_price=data.unit_price,
                tax_rate=data.tax_rate,
                discount_percent=data.discount_percent,
                line_subtotal=0,
                line_tax=0,
                line_total=0,
                warehouse_id=data.warehouse_id,
            ))
            return item

        return self.unit_of_work.run(_op)

    def update_item(self, transaction_id: str, item_id: str, data, tenant_id: str) -> SaleItem:
        data = coerce_input(UpdateItemInput, data)

        def _op():
            self._require_editable(transaction_id, tenant_id)
            item = self._require_item(transaction_id, item_id)
            updated, _ = self.ledger.update(
                item,
                quantity=data.quantity,
                discount_percent=data.discount_percent,
            )
            return updated

        return self.unit_of_work.run(_op)

    def remove_item(self, transaction_id: str, item_id: str, tenant_id: str) -> SaleTransaction:
        def _op():
            self._require_editable(transaction_id, tenant_id)
            item = self._require_item(transaction_id, item_id)
            return self.ledger.remove(item)

        return self.unit_of_work.run(_op)

    # =========================================================================
    # CUSTOMER
    # =========================================================================

    def set_customer(self, transaction_id: str, data, tenant_id: str) -> SaleTransaction:
        data = coerce_input(SetCustomerInput, data)

        def _op():
            transaction = require_transaction(self.transactions, transaction_id, tenant_id, for_update=True)
            if transaction.status in (STATUS_COMPLETED, STATUS_VOIDED):
                raise InvalidStateError("Cannot modify completed or voided transaction")
            changes = data.changes()
            if not changes:
                return transaction
            return self.transactions.update(transaction.id, **changes)

        return self.unit_of_work.run(_op)

    # =========================================================================
    # STATE TRANSITIONS
    # =========================================================================

    def complete_transaction(self, transaction_id: str, tenant_id: str) -> SaleTransaction:
        """Close item entry: IN_PROGRESS -> PENDING_PAYMENT."""
        def _op():
            transaction = require_transaction(self.transactions, transaction_id, tenant_id, for_update=True)
            if transaction.status != STATUS_IN_PROGRESS:
                raise InvalidStateError("Can only complete in-progress transactions")
            if not self.items.find_by_transaction(transaction.id):
                raise ValidationError("Cannot complete transaction with no items")
            return self.transactions.update(transaction.id, status=STATUS_PENDING_PAYMENT)

        transaction = self.unit_of_work.run(_op)
        logger.info("Transaction %s awaiting payment (total %d)", transaction.transaction_number, transaction.total)
        return transaction

    def void_transaction(self, transaction_id: str, data, tenant_id: str, user_id: str) -> SaleTransaction:
        """
        Void a sale before completion.

        Collected payments are NOT reversed here; refunding them is a separate
        explicit step on the payment side.
        """
        data = coerce_input(VoidTransactionInput, data)

        def _op():
            transaction = require_transaction(self.transactions, transaction_id, tenant_id, for_update=True)
            if transaction.status not in VOIDABLE_STATUSES:
                raise InvalidStateError("Cannot void completed or already voided transaction")

            voided = self.transactions.update(
                transaction.id,
                status=STATUS_VOIDED,
                void_reason=data.reason,
                voided_by=user_id,
                voided_at=utcnow(),
            )

            record_audit_event(
                self.audit_log,
                action="transaction_voided",
                entity_id=voided.id,
                user_id=user_id,
                tenant_id=tenant_id,
                metadata={
                    "transaction_number": voided.transaction_number,
                    "reason": data.reason,
                    "previous_status": transaction.status,
                    "paid_amount": voided.paid_amount,
                },
            )
            return voided

        transaction = self.unit_of_work.run(_op)
        logger.info("Voided transaction %s: %s", transaction.transaction_number, transaction.void_reason)
        return transaction

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_transaction_by_id(self, transaction_id: str, tenant_id: str) -> SaleTransaction:
        return require_transaction(self.transactions, transaction_id, tenant_id)

    def get_transaction_by_number(self, transaction_number: str, tenant_id: str) -> SaleTransaction:
        # Lookup is tenant-scoped, so a number of another tenant is simply absent
        transaction = self.transactions.find_by_number(tenant_id, transaction_number)
        if not transaction:
            raise NotFoundError("Transaction not found")
        return transaction

    def get_transactions(self, tenant_id: str, filter=None) -> list[SaleTransaction]:
        if filter is not None:
            filter = coerce_input(TransactionFilter, filter)
        return self.transactions.find_all(tenant_id, filter)

    def get_transaction_items(self, transaction_id: str, tenant_id: str) -> list[SaleItem]:
        transaction = require_transaction(self.transactions, transaction_id, tenant_id)
        return self.ledger.list(transaction.id)
