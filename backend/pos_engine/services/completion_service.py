# Overview: Inventory reconciliation for fully paid sale transactions.

"""
Completion Reconciler

WHY: The payment write is authoritative and must stay fast. Stock is
reconciled afterwards, best-effort: a failed deduction never undoes a sale,
it is reported back so the caller can surface a warning and stock can be
corrected by a manual adjustment.

RULES:
- Only PAID transactions are reconciled.
- Every item is attempted exactly once, each in its own unit of work.
- An attempted item is flagged inventory_deducted whatever the outcome, so a
  re-run reports it as skipped instead of deducting twice.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..domain import (
    PAYMENT_STATUS_PAID,
    CompletePaymentResult,
    InventoryDeductionResult,
    SaleItem,
    SaleTransaction,
)
from ..errors import InvalidStateError
from .audit import record_audit_event
from .tenancy import require_transaction

if TYPE_CHECKING:
    from ..interfaces import (
        AuditLog,
        InventoryService,
        SaleItemRepository,
        TransactionRepository,
        UnitOfWork,
    )

logger = logging.getLogger(__name__)


class CompletionReconciler:

    def __init__(
        self,
        *,
        transactions: TransactionRepository,
        items: SaleItemRepository,
        inventory: InventoryService,
        audit_log: AuditLog,
        unit_of_work: UnitOfWork,
        default_warehouse_id: str | None = None,
    ):
        self.transactions = transactions
        self.items = items
        self.inventory = inventory
        self.audit_log = audit_log
        self.unit_of_work = unit_of_work
        self.default_warehouse_id = default_warehouse_id

    def reconcile(self, transaction_id: str, tenant_id: str, user_id: str | None = None) -> CompletePaymentResult:
        transaction = require_transaction(self.transactions, transaction_id, tenant_id)
        if transaction.payment_status != PAYMENT_STATUS_PAID:
            raise InvalidStateError("Transaction is not fully paid")

        results = [
            self._deduct_item(transaction, item)
            for item in self.items.find_by_transaction(transaction.id)
        ]
        result = CompletePaymentResult(transaction_id=transaction.id, deduction_results=results)

        failed = [r for r in results if not r.success]
        self.unit_of_work.run(lambda: record_audit_event(
            self.audit_log,
            action="inventory_reconciled",
            entity_id=transaction.id,
            user_id=user_id,
            tenant_id=tenant_id,
            metadata={
                "transaction_number": transaction.transaction_number,
                "attempted": len([r for r in results if not r.skipped]),
                "skipped": len([r for r in results if r.skipped]),
                "failed_item_ids": [r.item_id for r in failed],
            },
        ))
        logger.info(
            "Inventory reconciled for %s: %d items, %d failed",
            transaction.transaction_number,
            len(results),
            len(failed),
        )
        return result

    @staticmethod
    def _skipped(item: SaleItem) -> InventoryDeductionResult:
        return InventoryDeductionResult(
            item_id=item.id,
            product_id=item.product_id,
            success=True,
            skipped=True,
        )

    def _deduct_item(self, transaction: SaleTransaction, item: SaleItem) -> InventoryDeductionResult:
        if item.inventory_deducted:
            return self._skipped(item)

        warehouse_id = item.warehouse_id or self.default_warehouse_id

        def _op():
            # A concurrent reconcile may have claimed the item since it was listed
            current = self.items.find_by_id(item.id, for_update=True)
            if current is None or current.inventory_deducted:
                return self._skipped(item)

            try:
                deduction = self.inventory.deduct_stock(
                    item.product_id,
                    warehouse_id,
                    item.quantity,
                    tenant_id=transaction.tenant_id,
                    reference=transaction.transaction_number,
                )
            except Exception as exc:
                logger.warning(
                    "Inventory deduction raised for item %s (product %s) on %s",
                    item.id,
                    item.product_id,
                    transaction.transaction_number,
                    exc_info=True,
                )
                outcome = InventoryDeductionResult(
                    item_id=item.id,
                    product_id=item.product_id,
                    success=False,
                    error_message=str(exc) or exc.__class__.__name__,
                )
            else:
                outcome = InventoryDeductionResult(
                    item_id=item.id,
                    product_id=item.product_id,
                    success=deduction.success,
                    new_quantity=deduction.new_quantity,
                    error_message=deduction.error_message,
                )

            self.items.update(item.id, inventory_deducted=True)
            return outcome

        # Not retried: a stock movement must not be applied twice
        outcome = self.unit_of_work.run(_op, retry=False)
        if not outcome.success:
            logger.warning(
                "Inventory deduction failed for item %s (product %s) on %s: %s",
                item.id,
                item.product_id,
                transaction.transaction_number,
                outcome.error_message,
            )
        return outcome
