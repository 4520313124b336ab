# Overview: Payment reversal for voided sale transactions.

"""
Void Refund Coordinator

WHY: Voiding a sale does not move money. Reversing what was collected is an
explicit step: card payments are refunded through the gateway, then every
payment record of the transaction is removed in one operation.

POLICY (tolerate-and-log): a failed card refund does not block the reversal.
It is logged, reported in the result, and the transaction is flagged
needs_reconciliation so the charge can be reversed by hand. payment_status is
left as it was; it never regresses.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..domain import (
    METHOD_CARD,
    STATUS_VOIDED,
    CardRefundOutcome,
    RefundResult,
)
from ..errors import InvalidStateError
from ..time_utils import utcnow
from .audit import record_audit_event
from .tenancy import require_transaction

if TYPE_CHECKING:
    from ..interfaces import AuditLog, CardGateway, PaymentRepository, TransactionRepository, UnitOfWork

logger = logging.getLogger(__name__)


class VoidRefundCoordinator:

    def __init__(
        self,
        *,
        transactions: TransactionRepository,
        payments: PaymentRepository,
        card_gateway: CardGateway,
        audit_log: AuditLog,
        unit_of_work: UnitOfWork,
    ):
        self.transactions = transactions
        self.payments = payments
        self.card_gateway = card_gateway
        self.audit_log = audit_log
        self.unit_of_work = unit_of_work

    def _refund_card(self, payment) -> CardRefundOutcome:
        try:
            refund = self.card_gateway.refund(payment.card_transaction_id)
        except Exception as exc:
            logger.warning("Card refund of %s raised", payment.card_transaction_id, exc_info=True)
            return CardRefundOutcome(
                payment_id=payment.id,
                card_transaction_id=payment.card_transaction_id,
                success=False,
                error_message=str(exc) or exc.__class__.__name__,
            )
        if not refund.success:
            logger.warning("Card refund of %s failed: %s", payment.card_transaction_id, refund.error_message)
        return CardRefundOutcome(
            payment_id=payment.id,
            card_transaction_id=payment.card_transaction_id,
            success=refund.success,
            error_message=refund.error_message,
        )

    def refund(self, transaction_id: str, tenant_id: str, user_id: str | None = None) -> RefundResult:
        """
        Raises:
            NotFoundError / AccessDeniedError: transaction lookup failed
            InvalidStateError: transaction is not VOIDED
        """
        def _op():
            transaction = require_transaction(self.transactions, transaction_id, tenant_id, for_update=True)
            if transaction.status != STATUS_VOIDED:
                raise InvalidStateError("Can only refund voided transactions")

            card_refunds = [
                self._refund_card(payment)
                for payment in self.payments.find_by_transaction(transaction.id)
                if payment.method == METHOD_CARD and payment.card_transaction_id
            ]
            failed = [r for r in card_refunds if not r.success]

            deleted = self.payments.delete_by_transaction(transaction.id)
            needs_reconciliation = transaction.needs_reconciliation or bool(failed)
            self.transactions.update(
                transaction.id,
                refunded_at=utcnow(),
                needs_reconciliation=needs_reconciliation,
            )

            record_audit_event(
                self.audit_log,
                action="payments_refunded",
                entity_id=transaction.id,
                user_id=user_id,
                tenant_id=tenant_id,
                metadata={
                    "transaction_number": transaction.transaction_number,
                    "deleted_payment_count": deleted,
                    "card_refund_count": len(card_refunds),
                    "failed_card_transaction_ids": [r.card_transaction_id for r in failed],
                },
            )

            if failed:
                logger.warning(
                    "Transaction %s needs reconciliation: %d card refund(s) failed",
                    transaction.transaction_number,
                    len(failed),
                )
            logger.info("Refunded %d payment(s) on %s", deleted, transaction.transaction_number)

            return RefundResult(
                transaction_id=transaction.id,
                deleted_payment_count=deleted,
                card_refunds=card_refunds,
                needs_reconciliation=needs_reconciliation,
            )

        # Gateway refunds happen inside the unit; never replay them
        return self.unit_of_work.run(_op, retry=False)
