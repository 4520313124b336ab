# Overview: Service-layer operations for sale payments; applies tenders against a transaction's balance.

"""
Payment Processing Service

WHY: A sale is paid by one or more tenders (cash, card, or a mix). Every
payment is checked against the remaining balance so the collected sum can
never exceed the transaction total.

DESIGN PRINCIPLES:
- Payments are separate records (many-to-one with the transaction)
- Cash over-tender is change, never stored as a payment
- The transaction completes exactly when payments sum to its total
- Inventory deduction and refunds are explicit follow-up steps
  (CompletionReconciler, VoidRefundCoordinator)
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from ..domain import (
    METHOD_CARD,
    METHOD_CASH,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIAL,
    STATUS_COMPLETED,
    STATUS_PENDING_PAYMENT,
    CardPaymentResult,
    CashPaymentResult,
    PartialPaymentResult,
    SalePayment,
    SaleTransaction,
)
from ..errors import (
    AlreadyPaidError,
    ExternalServiceError,
    InvalidStateError,
    ValidationError,
)
from ..time_utils import utcnow
from ..validation import CashPaymentInput, PartialPaymentInput, coerce_input
from .audit import record_audit_event
from .tenancy import require_transaction

if TYPE_CHECKING:
    from ..interfaces import AuditLog, CardGateway, PaymentRepository, TransactionRepository, UnitOfWork
    from .completion_service import CompletionReconciler
    from .refund_service import VoidRefundCoordinator

logger = logging.getLogger(__name__)


class PaymentProcessor:

    def __init__(
        self,
        *,
        transactions: TransactionRepository,
        payments: PaymentRepository,
        card_gateway: CardGateway,
        audit_log: AuditLog,
        unit_of_work: UnitOfWork,
        completion: CompletionReconciler,
        refunds: VoidRefundCoordinator,
    ):
        self.transactions = transactions
        self.payments = payments
        self.card_gateway = card_gateway
        self.audit_log = audit_log
        self.unit_of_work = unit_of_work
        self.completion = completion
        self.refunds = refunds

    # =========================================================================
    # BALANCE
    # =========================================================================

    def _require_payable(self, transaction: SaleTransaction, *, settle_zero_total: bool = False) -> tuple[int, int]:
        """
        Check the transaction can take a payment.

        With settle_zero_total a transaction totalling 0 passes with a zero
        remaining balance, so the cash path can complete it.

        Returns:
            (already paid sum, remaining balance)
        """
        if transaction.payment_status == PAYMENT_STATUS_PAID:
            raise AlreadyPaidError("Transaction is already paid")
        if transaction.status != STATUS_PENDING_PAYMENT:
            raise InvalidStateError(
                "Transaction is not awaiting payment",
                details={"status": transaction.status},
            )

        # Payment records are authoritative for what has been collected
        paid = self.payments.sum_by_transaction(transaction.id)
        remaining = transaction.total - paid
        if remaining <= 0 and not (settle_zero_total and transaction.total == 0):
            raise AlreadyPaidError("Transaction is already paid")
        return paid, max(remaining, 0)

    def _apply_payment(self, transaction: SaleTransaction, paid_amount: int, **changes) -> SaleTransaction:
        if paid_amount == transaction.total:
            changes.update(
                payment_status=PAYMENT_STATUS_PAID,
                status=STATUS_COMPLETED,
                completed_at=utcnow(),
            )
        else:
            changes["payment_status"] = PAYMENT_STATUS_PARTIAL
        return self.transactions.update(transaction.id, paid_amount=paid_amount, **changes)

    def _new_payment(self, transaction: SaleTransaction, method: str, amount: int, **card_fields) -> SalePayment:
        return self.payments.create(SalePayment(
            id=str(uuid.uuid4()),
            transaction_id=transaction.id,
            tenant_id=transaction.tenant_id,
            method=method,
            amount=amount,
            received_at=utcnow(),
            **card_fields,
        ))

    def _audit_payment(self, transaction: SaleTransaction, payment: SalePayment | None, user_id: str | None) -> None:
        record_audit_event(
            self.audit_log,
            action="payment_recorded",
            entity_id=transaction.id,
            user_id=user_id,
            tenant_id=transaction.tenant_id,
            metadata={
                "payment_id": payment.id if payment else None,
                "method": payment.method if payment else METHOD_CASH,
                "amount": payment.amount if payment else 0,
                "paid_amount": transaction.paid_amount,
                "payment_status": transaction.payment_status,
            },
        )

    def _log_payment(self, transaction: SaleTransaction, payment: SalePayment | None) -> None:
        if payment is None:
            logger.info("Settled zero-total transaction %s without a payment", transaction.transaction_number)
            return
        logger.info(
            "Recorded %s payment of %d on %s (paid %d of %d)",
            payment.method,
            payment.amount,
            transaction.transaction_number,
            transaction.paid_amount,
            transaction.total,
        )
        if transaction.status == STATUS_COMPLETED:
            logger.info("Transaction %s completed", transaction.transaction_number)

    # =========================================================================
    # TENDERS
    # =========================================================================

    def process_cash_payment(
        self,
        transaction_id: str,
        data,
        tenant_id: str,
        user_id: str | None = None,
    ) -> CashPaymentResult:
        """
        Settle the remaining balance in cash.

        Only the remaining balance is stored as the payment; anything received
        above it is handed back as change. A transaction totalling 0 is
        completed with no payment record and the whole amount as change.

        Raises:
            AlreadyPaidError: nothing left to pay
            InvalidStateError: transaction is not PENDING_PAYMENT
            ValidationError: received amount is below the remaining balance
        """
        data = coerce_input(CashPaymentInput, data)

        def _op():
            transaction = require_transaction(self.transactions, transaction_id, tenant_id, for_update=True)
            paid, required = self._require_payable(transaction, settle_zero_total=True)
            if data.received_amount < required:
                raise ValidationError(
                    "Insufficient payment: received amount is less than remaining balance",
                    details={"received_amount": data.received_amount, "remaining_amount": required},
                )

            change_amount = data.received_amount - required
            payment = self._new_payment(transaction, METHOD_CASH, required) if required else None
            updated = self._apply_payment(transaction, paid + required, change_amount=change_amount)
            self._audit_payment(updated, payment, user_id)

            return CashPaymentResult(
                payment=payment,
                change_amount=change_amount,
                transaction_paid_amount=updated.paid_amount,
                is_fully_paid=updated.payment_status == PAYMENT_STATUS_PAID,
                transaction=updated,
            )

        result = self.unit_of_work.run(_op)
        self._log_payment(result.transaction, result.payment)
        return result

    def process_card_payment(
        self,
        transaction_id: str,
        tenant_id: str,
        user_id: str | None = None,
    ) -> CardPaymentResult:
        """
        Charge the remaining balance to a card through the gateway.

        A declined or failed charge leaves the transaction untouched. The unit
        is never retried: a retry would charge the card a second time.
        """
        def _op():
            transaction = require_transaction(self.transactions, transaction_id, tenant_id, for_update=True)
            paid, required = self._require_payable(transaction)

            try:
                charge = self.card_gateway.charge(required, transaction.transaction_number)
            except Exception as exc:
                raise ExternalServiceError(f"Card payment failed: {exc}") from exc
            if not charge.success:
                raise ExternalServiceError(
                    f"Card payment failed: {charge.error_message or 'Unknown error'}",
                    details={"amount": required},
                )

            try:
                payment = self._new_payment(
                    transaction,
                    METHOD_CARD,
                    required,
                    card_transaction_id=charge.transaction_id,
                    card_last_four=charge.card_last_four,
                    card_brand=charge.card_brand,
                )
                updated = self._apply_payment(transaction, paid + required)
            except Exception:
                logger.exception(
                    "Card charge %s for %d on %s succeeded but the payment was not recorded; "
                    "the charge must be reversed manually",
                    charge.transaction_id,
                    required,
                    transaction.transaction_number,
                )
                raise

            self._audit_payment(updated, payment, user_id)
            return CardPaymentResult(
                payment=payment,
                card_transaction_id=charge.transaction_id,
                card_last_four=charge.card_last_four,
                card_brand=charge.card_brand,
                transaction_paid_amount=updated.paid_amount,
                is_fully_paid=updated.payment_status == PAYMENT_STATUS_PAID,
                transaction=updated,
            )

        result = self.unit_of_work.run(_op, retry=False)
        self._log_payment(result.transaction, result.payment)
        return result

    def add_partial_payment(
        self,
        transaction_id: str,
        data,
        tenant_id: str,
        user_id: str | None = None,
    ) -> PartialPaymentResult:
        """
        Record one part of a split payment, as given.

        Card parts carry the reference of a charge already taken on a terminal;
        no gateway call is made here.
        """
        data = coerce_input(PartialPaymentInput, data)

        def _op():
            transaction = require_transaction(self.transactions, transaction_id, tenant_id, for_update=True)
            paid, remaining = self._require_payable(transaction)
            if data.amount > remaining:
                raise ValidationError(
                    "Payment amount exceeds remaining balance",
                    details={"amount": data.amount, "remaining_amount": remaining},
                )

            payment = self._new_payment(
                transaction,
                data.method,
                data.amount,
                card_transaction_id=data.card_transaction_id,
                card_last_four=data.card_last_four,
                card_brand=data.card_brand,
            )
            updated = self._apply_payment(transaction, paid + data.amount)
            self._audit_payment(updated, payment, user_id)

            return PartialPaymentResult(
                payment=payment,
                transaction_paid_amount=updated.paid_amount,
                remaining_amount=updated.remaining_amount,
                is_fully_paid=updated.payment_status == PAYMENT_STATUS_PAID,
                transaction=updated,
            )

        result = self.unit_of_work.run(_op)
        self._log_payment(result.transaction, result.payment)
        return result

    # =========================================================================
    # FOLLOW-UP STEPS
    # =========================================================================

    def complete_payment(self, transaction_id: str, tenant_id: str, user_id: str | None = None):
        """Deduct inventory for a fully paid transaction. See CompletionReconciler."""
        return self.completion.reconcile(transaction_id, tenant_id, user_id=user_id)

    def refund_payments(self, transaction_id: str, tenant_id: str, user_id: str | None = None):
        """Reverse the payments of a voided transaction. See VoidRefundCoordinator."""
        return self.refunds.refund(transaction_id, tenant_id, user_id=user_id)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_payments(self, transaction_id: str, tenant_id: str) -> list[SalePayment]:
        transaction = require_transaction(self.transactions, transaction_id, tenant_id)
        return self.payments.find_by_transaction(transaction.id)

    def get_payment_summary(self, transaction_id: str, tenant_id: str) -> dict:
        """
        Get the payment position of a transaction.

        Returns:
            - total: amount the transaction totals to
            - paid_amount: amount collected so far
            - remaining_amount: amount still owed
            - change_amount: change handed back on the last cash tender
            - payment_status: PENDING, PARTIAL, PAID
            - payments: list of payment records
        """
        transaction = require_transaction(self.transactions, transaction_id, tenant_id)
        payments = self.payments.find_by_transaction(transaction.id)

        return {
            "transaction_id": transaction.id,
            "transaction_number": transaction.transaction_number,
            "total": transaction.total,
            "paid_amount": transaction.paid_amount,
            "remaining_amount": max(transaction.remaining_amount, 0),
            "change_amount": transaction.change_amount,
            "payment_status": transaction.payment_status,
            "payments": [p.to_dict() for p in payments],
        }
