"""
Sale transaction domain records.

WHY: The engine is storage-agnostic. Repositories hand out these plain records
(never ORM rows), so the same service code runs against SQL and in-memory
storage.

MONEY: All amounts are integer minor units (fillér, cents). Tax rates and
discount percentages are Decimals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from .time_utils import to_utc_z


# =============================================================================
# STATUS (CONSTANTS)
# =============================================================================

STATUS_IN_PROGRESS = "IN_PROGRESS"
STATUS_PENDING_PAYMENT = "PENDING_PAYMENT"
STATUS_COMPLETED = "COMPLETED"
STATUS_VOIDED = "VOIDED"

VALID_STATUSES = [
    STATUS_IN_PROGRESS,
    STATUS_PENDING_PAYMENT,
    STATUS_COMPLETED,
    STATUS_VOIDED,
]

# Items may be edited while the cart is open or waiting for payment
EDITABLE_STATUSES = (STATUS_IN_PROGRESS, STATUS_PENDING_PAYMENT)
VOIDABLE_STATUSES = (STATUS_IN_PROGRESS, STATUS_PENDING_PAYMENT)

PAYMENT_STATUS_PENDING = "PENDING"
PAYMENT_STATUS_PARTIAL = "PARTIAL"
PAYMENT_STATUS_PAID = "PAID"


# =============================================================================
# TENDER TYPES (CONSTANTS)
# =============================================================================

METHOD_CASH = "CASH"
METHOD_CARD = "CARD"

VALID_PAYMENT_METHODS = [
    METHOD_CASH,
    METHOD_CARD,
]

SESSION_STATUS_OPEN = "OPEN"
SESSION_STATUS_CLOSED = "CLOSED"


# =============================================================================
# RECORDS
# =============================================================================

@dataclass
class SaleTransaction:
    """
    A sale from first item to completion or void. Amounts in minor units.

    subtotal is already net of line discounts, so total = subtotal +
    tax_amount. discount_amount only reports how much was taken off and must
    not be subtracted again.
    """
    id: str
    tenant_id: str
    session_id: str
    transaction_number: str
    created_by: str
    created_at: datetime
    subtotal: int = 0
    tax_amount: int = 0
    discount_amount: int = 0
    total: int = 0
    payment_status: str = PAYMENT_STATUS_PENDING
    paid_amount: int = 0
    change_amount: int = 0
    status: str = STATUS_IN_PROGRESS
    customer_id: str | None = None
    customer_name: str | None = None
    customer_tax_number: str | None = None
    completed_at: datetime | None = None
    voided_at: datetime | None = None
    voided_by: str | None = None
    void_reason: str | None = None
    refunded_at: datetime | None = None
    needs_reconciliation: bool = False

    @property
    def remaining_amount(self) -> int:
        return self.total - self.paid_amount

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "session_id": self.session_id,
            "transaction_number": self.transaction_number,
            "subtotal": self.subtotal,
            "tax_amount": self.tax_amount,
            "discount_amount": self.discount_amount,
            "total": self.total,
            "payment_status": self.payment_status,
            "paid_amount": self.paid_amount,
            "change_amount": self.change_amount,
            "status": self.status,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "customer_tax_number": self.customer_tax_number,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at),
            "voided_at": to_utc_z(self.voided_at),
            "voided_by": self.voided_by,
            "void_reason": self.void_reason,
            "refunded_at": to_utc_z(self.refunded_at),
            "needs_reconciliation": self.needs_reconciliation,
        }


@dataclass
class SaleItem:
    """
    One product line on a transaction.

    Product code/name are snapshots taken when the item was added, so later
    catalogue edits never rewrite sale history.
    """
    id: str
    transaction_id: str
    tenant_id: str
    product_id: str
    product_code: str
    product_name: str
    quantity: int
    unit_price: int
    tax_rate: Decimal
    discount_percent: Decimal
    line_subtotal: int
    line_tax: int
    line_total: int
    inventory_deducted: bool = False
    warehouse_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "product_id": self.product_id,
            "product_code": self.product_code,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "tax_rate": str(self.tax_rate),
            "discount_percent": str(self.discount_percent),
            "line_subtotal": self.line_subtotal,
            "line_tax": self.line_tax,
            "line_total": self.line_total,
            "inventory_deducted": self.inventory_deducted,
            "warehouse_id": self.warehouse_id,
        }


@dataclass
class SalePayment:
    id: str
    transaction_id: str
    tenant_id: str
    method: str
    amount: int
    received_at: datetime
    card_transaction_id: str | None = None
    card_last_four: str | None = None
    card_brand: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "method": self.method,
            "amount": self.amount,
            "received_at": to_utc_z(self.received_at),
            "card_transaction_id": self.card_transaction_id,
            "card_last_four": self.card_last_four,
            "card_brand": self.card_brand,
        }


@dataclass(frozen=True)
class RegisterSessionInfo:
    """Read-only view of a cash-register session owned by the register module."""
    id: str
    tenant_id: str
    status: str


# =============================================================================
# COLLABORATOR RESULTS
# =============================================================================

@dataclass(frozen=True)
class StockDeduction:
    success: bool
    new_quantity: int | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class CardCharge:
    success: bool
    transaction_id: str | None = None
    card_last_four: str | None = None
    card_brand: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class CardRefund:
    success: bool
    error_message: str | None = None


# =============================================================================
# OPERATION RESULTS
# =============================================================================

@dataclass
class CashPaymentResult:
    # None when a zero-total transaction was settled
    payment: SalePayment | None
    change_amount: int
    transaction_paid_amount: int
    is_fully_paid: bool
    transaction: SaleTransaction

    def to_dict(self) -> dict:
        return {
            "payment": self.payment.to_dict() if self.payment else None,
            "change_amount": self.change_amount,
            "transaction_paid_amount": self.transaction_paid_amount,
            "is_fully_paid": self.is_fully_paid,
            "transaction": self.transaction.to_dict(),
        }


@dataclass
class CardPaymentResult:
    payment: SalePayment
    card_transaction_id: str
    card_last_four: str
    card_brand: str
    transaction_paid_amount: int
    is_fully_paid: bool
    transaction: SaleTransaction

    def to_dict(self) -> dict:
        return {
            "payment": self.payment.to_dict(),
            "card_transaction_id": self.card_transaction_id,
            "card_last_four": self.card_last_four,
            "card_brand": self.card_brand,
            "transaction_paid_amount": self.transaction_paid_amount,
            "is_fully_paid": self.is_fully_paid,
            "transaction": self.transaction.to_dict(),
        }


@dataclass
class PartialPaymentResult:
    payment: SalePayment
    transaction_paid_amount: int
    remaining_amount: int
    is_fully_paid: bool
    transaction: SaleTransaction

    def to_dict(self) -> dict:
        return {
            "payment": self.payment.to_dict(),
            "transaction_paid_amount": self.transaction_paid_amount,
            "remaining_amount": self.remaining_amount,
            "is_fully_paid": self.is_fully_paid,
            "transaction": self.transaction.to_dict(),
        }


@dataclass
class InventoryDeductionResult:
    item_id: str
    product_id: str
    success: bool
    new_quantity: int | None = None
    error_message: str | None = None
    skipped: bool = False

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "product_id": self.product_id,
            "success": self.success,
            "new_quantity": self.new_quantity,
            "error_message": self.error_message,
            "skipped": self.skipped,
        }


@dataclass
class CompletePaymentResult:
    transaction_id: str
    deduction_results: list[InventoryDeductionResult] = field(default_factory=list)

    @property
    def all_deductions_successful(self) -> bool:
        return all(r.success for r in self.deduction_results)

    def to_dict(self) -> dict:
        return {
            "transaction_id": self.transaction_id,
            "deduction_results": [r.to_dict() for r in self.deduction_results],
            "all_deductions_successful": self.all_deductions_successful,
        }


@dataclass
class CardRefundOutcome:
    payment_id: str
    card_transaction_id: str
    success: bool
    error_message: str | None = None

    def to_dict(self) -> dict:
        return {
            "payment_id": self.payment_id,
            "card_transaction_id": self.card_transaction_id,
            "success": self.success,
            "error_message": self.error_message,
        }


@dataclass
class RefundResult:
    transaction_id: str
    deleted_payment_count: int
    card_refunds: list[CardRefundOutcome] = field(default_factory=list)
    needs_reconciliation: bool = False

    def to_dict(self) -> dict:
        return {
            "transaction_id": self.transaction_id,
            "deleted_payment_count": self.deleted_payment_count,
            "card_refunds": [r.to_dict() for r in self.card_refunds],
            "needs_reconciliation": self.needs_reconciliation,
        }
