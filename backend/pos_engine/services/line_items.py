"""
Line-item arithmetic for sale transactions.

FORMULA (per line, all amounts in minor units, half-up rounding):
- line_subtotal = round(quantity * unit_price * (1 - discount_percent/100))
- line_tax      = round(line_subtotal * tax_rate/100)
- line_total    = line_subtotal + line_tax

line_total is the exact sum of the two rounded parts, so the transaction
totals (plain sums of the lines) always satisfy total == subtotal + tax_amount.
discount_amount is informational: the discount is already inside subtotal.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class LineAmounts:
    line_subtotal: int
    line_tax: int
    line_total: int


@dataclass(frozen=True)
class TransactionTotals:
    subtotal: int
    tax_amount: int
    discount_amount: int
    total: int

    def as_changes(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "tax_amount": self.tax_amount,
            "discount_amount": self.discount_amount,
            "total": self.total,
        }


def _round(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_line(quantity: int, unit_price: int, tax_rate: Decimal, discount_percent: Decimal) -> LineAmounts:
    gross = Decimal(quantity) * Decimal(unit_price)
    line_subtotal = _round(gross * (1 - Decimal(discount_percent) / HUNDRED))
    line_tax = _round(Decimal(line_subtotal) * Decimal(tax_rate) / HUNDRED)
    return LineAmounts(
        line_subtotal=line_subtotal,
        line_tax=line_tax,
        line_total=line_subtotal + line_tax,
    )


def summarize(items) -> TransactionTotals:
    subtotal = 0
    tax_amount = 0
    discount_amount = 0
    for item in items:
        subtotal += item.line_subtotal
        tax_amount += item.line_tax
        discount_amount += item.quantity * item.unit_price - item.line_subtotal
    return TransactionTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        discount_amount=discount_amount,
        total=subtotal + tax_amount,
    )


class LineItemLedger:
    """
    Owns a transaction's items and keeps its totals in step with them.

    Every mutation re-sums all items and writes the totals in the same unit of
    work as the item write.
    """

    def __init__(self, items, transactions):
        self.items = items
        self.transactions = transactions

    def list(self, transaction_id: str):
        return self.items.find_by_transaction(transaction_id)

    def add(self, item):
        amounts = calculate_line(item.quantity, item.unit_price, item.tax_rate, item.discount_percent)
        item.line_subtotal = amounts.line_subtotal
        item.line_tax = amounts.line_tax
        item.line_total = amounts.line_total
        created = self.items.create(item)
        transaction = self.recalculate(item.transaction_id)
        return created, transaction

    def update(self, item, *, quantity: int | None = None, discount_percent: Decimal | None = None):
        quantity = item.quantity if quantity is None else quantity
        discount_percent = item.discount_percent if discount_percent is None else discount_percent
        amounts = calculate_line(quantity, item.unit_price, item.tax_rate, discount_percent)
        updated = self.items.update(
            item.id,
            quantity=quantity,
            discount_percent=discount_percent,
            line_subtotal=amounts.line_subtotal,
            line_tax=amounts.line_tax,
            line_total=amounts.line_total,
        )
        transaction = self.recalculate(item.transaction_id)
        return updated, transaction

    def remove(self, item):
        self.items.delete(item.id)
        return self.recalculate(item.transaction_id)

    def recalculate(self, transaction_id: str):
        totals = summarize(self.items.find_by_transaction(transaction_id))
        return self.transactions.update(transaction_id, **totals.as_changes())
