# Overview: In-memory card gateway for tests and local development.

from __future__ import annotations

import itertools

from ..domain import CardCharge, CardRefund


class InMemoryCardGateway:
    """
    Approves every charge unless told otherwise.

    decline_next(message): the next charge fails with that gateway message.
    fail_refunds[card_transaction_id] = message: that refund fails.
    """

    def __init__(self, *, id_prefix: str = "mem", card_last_four: str = "4242", card_brand: str = "VISA"):
        self.id_prefix = id_prefix
        self.card_last_four = card_last_four
        self.card_brand = card_brand
        self.charges: list[dict] = []
        self.refunds: list[str] = []
        self.fail_refunds: dict[str, str] = {}
        self._declines: list[str] = []
        self._ids = itertools.count(1)

    def decline_next(self, message: str = "Card declined") -> None:
        self._declines.append(message)

    def charge(self, amount: int, reference: str) -> CardCharge:
        self.charges.append({"amount": amount, "reference": reference})
        if self._declines:
            return CardCharge(success=False, error_message=self._declines.pop(0))
        return CardCharge(
            success=True,
            transaction_id=f"{self.id_prefix}-{next(self._ids)}",
            card_last_four=self.card_last_four,
            card_brand=self.card_brand,
        )

    def refund(self, card_transaction_id: str) -> CardRefund:
        self.refunds.append(card_transaction_id)
        if card_transaction_id in self.fail_refunds:
            return CardRefund(success=False, error_message=self.fail_refunds[card_transaction_id])
        return CardRefund(success=True)
