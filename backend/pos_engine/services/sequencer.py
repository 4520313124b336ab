# Overview: Human-readable transaction numbers allocated per tenant and period.

from __future__ import annotations

from ..errors import FatalError
from ..time_utils import utcnow


class TransactionNumberSequencer:
    """
    Produces numbers like ELADAS-2026-0001.

    Uniqueness rests on the counter's atomic increment per (tenant, period);
    the period is the calendar year. Sequences wider than four digits are
    printed in full rather than truncated.
    """

    def __init__(self, counter, *, prefix: str = "ELADAS", pad: int = 4, clock=utcnow):
        self.counter = counter
        self.prefix = prefix
        self.pad = pad
        self.clock = clock

    def current_period(self) -> str:
        return str(self.clock().year)

    def next_number(self, tenant_id: str, period: str | None = None) -> str:
        if not tenant_id:
            raise FatalError("tenant_id is required for transaction numbering")
        period = period or self.current_period()

        sequence = self.counter.increment(tenant_id, period)
        if not isinstance(sequence, int) or sequence < 1:
            raise FatalError(
                "Transaction number generation failed",
                details={"tenant_id": tenant_id, "period": period, "sequence": sequence},
            )

        return f"{self.prefix}-{period}-{sequence:0{self.pad}d}"
