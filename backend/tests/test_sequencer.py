# Overview: Pytest coverage for transaction number allocation.

"""
Transaction Number Sequencer Tests

Numbers look like ELADAS-2026-0001 and are unique per tenant and year.
"""

import threading
from datetime import datetime

import pytest

from pos_engine.errors import FatalError
from pos_engine.repositories import InMemorySequenceCounter
from pos_engine.services.sequencer import TransactionNumberSequencer


def _clock(year):
    return lambda: datetime(year, 6, 1, 12, 0)


class TestNumberFormat:
    """Test the wire-visible number format."""

    def test_first_number_of_year(self):
        sequencer = TransactionNumberSequencer(InMemorySequenceCounter(), clock=_clock(2026))
        assert sequencer.next_number("T1") == "ELADAS-2026-0001"

    def test_numbers_increase(self):
        sequencer = TransactionNumberSequencer(InMemorySequenceCounter(), clock=_clock(2026))
        numbers = [sequencer.next_number("T1") for _ in range(3)]
        assert numbers == ["ELADAS-2026-0001", "ELADAS-2026-0002", "ELADAS-2026-0003"]

    def test_custom_prefix(self):
        sequencer = TransactionNumberSequencer(InMemorySequenceCounter(), prefix="POS", clock=_clock(2026))
        assert sequencer.next_number("T1") == "POS-2026-0001"

    def test_sequence_past_four_digits_is_not_truncated(self):
        counter = InMemorySequenceCounter()
        sequencer = TransactionNumberSequencer(counter, clock=_clock(2026))
        for _ in range(9999):
            counter.increment("T1", "2026")
        assert sequencer.next_number("T1") == "ELADAS-2026-10000"


class TestScoping:
    """Sequences are independent per tenant and per year."""

    def test_tenants_have_separate_sequences(self):
        sequencer = TransactionNumberSequencer(InMemorySequenceCounter(), clock=_clock(2026))
        assert sequencer.next_number("T1") == "ELADAS-2026-0001"
        assert sequencer.next_number("T2") == "ELADAS-2026-0001"
        assert sequencer.next_number("T1") == "ELADAS-2026-0002"

    def test_new_year_restarts_sequence(self):
        counter = InMemorySequenceCounter()
        sequencer_2026 = TransactionNumberSequencer(counter, clock=_clock(2026))
        sequencer_2027 = TransactionNumberSequencer(counter, clock=_clock(2027))

        sequencer_2026.next_number("T1")
        sequencer_2026.next_number("T1")

        assert sequencer_2027.next_number("T1") == "ELADAS-2027-0001"

    def test_explicit_period(self):
        sequencer = TransactionNumberSequencer(InMemorySequenceCounter(), clock=_clock(2026))
        assert sequencer.next_number("T1", period="2030") == "ELADAS-2030-0001"


class TestConcurrency:
    """Concurrent callers never receive the same number."""

    def test_concurrent_allocation_is_unique(self):
        sequencer = TransactionNumberSequencer(InMemorySequenceCounter(), clock=_clock(2026))
        results = []
        lock = threading.Lock()

        def worker():
            for _ in range(50):
                number = sequencer.next_number("T1")
                with lock:
                    results.append(number)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 400
        assert len(set(results)) == 400


class TestFailures:
    """Counter failures surface as FatalError."""

    def test_missing_tenant(self):
        sequencer = TransactionNumberSequencer(InMemorySequenceCounter())
        with pytest.raises(FatalError):
            sequencer.next_number("")

    def test_counter_error_propagates(self):
        class BrokenCounter:
            def increment(self, tenant_id, period):
                raise FatalError("Transaction number generation failed")

        sequencer = TransactionNumberSequencer(BrokenCounter())
        with pytest.raises(FatalError, match="Transaction number generation failed"):
            sequencer.next_number("T1")

    def test_invalid_counter_value(self):
        class ZeroCounter:
            def increment(self, tenant_id, period):
                return 0

        sequencer = TransactionNumberSequencer(ZeroCounter())
        with pytest.raises(FatalError):
            sequencer.next_number("T1")
