# Overview: Pytest coverage for the sale transaction lifecycle and item mutations.

"""
Transaction Manager Tests

Covers creation against register sessions, item edits with total
recalculation, the IN_PROGRESS -> PENDING_PAYMENT -> VOIDED transitions, and
tenant scoping of every lookup.
"""

from decimal import Decimal

import pytest

from pos_engine.errors import (
    AccessDeniedError,
    FatalError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

from conftest import OTHER_TENANT, TENANT, USER


def _assert_totals_match_items(engine, transaction_id):
    transaction = engine.transactions.get_transaction_by_id(transaction_id, TENANT)
    items = engine.transactions.get_transaction_items(transaction_id, TENANT)
    assert transaction.subtotal == sum(i.line_subtotal for i in items)
    assert transaction.tax_amount == sum(i.line_tax for i in items)
    assert transaction.total == sum(i.line_total for i in items)
    return transaction


class TestCreateTransaction:
    """Test opening a sale on a register session."""

    def test_create_on_open_session(self, engine, audit_log):
        """New transaction starts IN_PROGRESS with zero totals."""
        transaction = engine.transactions.create_transaction(
            {"session_id": "S1", "customer_name": "Walk-in"}, TENANT, USER
        )

        assert transaction.transaction_number == "ELADAS-2026-0001"
        assert transaction.status == "IN_PROGRESS"
        assert transaction.payment_status == "PENDING"
        assert transaction.total == 0
        assert transaction.paid_amount == 0
        assert transaction.created_by == USER
        assert transaction.customer_name == "Walk-in"
        assert audit_log.actions() == ["transaction_created"]
        assert audit_log.events[0].entity_id == transaction.id

    def test_numbers_are_sequential(self, engine):
        first = engine.transactions.create_transaction({"session_id": "S1"}, TENANT, USER)
        second = engine.transactions.create_transaction({"session_id": "S1"}, TENANT, USER)
        assert first.transaction_number == "ELADAS-2026-0001"
        assert second.transaction_number == "ELADAS-2026-0002"

    def test_missing_session(self, engine):
        with pytest.raises(NotFoundError, match="Session not found"):
            engine.transactions.create_transaction({"session_id": "NOPE"}, TENANT, USER)

    def test_foreign_session_reported_as_not_found(self, engine):
        """Another tenant's session looks exactly like a missing one."""
        with pytest.raises(NotFoundError, match="Session not found"):
            engine.transactions.create_transaction({"session_id": "S2"}, TENANT, USER)

    def test_closed_session(self, engine):
        with pytest.raises(InvalidStateError, match="Session is not open"):
            engine.transactions.create_transaction({"session_id": "S-CLOSED"}, TENANT, USER)

    def test_failed_creation_keeps_no_record(self, engine):
        with pytest.raises(InvalidStateError):
            engine.transactions.create_transaction({"session_id": "S-CLOSED"}, TENANT, USER)
        assert engine.transactions.get_transactions(TENANT) == []

    def test_audit_failure_does_not_block(self, engine, audit_log):
        audit_log.fail_with = RuntimeError("audit store down")
        transaction = engine.transactions.create_transaction({"session_id": "S1"}, TENANT, USER)
        assert transaction.status == "IN_PROGRESS"


class TestItems:
    """Item mutations keep transaction totals equal to the sums of the lines."""

    def test_add_item_scenario_totals(self, engine, open_transaction, item_payload):
        """2 x 10000 at 27% gives 20000 / 5400 / 25400."""
        item = engine.transactions.add_item(open_transaction.id, item_payload(), TENANT)

        assert item.line_subtotal == 20000
        assert item.line_tax == 5400
        assert item.line_total == 25400
        assert item.tax_rate == Decimal("27")
        assert item.inventory_deducted is False

        transaction = _assert_totals_match_items(engine, open_transaction.id)
        assert transaction.subtotal == 20000
        assert transaction.tax_amount == 5400
        assert transaction.total == 25400

    def test_multiple_items_with_discount(self, engine, open_transaction, item_payload):
        engine.transactions.add_item(open_transaction.id, item_payload(), TENANT)
        engine.transactions.add_item(
            open_transaction.id,
            item_payload(product_id="P2", quantity=3, unit_price=333, tax_rate="5", discount_percent="5"),
            TENANT,
        )

        transaction = _assert_totals_match_items(engine, open_transaction.id)
        assert transaction.subtotal == 20000 + 949
        assert transaction.tax_amount == 5400 + 47
        assert transaction.discount_amount == 999 - 949
        assert transaction.total == transaction.subtotal + transaction.tax_amount

    def test_update_item_quantity(self, engine, open_transaction, item_payload):
        item = engine.transactions.add_item(open_transaction.id, item_payload(), TENANT)

        updated = engine.transactions.update_item(open_transaction.id, item.id, {"quantity": 3}, TENANT)

        assert updated.quantity == 3
        assert updated.line_total == 38100
        transaction = _assert_totals_match_items(engine, open_transaction.id)
        assert transaction.total == 38100

    def test_update_item_discount(self, engine, open_transaction, item_payload):
        item = engine.transactions.add_item(open_transaction.id, item_payload(), TENANT)

        updated = engine.transactions.update_item(
            open_transaction.id, item.id, {"discount_percent": "10"}, TENANT
        )

        assert updated.discount_percent == Decimal("10")
        assert updated.line_subtotal == 18000
        _assert_totals_match_items(engine, open_transaction.id)

    def test_remove_item(self, engine, open_transaction, item_payload):
        first = engine.transactions.add_item(open_transaction.id, item_payload(), TENANT)
        engine.transactions.add_item(open_transaction.id, item_payload(product_id="P2", quantity=1), TENANT)

        transaction = engine.transactions.remove_item(open_transaction.id, first.id, TENANT)

        assert transaction.total == 12700
        _assert_totals_match_items(engine, open_transaction.id)

    def test_remove_last_item_zeroes_totals(self, engine, open_transaction, item_payload):
        item = engine.transactions.add_item(open_transaction.id, item_payload(), TENANT)
        transaction = engine.transactions.remove_item(open_transaction.id, item.id, TENANT)
        assert (transaction.subtotal, transaction.tax_amount, transaction.total) == (0, 0, 0)

    def test_item_of_other_transaction_not_found(self, engine, open_transaction, item_payload):
        other = engine.transactions.create_transaction({"session_id": "S1"}, TENANT, USER)
        item = engine.transactions.add_item(other.id, item_payload(), TENANT)

        with pytest.raises(NotFoundError, match="Item not found"):
            engine.transactions.remove_item(open_transaction.id, item.id, TENANT)

    def test_missing_item(self, engine, open_transaction):
        with pytest.raises(NotFoundError, match="Item not found"):
            engine.transactions.update_item(open_transaction.id, "missing", {"quantity": 1}, TENANT)

    def test_edits_allowed_while_pending_payment(self, engine, pending_transaction, item_payload):
        """Order corrections are possible before any payment."""
        engine.transactions.add_item(pending_transaction.id, item_payload(product_id="P2", quantity=1), TENANT)
        transaction = _assert_totals_match_items(engine, pending_transaction.id)
        assert transaction.status == "PENDING_PAYMENT"
        assert transaction.total == 25400 + 12700

    def test_edits_refused_after_payment(self, engine, pending_transaction, item_payload):
        engine.payments.add_partial_payment(pending_transaction.id, {"method": "CASH", "amount": 1000}, TENANT)

        with pytest.raises(InvalidStateError, match="after a payment"):
            engine.transactions.add_item(pending_transaction.id, item_payload(), TENANT)

    def test_edits_refused_when_voided(self, engine, open_transaction, item_payload):
        item = engine.transactions.add_item(open_transaction.id, item_payload(), TENANT)
        engine.transactions.void_transaction(open_transaction.id, {"reason": "Mistake"}, TENANT, USER)

        with pytest.raises(InvalidStateError, match="Cannot modify completed or voided transaction"):
            engine.transactions.add_item(open_transaction.id, item_payload(), TENANT)
        with pytest.raises(InvalidStateError, match="Cannot modify completed or voided transaction"):
            engine.transactions.update_item(open_transaction.id, item.id, {"quantity": 5}, TENANT)
        with pytest.raises(InvalidStateError, match="Cannot modify completed or voided transaction"):
            engine.transactions.remove_item(open_transaction.id, item.id, TENANT)

    def test_invalid_item_input(self, engine, open_transaction, item_payload):
        with pytest.raises(ValidationError):
            engine.transactions.add_item(open_transaction.id, item_payload(quantity=0), TENANT)
        assert engine.transactions.get_transaction_items(open_transaction.id, TENANT) == []


class TestSetCustomer:

    def test_updates_only_given_fields(self, engine):
        transaction = engine.transactions.create_transaction(
            {"session_id": "S1", "customer_id": "C1"}, TENANT, USER
        )
        updated = engine.transactions.set_customer(
            transaction.id, {"customer_name": "Kovács Kft.", "customer_tax_number": "12345678-2-42"}, TENANT
        )
        assert updated.customer_id == "C1"
        assert updated.customer_name == "Kovács Kft."
        assert updated.customer_tax_number == "12345678-2-42"
        assert updated.status == "IN_PROGRESS"

    def test_refused_on_voided(self, engine, open_transaction):
        engine.transactions.void_transaction(open_transaction.id, {"reason": "Mistake"}, TENANT, USER)
        with pytest.raises(InvalidStateError):
            engine.transactions.set_customer(open_transaction.id, {"customer_name": "X"}, TENANT)


class TestCompleteTransaction:

    def test_moves_to_pending_payment(self, engine, open_transaction, item_payload):
        engine.transactions.add_item(open_transaction.id, item_payload(), TENANT)
        transaction = engine.transactions.complete_transaction(open_transaction.id, TENANT)
        assert transaction.status == "PENDING_PAYMENT"
        assert transaction.payment_status == "PENDING"

    def test_no_items(self, engine, open_transaction):
        with pytest.raises(ValidationError, match="Cannot complete transaction with no items"):
            engine.transactions.complete_transaction(open_transaction.id, TENANT)

    def test_only_from_in_progress(self, engine, pending_transaction):
        with pytest.raises(InvalidStateError, match="Can only complete in-progress transactions"):
            engine.transactions.complete_transaction(pending_transaction.id, TENANT)


class TestVoidTransaction:
    """Void is reachable only from IN_PROGRESS or PENDING_PAYMENT."""

    def test_empty_reason_fails(self, engine, open_transaction):
        with pytest.raises(ValidationError, match="Void reason is required"):
            engine.transactions.void_transaction(open_transaction.id, {"reason": ""}, TENANT, USER)

        transaction = engine.transactions.get_transaction_by_id(open_transaction.id, TENANT)
        assert transaction.status == "IN_PROGRESS"

    def test_void_in_progress(self, engine, open_transaction, audit_log):
        transaction = engine.transactions.void_transaction(
            open_transaction.id, {"reason": "Customer cancelled"}, TENANT, USER
        )

        assert transaction.status == "VOIDED"
        assert transaction.void_reason == "Customer cancelled"
        assert transaction.voided_by == USER
        assert transaction.voided_at is not None
        assert audit_log.actions()[-1] == "transaction_voided"
        assert audit_log.events[-1].metadata["reason"] == "Customer cancelled"

    def test_void_pending_payment(self, engine, pending_transaction):
        transaction = engine.transactions.void_transaction(
            pending_transaction.id, {"reason": "Wrong order"}, TENANT, USER
        )
        assert transaction.status == "VOIDED"

    def test_void_twice_fails(self, engine, open_transaction):
        engine.transactions.void_transaction(open_transaction.id, {"reason": "First"}, TENANT, USER)
        with pytest.raises(InvalidStateError, match="Cannot void completed or already voided transaction"):
            engine.transactions.void_transaction(open_transaction.id, {"reason": "Second"}, TENANT, USER)

    def test_void_completed_fails_with_same_message(self, engine, pending_transaction):
        engine.payments.process_cash_payment(pending_transaction.id, {"received_amount": 25400}, TENANT)
        with pytest.raises(InvalidStateError, match="Cannot void completed or already voided transaction"):
            engine.transactions.void_transaction(pending_transaction.id, {"reason": "Too late"}, TENANT, USER)

    def test_void_keeps_payments(self, engine, pending_transaction):
        """Voiding does not move money; refunds are a separate step."""
        engine.payments.add_partial_payment(pending_transaction.id, {"method": "CASH", "amount": 5000}, TENANT)
        engine.transactions.void_transaction(pending_transaction.id, {"reason": "Cancelled"}, TENANT, USER)

        payments = engine.payments.get_payments(pending_transaction.id, TENANT)
        assert [p.amount for p in payments] == [5000]


class TestTenantScoping:
    """Existence is checked before tenant; the two failures differ."""

    def test_missing_transaction(self, engine):
        with pytest.raises(NotFoundError, match="Transaction not found"):
            engine.transactions.get_transaction_by_id("missing", TENANT)

    def test_foreign_transaction(self, engine, open_transaction):
        with pytest.raises(AccessDeniedError, match="Access denied"):
            engine.transactions.get_transaction_by_id(open_transaction.id, OTHER_TENANT)

    def test_foreign_tenant_cannot_edit(self, engine, open_transaction, item_payload):
        with pytest.raises(AccessDeniedError):
            engine.transactions.add_item(open_transaction.id, item_payload(), OTHER_TENANT)
        with pytest.raises(AccessDeniedError):
            engine.transactions.void_transaction(open_transaction.id, {"reason": "x"}, OTHER_TENANT, USER)

    def test_lookup_by_number(self, engine, open_transaction):
        found = engine.transactions.get_transaction_by_number("ELADAS-2026-0001", TENANT)
        assert found.id == open_transaction.id

        with pytest.raises(NotFoundError):
            engine.transactions.get_transaction_by_number("ELADAS-2026-0001", OTHER_TENANT)

    def test_list_is_tenant_scoped_and_filterable(self, engine, open_transaction):
        engine.transactions.create_transaction({"session_id": "S2"}, OTHER_TENANT, USER)
        voided = engine.transactions.create_transaction({"session_id": "S1"}, TENANT, USER)
        engine.transactions.void_transaction(voided.id, {"reason": "Test"}, TENANT, USER)

        all_t1 = engine.transactions.get_transactions(TENANT)
        assert {t.id for t in all_t1} == {open_transaction.id, voided.id}

        only_voided = engine.transactions.get_transactions(TENANT, {"status": "VOIDED"})
        assert [t.id for t in only_voided] == [voided.id]

    def test_list_newest_first(self, engine):
        first = engine.transactions.create_transaction({"session_id": "S1"}, TENANT, USER)
        second = engine.transactions.create_transaction({"session_id": "S1"}, TENANT, USER)
        listed = engine.transactions.get_transactions(TENANT)
        assert [t.id for t in listed] == [second.id, first.id]


class TestStorageFailures:

    def test_sequence_failure_is_fatal(self, engine):
        class BrokenCounter:
            def increment(self, tenant_id, period):
                raise FatalError("Transaction number generation failed")

        engine.transactions.sequencer.counter = BrokenCounter()
        with pytest.raises(FatalError):
            engine.transactions.create_transaction({"session_id": "S1"}, TENANT, USER)
        assert engine.transactions.get_transactions(TENANT) == []
