# Overview: Pytest coverage for reversing payments of voided transactions.

"""
Void Refund Coordinator Tests

Policy: card refund failures are tolerated and logged; payment records are
still removed and the transaction is flagged for manual reconciliation.
"""

import pytest

from pos_engine.errors import AccessDeniedError, InvalidStateError

from conftest import OTHER_TENANT, TENANT, USER


@pytest.fixture
def voided_with_payments(engine, pending_50000):
    """Voided transaction holding a CASH 10000 and a CARD 15000 (mypos-123) payment."""
    engine.payments.add_partial_payment(pending_50000.id, {"method": "CASH", "amount": 10000}, TENANT)
    engine.payments.add_partial_payment(
        pending_50000.id,
        {"method": "CARD", "amount": 15000, "card_transaction_id": "mypos-123", "card_last_four": "4242"},
        TENANT,
    )
    return engine.transactions.void_transaction(pending_50000.id, {"reason": "Customer cancelled"}, TENANT, USER)


class TestRefundPayments:

    def test_requires_voided(self, engine, pending_transaction):
        with pytest.raises(InvalidStateError, match="Can only refund voided transactions"):
            engine.payments.refund_payments(pending_transaction.id, TENANT)

    def test_scenario_card_refund(self, engine, voided_with_payments, card_gateway):
        """The CARD payment is refunded by its gateway id and no payments remain."""
        result = engine.payments.refund_payments(voided_with_payments.id, TENANT, user_id=USER)

        assert card_gateway.refunds == ["mypos-123"]
        assert result.deleted_payment_count == 2
        assert [r.card_transaction_id for r in result.card_refunds] == ["mypos-123"]
        assert result.card_refunds[0].success is True
        assert result.needs_reconciliation is False
        assert engine.payments.get_payments(voided_with_payments.id, TENANT) == []

        transaction = engine.transactions.get_transaction_by_id(voided_with_payments.id, TENANT)
        assert transaction.refunded_at is not None
        assert transaction.status == "VOIDED"

    def test_cash_only_needs_no_gateway(self, engine, pending_50000, card_gateway):
        engine.payments.add_partial_payment(pending_50000.id, {"method": "CASH", "amount": 10000}, TENANT)
        engine.transactions.void_transaction(pending_50000.id, {"reason": "x"}, TENANT, USER)

        result = engine.payments.refund_payments(pending_50000.id, TENANT)

        assert card_gateway.refunds == []
        assert result.deleted_payment_count == 1

    def test_card_without_gateway_id_is_not_refunded(self, engine, pending_50000, card_gateway):
        engine.payments.add_partial_payment(pending_50000.id, {"method": "CARD", "amount": 10000}, TENANT)
        engine.transactions.void_transaction(pending_50000.id, {"reason": "x"}, TENANT, USER)

        result = engine.payments.refund_payments(pending_50000.id, TENANT)

        assert card_gateway.refunds == []
        assert result.card_refunds == []
        assert result.deleted_payment_count == 1

    def test_failed_refund_is_tolerated_and_flagged(self, engine, voided_with_payments, card_gateway, audit_log):
        card_gateway.fail_refunds["mypos-123"] = "Refund window expired"

        result = engine.payments.refund_payments(voided_with_payments.id, TENANT, user_id=USER)

        assert result.needs_reconciliation is True
        assert result.card_refunds[0].success is False
        assert result.card_refunds[0].error_message == "Refund window expired"
        assert engine.payments.get_payments(voided_with_payments.id, TENANT) == []

        transaction = engine.transactions.get_transaction_by_id(voided_with_payments.id, TENANT)
        assert transaction.needs_reconciliation is True

        event = audit_log.events[-1]
        assert event.action == "payments_refunded"
        assert event.metadata["failed_card_transaction_ids"] == ["mypos-123"]

    def test_gateway_exception_is_tolerated(self, engine, voided_with_payments):
        class ExplodingGateway:
            def refund(self, card_transaction_id):
                raise ConnectionError("gateway down")

        engine.refunds.card_gateway = ExplodingGateway()

        result = engine.payments.refund_payments(voided_with_payments.id, TENANT)

        assert result.needs_reconciliation is True
        assert result.card_refunds[0].error_message == "gateway down"
        assert result.deleted_payment_count == 2

    def test_payment_status_does_not_regress(self, engine, voided_with_payments):
        engine.payments.refund_payments(voided_with_payments.id, TENANT)
        transaction = engine.transactions.get_transaction_by_id(voided_with_payments.id, TENANT)
        assert transaction.payment_status == "PARTIAL"
        assert transaction.paid_amount == 25000

    def test_refund_is_repeatable(self, engine, voided_with_payments, card_gateway):
        engine.payments.refund_payments(voided_with_payments.id, TENANT)
        again = engine.payments.refund_payments(voided_with_payments.id, TENANT)

        assert again.deleted_payment_count == 0
        assert card_gateway.refunds == ["mypos-123"]

    def test_foreign_tenant(self, engine, voided_with_payments):
        with pytest.raises(AccessDeniedError):
            engine.payments.refund_payments(voided_with_payments.id, OTHER_TENANT)
