# Overview: Pytest coverage for the POS HTTP API.

"""
POS API Route Tests

Drives the full checkout flow over the Flask test client and checks that
engine errors map to the right HTTP status codes.
"""

import pytest

from conftest import OTHER_TENANT, TENANT, USER


HEADERS = {"X-Tenant-Id": TENANT, "X-User-Id": USER}
OTHER_HEADERS = {"X-Tenant-Id": OTHER_TENANT, "X-User-Id": USER}

ITEM = {
    "product_id": "P1",
    "product_code": "SKU-001",
    "product_name": "Coffee beans 1kg",
    "quantity": 2,
    "unit_price": 10000,
    "tax_rate": "27",
}


def _create(client):
    response = client.post("/api/pos/transactions", json={"session_id": "S1"}, headers=HEADERS)
    assert response.status_code == 201
    return response.get_json()["transaction"]


def _pending(client):
    transaction = _create(client)
    client.post(f"/api/pos/transactions/{transaction['id']}/items", json=ITEM, headers=HEADERS)
    response = client.post(f"/api/pos/transactions/{transaction['id']}/complete", headers=HEADERS)
    assert response.status_code == 200
    return response.get_json()["transaction"]


class TestTenantContext:

    def test_missing_headers(self, client, db_session):
        response = client.get("/api/pos/transactions")
        assert response.status_code == 401

    def test_missing_user(self, client, db_session):
        response = client.get("/api/pos/transactions", headers={"X-Tenant-Id": TENANT})
        assert response.status_code == 401


class TestCheckoutFlow:
    """Full cash checkout over HTTP."""

    def test_cash_checkout(self, client, db_session, seeded_sessions, seeded_stock):
        transaction = _create(client)
        assert transaction["status"] == "IN_PROGRESS"
        assert transaction["transaction_number"].startswith("ELADAS-")

        response = client.post(f"/api/pos/transactions/{transaction['id']}/items", json=ITEM, headers=HEADERS)
        assert response.status_code == 201
        body = response.get_json()
        assert body["item"]["line_total"] == 25400
        assert body["transaction"]["total"] == 25400

        response = client.post(f"/api/pos/transactions/{transaction['id']}/complete", headers=HEADERS)
        assert response.get_json()["transaction"]["status"] == "PENDING_PAYMENT"

        response = client.post(
            f"/api/pos/transactions/{transaction['id']}/payments/cash",
            json={"received_amount": 30000},
            headers=HEADERS,
        )
        assert response.status_code == 201
        body = response.get_json()
        assert body["payment"]["amount"] == 25400
        assert body["change_amount"] == 4600
        assert body["transaction"]["status"] == "COMPLETED"

        response = client.post(f"/api/pos/transactions/{transaction['id']}/payments/complete", headers=HEADERS)
        assert response.status_code == 200
        assert response.get_json()["all_deductions_successful"] is True

        response = client.get(f"/api/pos/transactions/{transaction['id']}/payments/summary", headers=HEADERS)
        summary = response.get_json()
        assert summary["remaining_amount"] == 0
        assert summary["payment_status"] == "PAID"

    def test_get_transaction_with_items(self, client, db_session, seeded_sessions):
        transaction = _pending(client)
        response = client.get(f"/api/pos/transactions/{transaction['id']}", headers=HEADERS)
        body = response.get_json()
        assert response.status_code == 200
        assert len(body["items"]) == 1
        assert body["items"][0]["tax_rate"] == "27.00"

    def test_list_and_filter(self, client, db_session, seeded_sessions):
        _create(client)
        pending = _pending(client)

        response = client.get("/api/pos/transactions", headers=HEADERS)
        assert response.get_json()["count"] == 2

        response = client.get("/api/pos/transactions?status=PENDING_PAYMENT", headers=HEADERS)
        body = response.get_json()
        assert [t["id"] for t in body["transactions"]] == [pending["id"]]

    def test_void_and_refund(self, client, db_session, seeded_sessions):
        transaction = _pending(client)
        client.post(
            f"/api/pos/transactions/{transaction['id']}/payments/partial",
            json={"method": "CARD", "amount": 5000, "card_transaction_id": "mypos-123"},
            headers=HEADERS,
        )

        response = client.post(
            f"/api/pos/transactions/{transaction['id']}/void",
            json={"reason": "Customer cancelled"},
            headers=HEADERS,
        )
        assert response.status_code == 200
        assert response.get_json()["transaction"]["void_reason"] == "Customer cancelled"

        response = client.post(f"/api/pos/transactions/{transaction['id']}/payments/refund", headers=HEADERS)
        assert response.status_code == 200
        assert response.get_json()["deleted_payment_count"] == 1

        response = client.get(f"/api/pos/transactions/{transaction['id']}/payments", headers=HEADERS)
        assert response.get_json()["payments"] == []


class TestErrorMapping:
    """Engine errors map to HTTP status codes."""

    def test_not_found(self, client, db_session, seeded_sessions):
        response = client.get("/api/pos/transactions/missing", headers=HEADERS)
        assert response.status_code == 404
        assert response.get_json()["error"] == "Transaction not found"

    def test_access_denied(self, client, db_session, seeded_sessions):
        transaction = _create(client)
        response = client.get(f"/api/pos/transactions/{transaction['id']}", headers=OTHER_HEADERS)
        assert response.status_code == 403
        assert response.get_json()["error"] == "Access denied"

    @pytest.mark.parametrize("payload", [{}, {"session_id": "S1", "extra": 1}, None])
    def test_validation(self, client, db_session, seeded_sessions, payload):
        response = client.post("/api/pos/transactions", json=payload, headers=HEADERS)
        assert response.status_code == 400

    def test_empty_void_reason(self, client, db_session, seeded_sessions):
        transaction = _create(client)
        response = client.post(
            f"/api/pos/transactions/{transaction['id']}/void", json={"reason": ""}, headers=HEADERS
        )
        assert response.status_code == 400
        assert response.get_json()["error"] == "Void reason is required"

    def test_invalid_state(self, client, db_session, seeded_sessions):
        transaction = _create(client)
        response = client.post(
            f"/api/pos/transactions/{transaction['id']}/payments/refund", headers=HEADERS
        )
        assert response.status_code == 409

    def test_insufficient_cash(self, client, db_session, seeded_sessions):
        transaction = _pending(client)
        response = client.post(
            f"/api/pos/transactions/{transaction['id']}/payments/cash",
            json={"received_amount": 100},
            headers=HEADERS,
        )
        assert response.status_code == 400
        assert response.get_json()["details"]["remaining_amount"] == 25400

    def test_declined_card(self, app, client, db_session, seeded_sessions):
        transaction = _pending(client)
        app.extensions["pos_engine"].payments.card_gateway.decline_next("Do not honour")

        response = client.post(f"/api/pos/transactions/{transaction['id']}/payments/card", headers=HEADERS)

        assert response.status_code == 502
        assert response.get_json()["error"] == "Card payment failed: Do not honour"
