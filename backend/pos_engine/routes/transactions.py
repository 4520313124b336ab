# Overview: Flask API routes for sale transactions and their payments; parses input and returns JSON responses.

# backend/pos_engine/routes/transactions.py
"""
POS Transaction API Routes

WHY: Expose the transaction/payment engine over REST for the till frontend.

DESIGN:
- Tenant and user come from X-Tenant-Id / X-User-Id (require_tenant)
- JSON bodies are handed to the engine, which validates them itself
- Engine errors map to HTTP status in one place (_error_response)

STATUS MAPPING:
- NotFoundError: 404
- AccessDeniedError: 403
- ValidationError: 400
- InvalidStateError / AlreadyPaidError: 409
- ExternalServiceError: 502
- FatalError: 500
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..errors import (
    AccessDeniedError,
    ExternalServiceError,
    FatalError,
    InvalidStateError,
    NotFoundError,
    PosError,
    ValidationError,
)


transactions_bp = Blueprint("pos_transactions", __name__, url_prefix="/api/pos")


_STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (AccessDeniedError, 403),
    (ValidationError, 400),
    (InvalidStateError, 409),
    (ExternalServiceError, 502),
    (FatalError, 500),
)


def _engine():
    return current_app.extensions["pos_engine"]


def _payload():
    return request.get_json(silent=True)


def _error_response(exc: PosError):
    status = 500
    for error_cls, error_status in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            status = error_status
            break

    if status >= 500:
        current_app.logger.error("POS engine failure on %s %s: %s", request.method, request.path, exc.message)

    body = {"error": exc.message}
    if exc.details:
        body["details"] = exc.details
    return jsonify(body), status


def _internal_error(message: str):
    current_app.logger.exception(message)
    return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# TRANSACTIONS
# =============================================================================

@transactions_bp.post("/transactions")
@require_tenant
def create_transaction_route():
    """
    Open a sale on a register session.

    Request body:
    {
        "session_id": "S1",
        "customer_id": "C1",  (optional)
        "customer_name": "Kovács Kft.",  (optional)
        "customer_tax_number": "12345678-2-42"  (optional)
    }

    Returns:
        201: Transaction created
        400: Invalid input
        404: Session not found
        409: Session is not open
    """
    try:
        transaction = _engine().transactions.create_transaction(_payload(), g.tenant_id, g.user_id)
        return jsonify({"transaction": transaction.to_dict()}), 201
    except PosError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to create transaction")


@transactions_bp.get("/transactions")
@require_tenant
def list_transactions_route():
    """
    List the tenant's transactions, newest first.

    Query params: status, session_id, created_from, created_to (ISO-8601)
    """
    try:
        filters = {
            key: request.args[key]
            for key in ("status", "session_id", "created_from", "created_to")
            if request.args.get(key)
        }
        transactions = _engine().transactions.get_transactions(g.tenant_id, filters or None)
        return jsonify({
            "transactions": [t.to_dict() for t in transactions],
            "count": len(transactions),
        }), 200
    except PosError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to list transactions")


@transactions_bp.get("/transactions/<transaction_id>")
@require_tenant
def get_transaction_route(transaction_id: str):
    try:
        engine = _engine()
        transaction = engine.transactions.get_transaction_by_id(transaction_id, g.tenant_id)
        items = engine.transactions.get_transaction_items(transaction_id, g.tenant_id)
        return jsonify({
            "transaction": transaction.to_dict(),
            "items": [i.to_dict() for i in items],
        }), 200
    except PosError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to load transaction")


@transactions_bp.get("/transactions/by-number/<transaction_number>")
@require_tenant
def get_transaction_by_number_route(transaction_number: str):
    try:
        transaction = _engine().transactions.get_transaction_by_number(transaction_number, g.tenant_id)
        return jsonify({"transaction": transaction.to_dict()}), 200
    except PosError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to load transaction by number")


@transactions_bp.put("/transactions/<transaction_id>/customer")
@require_tenant
def set_customer_route(transaction_id: str):
    try:
        transaction = _engine().transactions.set_customer(transaction_id, _payload(), g.tenant_id)
        return jsonify({"transaction": transaction.to_dict()}), 200
    except PosError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to set customer")


@transactions_bp.post("/transactions/<transaction_id>/complete")
@require_tenant
def complete_transaction_route(transaction_id: str):
    """Finish item entry; the transaction then waits for payment."""
    try:
        transaction = _engine().transactions.complete_transaction(transaction_id, g.tenant_id)
        return jsonify({"transaction": transaction.to_dict()}), 200
    except PosError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to complete transaction")


@transactions_bp.post("/transactions/<transaction_id>/void")
@require_tenant
def void_transaction_route(transaction_id: str):
    """
    Void a transaction before completion.

    Request body:
    {
        "reason": "Customer cancelled"
    }

    Collected payments stay until POST .../payments/refund.
    """
    try:
        transaction = _engine().transactions.void_transaction(
            transaction_id, _payload(), g.tenant_id, g.user_id
        )
        return jsonify({"transaction": transaction.to_dict()}), 200
    except PosError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to void transaction")


# =============================================================================
# ITEMS
# =============================================================================

@transactions_bp.get("/transactions/<transaction_id>/items")
@require_tenant
def list_items_route(transaction_id: str):
    try:
        items = _engine().transactions.get_transaction_items(transaction_id, g.tenant_id)
        return jsonify({"items": [i.to_dict() for i in items]}), 200
    except PosError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to list items")


@transactions_bp.post("/transactions/<transaction_id>/items")
@require_tenant
def add_item_route(transaction_id: str):
    """
    Add a product line.

    Request body:
    {
        "product_id": "P1",
        "product_code": "SKU-001",
        "product_name": "Coffee beans 1kg",
        "quantity": 2,
        "unit_price": 10000,  (minor units)
        "tax_rate": "27",
        "discount_percent": "0",  (optional)
        "warehouse_id": "W1"  (optional)
    }
    """
    try:
        engine = _engine()
        item = engine.transactions.add_item(transaction_id, _payload(), g.tenant_id)
        transaction = engine.transactions.get_transaction_by_id(transaction_id, g.tenant_id)
        return jsonify({"item": item.to_dict(), "transaction": transaction.to_dict()}), 201
    except PosError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to add item")


@transactions_bp.patch("/transactions/<transaction_id>/items/<item_id>")
@require_tenant
def update_item_route(transaction_id: str, item_id: str):
    try:
        engine = _engine()
        item = engine.transactions.update_item(transaction_id, item_id, _payload(), g.tenant_id)
        transaction = engine.transactions.get_transaction_by_id(transaction_id, g.tenant_id)
        return jsonify({"item": item.to_dict(), "transaction": transaction.to_dict()}), 200
    except PosError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to update item")


@transactions_bp.delete("/transactions/<transaction_id>/items/<item_id>")
@require_tenant
def remove_item_route(transaction_id: str, item_id: str):
    try:
        transaction = _engine().transactions.remove_item(transaction_id, item_id, g.tenant_id)
        return jsonify({"transaction": transaction.to_dict()}), 200
    except PosError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to remove item")


# =============================================================================
# PAYMENTS
# =============================================================================

@transactions_bp.get("/transactions/<transaction_id>/payments")
@require_tenant
def list_payments_route(transaction_id: str):
    try:
        payments = _engine().payments.get_payments(transaction_id, g.tenant_id)
        return jsonify({"payments": [p.to_dict() for p in payments]}), 200
    except PosError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to list payments")


@transactions_bp.get("/transactions/<transaction_id>/payments/summary")
@require_tenant
def payment_summary_route(transaction_id: str):
    try:
        summary = _engine().payments.get_payment_summary(transaction_id, g.tenant_id)
        return jsonify(summary), 200
    except PosError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to load payment summary")


@transactions_bp.post("/transactions/<transaction_id>/payments/cash")
@require_tenant
def cash_payment_route(transaction_id: str):
    """
    Settle the remaining balance in cash.

    Request body:
    {
        "received_amount": 30000
    }

    Returns the stored payment (the remaining balance) and the change due.
    """
    try:
        result = _engine().payments.process_cash_payment(
            transaction_id, _payload(), g.tenant_id, user_id=g.user_id
        )
        return jsonify(result.to_dict()), 201
    except PosError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to process cash payment")


@transactions_bp.post("/transactions/<transaction_id>/payments/card")
@require_tenant
def card_payment_route(transaction_id: str):
    """Charge the remaining balance through the card gateway. No body."""
    try:
        result = _engine().payments.process_card_payment(transaction_id, g.tenant_id, user_id=g.user_id)
        return jsonify(result.to_dict()), 201
    except PosError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to process card payment")


@transactions_bp.post("/transactions/<transaction_id>/payments/partial")
@require_tenant
def partial_payment_route(transaction_id: str):
    """
    Record one part of a split payment.

    Request body:
    {
        "method": "CARD",
        "amount": 20000,
        "card_transaction_id": "mypos-123",  (optional, CARD only)
        "card_last_four": "4242",  (optional, CARD only)
        "card_brand": "VISA"  (optional, CARD only)
    }
    """
    try:
        result = _engine().payments.add_partial_payment(
            transaction_id, _payload(), g.tenant_id, user_id=g.user_id
        )
        return jsonify(result.to_dict()), 201
    except PosError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to add partial payment")


@transactions_bp.post("/transactions/<transaction_id>/payments/complete")
@require_tenant
def complete_payment_route(transaction_id: str):
    """
    Deduct inventory for a fully paid transaction.

    Per-item failures do not fail the request; they come back as
    deduction_results with success=false for the till to show as warnings.
    """
    try:
        result = _engine().payments.complete_payment(transaction_id, g.tenant_id, user_id=g.user_id)
        return jsonify(result.to_dict()), 200
    except PosError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to complete payment")


@transactions_bp.post("/transactions/<transaction_id>/payments/refund")
@require_tenant
def refund_payments_route(transaction_id: str):
    """Reverse the payments of a voided transaction."""
    try:
        result = _engine().payments.refund_payments(transaction_id, g.tenant_id, user_id=g.user_id)
        return jsonify(result.to_dict()), 200
    except PosError as e:
        return _error_response(e)
    except Exception:
        return _internal_error("Failed to refund payments")
