# Overview: HTTP client for the card terminal payment gateway.

"""
Card gateway client (myPOS-style REST API).

WHY: Card charges and refunds are executed by the terminal provider. The
engine treats each call as one synchronous request: no internal retry, no
polling. Transport failures are reported as unsuccessful results carrying the
error text, never raised, so the payment processor can report them uniformly.

API:
    POST {base_url}/payments  {"amount", "currency", "reference"}
        -> {"success", "transactionId", "cardLastFour", "cardBrand", "error": {"code", "message"}}
    POST {base_url}/refunds   {"transactionId"}
        -> {"success", "refundId", "error": {"code", "message"}}
"""

from __future__ import annotations

import logging

import httpx

from ..domain import CardCharge, CardRefund

logger = logging.getLogger(__name__)


class HttpCardGateway:

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str = "",
        currency: str = "HUF",
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.currency = currency
        self.client = client or httpx.Client(timeout=timeout)

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _post(self, path: str, payload: dict) -> tuple[dict | None, str | None]:
        """Returns (body, error_message); exactly one is None."""
        try:
            response = self.client.post(f"{self.base_url}{path}", headers=self._headers(), json=payload)
        except httpx.HTTPError as exc:
            logger.warning("Card gateway request to %s failed: %s", path, exc)
            return None, f"Gateway unreachable: {exc}"

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.is_error or not body.get("success"):
            error = body.get("error") or {}
            message = error.get("message") if isinstance(error, dict) else str(error)
            return None, message or f"Gateway returned HTTP {response.status_code}"

        return body, None

    def charge(self, amount: int, reference: str) -> CardCharge:
        body, error = self._post("/payments", {
            "amount": amount,
            "currency": self.currency,
            "reference": reference,
        })
        if error is not None:
            return CardCharge(success=False, error_message=error)
        return CardCharge(
            success=True,
            transaction_id=body.get("transactionId"),
            card_last_four=body.get("cardLastFour"),
            card_brand=body.get("cardBrand"),
        )

    def refund(self, card_transaction_id: str) -> CardRefund:
        _, error = self._post("/refunds", {"transactionId": card_transaction_id})
        if error is not None:
            return CardRefund(success=False, error_message=error)
        return CardRefund(success=True)

    def close(self) -> None:
        self.client.close()
