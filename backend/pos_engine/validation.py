"""
Input validation for POS engine operations.

Each operation input is a frozen dataclass that validates and normalizes its
own fields on construction (validate-then-construct): an instance that exists
is an instance that is valid. `from_dict` builds one from a raw JSON payload,
rejecting unknown fields.

Money is always an integer amount of minor units; rates are Decimals.
"""

from __future__ import annotations

from dataclasses import MISSING, dataclass, fields
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from .domain import VALID_PAYMENT_METHODS, VALID_STATUSES, METHOD_CARD
from .errors import ValidationError
from .time_utils import parse_iso_datetime


# Maximum amount: 999,999,999 minor units. Prevents overflow and nonsensical prices.
MAX_AMOUNT = 999_999_999
MAX_QUANTITY = 1_000_000
MAX_REASON_LENGTH = 255


def _coerce_int(key: str, value: Any) -> int:
    # Strict: reject bools, floats, scientific notation and decimal strings
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer", details={"field": key})
        if "e" in stripped.lower():
            raise ValidationError(
                f"{key} must be a plain integer (scientific notation not allowed)",
                details={"field": key},
            )
        if "." in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)", details={"field": key})
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer", details={"field": key})
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal", details={"field": key})
    raise ValidationError(f"{key} must be an integer", details={"field": key})


def _coerce_decimal(key: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number", details={"field": key})
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{key} must be a number", details={"field": key})
    elif isinstance(value, float):
        # str() keeps 27.0 as "27.0" instead of the binary expansion
        result = Decimal(str(value))
    else:
        raise ValidationError(f"{key} must be a number", details={"field": key})
    if not result.is_finite():
        raise ValidationError(f"{key} must be a finite number", details={"field": key})
    return result


def _coerce_percent(key: str, value: Any) -> Decimal:
    result = _coerce_decimal(key, value)
    if result < 0 or result > 100:
        raise ValidationError(f"{key} must be between 0 and 100", details={"field": key})
    return result


def _coerce_amount(key: str, value: Any, *, allow_zero: bool = False) -> int:
    amount = _coerce_int(key, value)
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"{key} must be positive", details={"field": key})
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{key} cannot exceed {MAX_AMOUNT}", details={"field": key})
    return amount


def _coerce_str(key: str, value: Any, *, required: bool, max_length: int = 255) -> str | None:
    if value is None:
        if required:
            raise ValidationError(f"{key} is required", details={"field": key})
        return None
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise ValidationError(f"{key} must be a string", details={"field": key})
    text = str(value).strip()
    if not text:
        if required:
            raise ValidationError(f"{key} cannot be blank", details={"field": key})
        return None
    if len(text) > max_length:
        raise ValidationError(f"{key} exceeds max length {max_length}", details={"field": key})
    return text


def _coerce_datetime(key: str, value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return parse_iso_datetime(value)
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 datetime", details={"field": key})
    raise ValidationError(f"{key} must be a datetime", details={"field": key})


class _Input:
    """Shared construction helpers for operation inputs."""

    def _set(self, name: str, value: Any) -> None:
        object.__setattr__(self, name, value)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None):
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ValidationError("Invalid JSON payload")

        allowed = {f.name for f in fields(cls)}
        unknown = sorted(k for k in data if k not in allowed)
        if unknown:
            raise ValidationError(
                f"Field not allowed: {', '.join(unknown)}",
                details={"fields": unknown},
            )
        missing = sorted(
            f.name for f in fields(cls)
            if f.name not in data and f.default is MISSING and f.default_factory is MISSING
        )
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details={"fields": missing},
            )
        return cls(**data)


@dataclass(frozen=True)
class CreateTransactionInput(_Input):
    session_id: str
    customer_id: str | None = None
    customer_name: str | None = None
    customer_tax_number: str | None = None

    def __post_init__(self):
        self._set("session_id", _coerce_str("session_id", self.session_id, required=True, max_length=64))
        self._set("customer_id", _coerce_str("customer_id", self.customer_id, required=False, max_length=64))
        self._set("customer_name", _coerce_str("customer_name", self.customer_name, required=False))
        self._set(
            "customer_tax_number",
            _coerce_str("customer_tax_number", self.customer_tax_number, required=False, max_length=32),
        )


@dataclass(frozen=True)
class AddItemInput(_Input):
    product_id: str
    product_code: str
    product_name: str
    quantity: int
    unit_price: int
    tax_rate: Decimal
    discount_percent: Decimal = Decimal("0")
    warehouse_id: str | None = None

    def __post_init__(self):
        self._set("product_id", _coerce_str("product_id", self.product_id, required=True, max_length=64))
        self._set("product_code", _coerce_str("product_code", self.product_code, required=True, max_length=64))
        self._set("product_name", _coerce_str("product_name", self.product_name, required=True))

        quantity = _coerce_int("quantity", self.quantity)
        if quantity <= 0:
            raise ValidationError("quantity must be positive", details={"field": "quantity"})
        if quantity > MAX_QUANTITY:
            raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}", details={"field": "quantity"})
        self._set("quantity", quantity)

        self._set("unit_price", _coerce_amount("unit_price", self.unit_price, allow_zero=True))
        self._set("tax_rate", _coerce_percent("tax_rate", self.tax_rate))
        self._set("discount_percent", _coerce_percent("discount_percent", self.discount_percent))
        self._set("warehouse_id", _coerce_str("warehouse_id", self.warehouse_id, required=False, max_length=64))


@dataclass(frozen=True)
class UpdateItemInput(_Input):
    quantity: int | None = None
    discount_percent: Decimal | None = None

    def __post_init__(self):
        if self.quantity is None and self.discount_percent is None:
            raise ValidationError("quantity or discount_percent required")
        if self.quantity is not None:
            quantity = _coerce_int("quantity", self.quantity)
            if quantity <= 0:
                raise ValidationError("quantity must be positive", details={"field": "quantity"})
            if quantity > MAX_QUANTITY:
                raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}", details={"field": "quantity"})
            self._set("quantity", quantity)
        if self.discount_percent is not None:
            self._set("discount_percent", _coerce_percent("discount_percent", self.discount_percent))


@dataclass(frozen=True)
class SetCustomerInput(_Input):
    customer_id: str | None = None
    customer_name: str | None = None
    customer_tax_number: str | None = None

    def __post_init__(self):
        self._set("customer_id", _coerce_str("customer_id", self.customer_id, required=False, max_length=64))
        self._set("customer_name", _coerce_str("customer_name", self.customer_name, required=False))
        self._set(
            "customer_tax_number",
            _coerce_str("customer_tax_number", self.customer_tax_number, required=False, max_length=32),
        )

    def changes(self) -> dict:
        """Only the fields the caller actually supplied."""
        return {
            name: value
            for name, value in (
                ("customer_id", self.customer_id),
                ("customer_name", self.customer_name),
                ("customer_tax_number", self.customer_tax_number),
            )
            if value is not None
        }


@dataclass(frozen=True)
class VoidTransactionInput(_Input):
    reason: str

    def __post_init__(self):
        if self.reason is None or (isinstance(self.reason, str) and not self.reason.strip()):
            raise ValidationError("Void reason is required", details={"field": "reason"})
        self._set("reason", _coerce_str("reason", self.reason, required=True, max_length=MAX_REASON_LENGTH))


@dataclass(frozen=True)
class CashPaymentInput(_Input):
    received_amount: int

    def __post_init__(self):
        self._set("received_amount", _coerce_amount("received_amount", self.received_amount))


@dataclass(frozen=True)
class PartialPaymentInput(_Input):
    method: str
    amount: int
    card_transaction_id: str | None = None
    card_last_four: str | None = None
    card_brand: str | None = None

    def __post_init__(self):
        method = _coerce_str("method", self.method, required=True, max_length=16).upper()
        if method not in VALID_PAYMENT_METHODS:
            raise ValidationError(
                f"Invalid payment method: {method}. Must be one of {VALID_PAYMENT_METHODS}",
                details={"field": "method"},
            )
        self._set("method", method)
        self._set("amount", _coerce_amount("amount", self.amount))

        card_transaction_id = _coerce_str("card_transaction_id", self.card_transaction_id, required=False, max_length=128)
        card_last_four = _coerce_str("card_last_four", self.card_last_four, required=False, max_length=4)
        card_brand = _coerce_str("card_brand", self.card_brand, required=False, max_length=32)
        if method != METHOD_CARD and any((card_transaction_id, card_last_four, card_brand)):
            raise ValidationError("Card details are only allowed for CARD payments")
        if card_last_four is not None and not card_last_four.isdigit():
            raise ValidationError("card_last_four must be 4 digits", details={"field": "card_last_four"})
        self._set("card_transaction_id", card_transaction_id)
        self._set("card_last_four", card_last_four)
        self._set("card_brand", card_brand)


@dataclass(frozen=True)
class TransactionFilter(_Input):
    status: str | None = None
    session_id: str | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None

    def __post_init__(self):
        status = _coerce_str("status", self.status, required=False, max_length=32)
        if status is not None:
            status = status.upper()
            if status not in VALID_STATUSES:
                raise ValidationError(
                    f"Invalid status: {status}. Must be one of {VALID_STATUSES}",
                    details={"field": "status"},
                )
        self._set("status", status)
        self._set("session_id", _coerce_str("session_id", self.session_id, required=False, max_length=64))
        self._set("created_from", _coerce_datetime("created_from", self.created_from))
        self._set("created_to", _coerce_datetime("created_to", self.created_to))
        if self.created_from and self.created_to and self.created_from > self.created_to:
            raise ValidationError("created_from must be before created_to")


def coerce_input(input_cls, data):
    """Accept either a constructed input or a raw payload for it."""
    if isinstance(data, input_cls):
        return data
    return input_cls.from_dict(data)
