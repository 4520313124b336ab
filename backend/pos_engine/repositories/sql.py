# Overview: Flask-SQLAlchemy implementations of the POS engine's storage and collaborator contracts.

from __future__ import annotations

import json
import logging
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..domain import (
    RegisterSessionInfo,
    SaleItem,
    SalePayment,
    SaleTransaction,
    StockDeduction,
)
from ..errors import FatalError, NotFoundError
from ..extensions import db
from ..models import (
    AuditEvent,
    RegisterSession,
    SaleItemRecord,
    SalePaymentRecord,
    SaleTransactionRecord,
    StockLevel,
    TransactionSequence,
)
from ..services.concurrency import lock_for_update
from ..time_utils import utcnow
from ..validation import TransactionFilter

logger = logging.getLogger(__name__)


_TRANSACTION_FIELDS = (
    "id", "tenant_id", "session_id", "transaction_number", "created_by", "created_at",
    "subtotal", "tax_amount", "discount_amount", "total",
    "payment_status", "paid_amount", "change_amount", "status",
    "customer_id", "customer_name", "customer_tax_number",
    "completed_at", "voided_at", "voided_by", "void_reason",
    "refunded_at", "needs_reconciliation",
)

_ITEM_FIELDS = (
    "id", "transaction_id", "tenant_id", "product_id", "product_code", "product_name",
    "quantity", "unit_price", "tax_rate", "discount_percent",
    "line_subtotal", "line_tax", "line_total", "inventory_deducted", "warehouse_id",
)

_PAYMENT_FIELDS = (
    "id", "transaction_id", "tenant_id", "method", "amount", "received_at",
    "card_transaction_id", "card_last_four", "card_brand",
)


def _to_transaction(row: SaleTransactionRecord) -> SaleTransaction:
    return SaleTransaction(**{name: getattr(row, name) for name in _TRANSACTION_FIELDS})


def _to_item(row: SaleItemRecord) -> SaleItem:
    item = SaleItem(**{name: getattr(row, name) for name in _ITEM_FIELDS})
    # Numeric columns come back as Decimal on most backends, float on some
    item.tax_rate = Decimal(str(item.tax_rate))
    item.discount_percent = Decimal(str(item.discount_percent))
    return item


def _to_payment(row: SalePaymentRecord) -> SalePayment:
    return SalePayment(**{name: getattr(row, name) for name in _PAYMENT_FIELDS})


# =============================================================================
# REPOSITORIES
# =============================================================================

class SqlTransactionRepository:

    def _row(self, transaction_id: str, *, for_update: bool = False) -> SaleTransactionRecord | None:
        query = db.session.query(SaleTransactionRecord).filter_by(id=transaction_id)
        if for_update:
            query = lock_for_update(query)
        return query.first()

    def find_by_id(self, transaction_id: str, *, for_update: bool = False) -> SaleTransaction | None:
        row = self._row(transaction_id, for_update=for_update)
        return _to_transaction(row) if row else None

    def find_by_number(self, tenant_id: str, transaction_number: str) -> SaleTransaction | None:
        row = db.session.query(SaleTransactionRecord).filter_by(
            tenant_id=tenant_id,
            transaction_number=transaction_number,
        ).first()
        return _to_transaction(row) if row else None

    def find_all(self, tenant_id: str, filter: TransactionFilter | None = None) -> list[SaleTransaction]:
        query = db.session.query(SaleTransactionRecord).filter(SaleTransactionRecord.tenant_id == tenant_id)
        if filter is not None:
            if filter.status:
                query = query.filter(SaleTransactionRecord.status == filter.status)
            if filter.session_id:
                query = query.filter(SaleTransactionRecord.session_id == filter.session_id)
            if filter.created_from:
                query = query.filter(SaleTransactionRecord.created_at >= filter.created_from)
            if filter.created_to:
                query = query.filter(SaleTransactionRecord.created_at <= filter.created_to)
        rows = query.order_by(
            SaleTransactionRecord.created_at.desc(),
            SaleTransactionRecord.transaction_number.desc(),
        ).all()
        return [_to_transaction(r) for r in rows]

    def create(self, transaction: SaleTransaction) -> SaleTransaction:
        row = SaleTransactionRecord(**{name: getattr(transaction, name) for name in _TRANSACTION_FIELDS})
        db.session.add(row)
        db.session.flush()
        return _to_transaction(row)

    def update(self, transaction_id: str, **changes) -> SaleTransaction:
        row = self._row(transaction_id)
        if not row:
            raise NotFoundError("Transaction not found")
        for name, value in changes.items():
            setattr(row, name, value)
        db.session.flush()
        return _to_transaction(row)


class SqlSaleItemRepository:

    def _row(self, item_id: str, *, for_update: bool = False) -> SaleItemRecord | None:
        query = db.session.query(SaleItemRecord).filter_by(id=item_id)
        if for_update:
            query = lock_for_update(query)
        return query.first()

    def find_by_id(self, item_id: str, *, for_update: bool = False) -> SaleItem | None:
        row = self._row(item_id, for_update=for_update)
        return _to_item(row) if row else None

    def find_by_transaction(self, transaction_id: str) -> list[SaleItem]:
        rows = db.session.query(SaleItemRecord).filter_by(
            transaction_id=transaction_id
        ).order_by(SaleItemRecord.created_at, SaleItemRecord.id).all()
        return [_to_item(r) for r in rows]

    def create(self, item: SaleItem) -> SaleItem:
        row = SaleItemRecord(**{name: getattr(item, name) for name in _ITEM_FIELDS})
        db.session.add(row)
        db.session.flush()
        return _to_item(row)

    def update(self, item_id: str, **changes) -> SaleItem:
        row = self._row(item_id)
        if not row:
            raise NotFoundError("Item not found")
        for name, value in changes.items():
            setattr(row, name, value)
        db.session.flush()
        return _to_item(row)

    def delete(self, item_id: str) -> None:
        db.session.query(SaleItemRecord).filter_by(id=item_id).delete(synchronize_session=False)
        db.session.flush()

    def delete_by_transaction(self, transaction_id: str) -> int:
        count = db.session.query(SaleItemRecord).filter_by(
            transaction_id=transaction_id
        ).delete(synchronize_session=False)
        db.session.flush()
        return count


class SqlPaymentRepository:

    def find_by_transaction(self, transaction_id: str) -> list[SalePayment]:
        rows = db.session.query(SalePaymentRecord).filter_by(
            transaction_id=transaction_id
        ).order_by(SalePaymentRecord.received_at, SalePaymentRecord.id).all()
        return [_to_payment(r) for r in rows]

    def create(self, payment: SalePayment) -> SalePayment:
        row = SalePaymentRecord(**{name: getattr(payment, name) for name in _PAYMENT_FIELDS})
        db.session.add(row)
        db.session.flush()
        return _to_payment(row)

    def delete_by_transaction(self, transaction_id: str) -> int:
        count = db.session.query(SalePaymentRecord).filter_by(
            transaction_id=transaction_id
        ).delete(synchronize_session=False)
        db.session.flush()
        return count

    def sum_by_transaction(self, transaction_id: str) -> int:
        total = db.session.query(
            db.func.coalesce(db.func.sum(SalePaymentRecord.amount), 0)
        ).filter(SalePaymentRecord.transaction_id == transaction_id).scalar()
        return int(total or 0)


# =============================================================================
# SEQUENCE COUNTER
# =============================================================================

class SqlSequenceCounter:
    """
    Atomically allocate the next transaction number for a tenant/period.

    The UPDATE ... SET next_number = next_number + 1 takes a row lock held until
    the surrounding unit of work commits, so concurrent callers serialize and
    never see the same value. A rolled-back transaction releases its number.
    """

    def increment(self, tenant_id: str, period: str) -> int:
        try:
            return self._increment(tenant_id, period)
        except SQLAlchemyError as exc:
            raise FatalError(
                "Transaction number generation failed",
                details={"tenant_id": tenant_id, "period": period},
            ) from exc

    def _increment(self, tenant_id: str, period: str) -> int:
        stmt = (
            update(TransactionSequence)
            .where(
                TransactionSequence.tenant_id == tenant_id,
                TransactionSequence.period == period,
            )
            .values(next_number=TransactionSequence.next_number + 1)
            .execution_options(synchronize_session=False)
        )

        result = db.session.execute(stmt)
        if not result.rowcount:
            try:
                with db.session.begin_nested():
                    db.session.add(TransactionSequence(tenant_id=tenant_id, period=period, next_number=1))
            except IntegrityError:
                # A concurrent caller created the row first; increment theirs below
                pass
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise FatalError(
                    "Transaction number generation failed",
                    details={"tenant_id": tenant_id, "period": period},
                )

        current = (
            db.session.query(TransactionSequence.next_number)
            .filter_by(tenant_id=tenant_id, period=period)
            .scalar()
        )
        return current - 1


# =============================================================================
# EXTERNAL MODULE ADAPTERS
# =============================================================================

class SqlSessionProvider:
    """Reads register sessions owned by the register module."""

    def find_by_id(self, session_id: str) -> RegisterSessionInfo | None:
        row = db.session.query(RegisterSession).filter_by(id=session_id).first()
        if not row:
            return None
        return RegisterSessionInfo(id=row.id, tenant_id=row.tenant_id, status=row.status)


class SqlInventoryService:
    """
    Deducts sold quantities from the inventory module's stock levels.

    Each deduction runs in a savepoint; a storage error fails that one
    deduction and leaves the caller's unit of work usable.
    """

    def deduct_stock(
        self,
        product_id: str,
        warehouse_id: str | None,
        quantity: int,
        *,
        tenant_id: str,
        reference: str,
    ) -> StockDeduction:
        try:
            with db.session.begin_nested():
                return self._deduct(product_id, warehouse_id, quantity, tenant_id)
        except SQLAlchemyError as exc:
            logger.warning("Stock deduction for %s (%s) failed: %s", product_id, reference, exc)
            return StockDeduction(success=False, error_message="Stock update failed")

    def _deduct(self, product_id: str, warehouse_id: str | None, quantity: int, tenant_id: str) -> StockDeduction:
        stock = lock_for_update(
            db.session.query(StockLevel).filter_by(
                tenant_id=tenant_id,
                product_id=product_id,
                warehouse_id=warehouse_id,
            )
        ).first()

        if not stock:
            return StockDeduction(
                success=False,
                error_message=f"No stock record for product {product_id} in warehouse {warehouse_id}",
            )

        if stock.quantity < quantity:
            return StockDeduction(
                success=False,
                new_quantity=stock.quantity,
                error_message=f"Insufficient stock: on hand {stock.quantity}, requested {quantity}",
            )

        stock.quantity = stock.quantity - quantity
        db.session.flush()
        return StockDeduction(success=True, new_quantity=stock.quantity)


class SqlAuditLog:
    """
    Append-only audit events.

    Written in a savepoint inside the caller's unit of work, so a failed audit
    write never poisons the surrounding database transaction.
    """

    def log(
        self,
        *,
        action: str,
        entity_type: str,
        entity_id: str,
        user_id: str | None,
        tenant_id: str,
        metadata: dict | None = None,
    ) -> None:
        with db.session.begin_nested():
            db.session.add(AuditEvent(
                tenant_id=tenant_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                user_id=user_id,
                payload=json.dumps(metadata, default=str, sort_keys=True) if metadata else None,
                occurred_at=utcnow(),
            ))
