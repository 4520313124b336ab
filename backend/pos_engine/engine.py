# Overview: Composition of the POS engine services from explicit collaborators.

"""
Engine composition.

Services never look their collaborators up; they are handed them here. Two
builders cover the two deployments: in-memory (tests, local tooling) and SQL
(the Flask app).
"""

from __future__ import annotations

import atexit
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from .gateways import HttpCardGateway, InMemoryCardGateway
from .interfaces import (
    AuditLog,
    CardGateway,
    InventoryService,
    PaymentRepository,
    SaleItemRepository,
    SequenceCounter,
    SessionProvider,
    TransactionRepository,
    UnitOfWork,
)
from .repositories import (
    InMemoryAuditLog,
    InMemoryInventoryService,
    InMemoryPaymentRepository,
    InMemorySaleItemRepository,
    InMemorySequenceCounter,
    InMemorySessionProvider,
    InMemoryTransactionRepository,
    InMemoryUnitOfWork,
    SqlAuditLog,
    SqlInventoryService,
    SqlPaymentRepository,
    SqlSaleItemRepository,
    SqlSequenceCounter,
    SqlSessionProvider,
    SqlTransactionRepository,
)
from .services.completion_service import CompletionReconciler
from .services.concurrency import SqlUnitOfWork
from .services.payment_service import PaymentProcessor
from .services.refund_service import VoidRefundCoordinator
from .services.sequencer import TransactionNumberSequencer
from .services.transaction_service import TransactionManager


@dataclass
class PosEngine:
    transactions: TransactionManager
    payments: PaymentProcessor
    completion: CompletionReconciler
    refunds: VoidRefundCoordinator


def build_engine(
    *,
    transactions: TransactionRepository,
    items: SaleItemRepository,
    payments: PaymentRepository,
    counter: SequenceCounter,
    sessions: SessionProvider,
    inventory: InventoryService,
    card_gateway: CardGateway,
    audit_log: AuditLog,
    unit_of_work: UnitOfWork,
    number_prefix: str = "ELADAS",
    default_warehouse_id: str | None = None,
    clock: Callable[[], datetime] | None = None,
) -> PosEngine:
    sequencer_kwargs = {"prefix": number_prefix}
    if clock is not None:
        sequencer_kwargs["clock"] = clock
    sequencer = TransactionNumberSequencer(counter, **sequencer_kwargs)

    manager = TransactionManager(
        transactions=transactions,
        items=items,
        sessions=sessions,
        sequencer=sequencer,
        audit_log=audit_log,
        unit_of_work=unit_of_work,
    )
    completion = CompletionReconciler(
        transactions=transactions,
        items=items,
        inventory=inventory,
        audit_log=audit_log,
        unit_of_work=unit_of_work,
        default_warehouse_id=default_warehouse_id,
    )
    refunds = VoidRefundCoordinator(
        transactions=transactions,
        payments=payments,
        card_gateway=card_gateway,
        audit_log=audit_log,
        unit_of_work=unit_of_work,
    )
    processor = PaymentProcessor(
        transactions=transactions,
        payments=payments,
        card_gateway=card_gateway,
        audit_log=audit_log,
        unit_of_work=unit_of_work,
        completion=completion,
        refunds=refunds,
    )
    return PosEngine(
        transactions=manager,
        payments=processor,
        completion=completion,
        refunds=refunds,
    )


def build_memory_engine(
    *,
    sessions: InMemorySessionProvider | None = None,
    inventory: InMemoryInventoryService | None = None,
    card_gateway=None,
    audit_log: InMemoryAuditLog | None = None,
    number_prefix: str = "ELADAS",
    default_warehouse_id: str | None = None,
    clock=None,
) -> PosEngine:
    """Engine over fresh in-memory storage; pass collaborators to inspect them."""
    return build_engine(
        transactions=InMemoryTransactionRepository(),
        items=InMemorySaleItemRepository(),
        payments=InMemoryPaymentRepository(),
        counter=InMemorySequenceCounter(),
        sessions=sessions if sessions is not None else InMemorySessionProvider(),
        inventory=inventory if inventory is not None else InMemoryInventoryService(),
        card_gateway=card_gateway if card_gateway is not None else InMemoryCardGateway(),
        audit_log=audit_log if audit_log is not None else InMemoryAuditLog(),
        unit_of_work=InMemoryUnitOfWork(),
        number_prefix=number_prefix,
        default_warehouse_id=default_warehouse_id,
        clock=clock,
    )


def build_card_gateway(config) -> CardGateway:
    if config.get("CARD_GATEWAY_BACKEND", "http") == "memory":
        return InMemoryCardGateway()
    return HttpCardGateway(
        config["CARD_GATEWAY_URL"],
        api_key=config.get("CARD_GATEWAY_API_KEY", ""),
        currency=config.get("DEFAULT_CURRENCY", "HUF"),
        timeout=config.get("CARD_GATEWAY_TIMEOUT", 30.0),
    )


def build_sql_engine(app, *, card_gateway=None) -> PosEngine:
    """Engine over the app's Flask-SQLAlchemy session."""
    config = app.config
    if card_gateway is None:
        card_gateway = build_card_gateway(config)
        if isinstance(card_gateway, HttpCardGateway):
            # The app owns this client until the process exits
            atexit.register(card_gateway.close)

    return build_engine(
        transactions=SqlTransactionRepository(),
        items=SqlSaleItemRepository(),
        payments=SqlPaymentRepository(),
        counter=SqlSequenceCounter(),
        sessions=SqlSessionProvider(),
        inventory=SqlInventoryService(),
        card_gateway=card_gateway,
        audit_log=SqlAuditLog(),
        unit_of_work=SqlUnitOfWork(),
        number_prefix=config.get("TRANSACTION_NUMBER_PREFIX", "ELADAS"),
        default_warehouse_id=config.get("DEFAULT_WAREHOUSE_ID"),
    )
