"""
Pytest fixtures for POS engine tests.

Provides an in-memory engine (with inspectable collaborators) for service
tests, and a Flask app on in-memory SQLite for repository and route tests.
"""

from datetime import datetime

import pytest

from pos_engine import create_app
from pos_engine.engine import build_memory_engine
from pos_engine.extensions import db
from pos_engine.gateways import InMemoryCardGateway
from pos_engine.models import RegisterSession, StockLevel
from pos_engine.repositories import InMemoryAuditLog, InMemoryInventoryService, InMemorySessionProvider


TENANT = "T1"
OTHER_TENANT = "T2"
USER = "U1"


def fixed_clock():
    return datetime(2026, 3, 14, 9, 30)


# =============================================================================
# IN-MEMORY ENGINE
# =============================================================================

@pytest.fixture
def sessions():
    """S1 open for T1, S2 open for T2, S-CLOSED closed for T1."""
    provider = InMemorySessionProvider()
    provider.add("S1", TENANT)
    provider.add("S2", OTHER_TENANT)
    provider.add("S-CLOSED", TENANT, status="CLOSED")
    return provider


@pytest.fixture
def inventory():
    return InMemoryInventoryService()


@pytest.fixture
def card_gateway():
    return InMemoryCardGateway(id_prefix="mypos")


@pytest.fixture
def audit_log():
    return InMemoryAuditLog()


@pytest.fixture
def engine(sessions, inventory, card_gateway, audit_log):
    return build_memory_engine(
        sessions=sessions,
        inventory=inventory,
        card_gateway=card_gateway,
        audit_log=audit_log,
        default_warehouse_id="W1",
        clock=fixed_clock,
    )


@pytest.fixture
def item_payload():
    """Factory for add_item payloads: 2 x 10000 at 27% tax unless overridden."""
    def _make(**overrides):
        payload = {
            "product_id": "P1",
            "product_code": "SKU-001",
            "product_name": "Coffee beans 1kg",
            "quantity": 2,
            "unit_price": 10000,
            "tax_rate": "27",
        }
        payload.update(overrides)
        return payload
    return _make


@pytest.fixture
def open_transaction(engine):
    """Empty IN_PROGRESS transaction on S1."""
    return engine.transactions.create_transaction({"session_id": "S1"}, TENANT, USER)


@pytest.fixture
def pending_transaction(engine, open_transaction, item_payload):
    """PENDING_PAYMENT transaction with total 25400 (20000 + 5400 tax)."""
    engine.transactions.add_item(open_transaction.id, item_payload(), TENANT)
    return engine.transactions.complete_transaction(open_transaction.id, TENANT)


@pytest.fixture
def pending_50000(engine, open_transaction, item_payload):
    """PENDING_PAYMENT transaction with total 50000 (no tax)."""
    engine.transactions.add_item(
        open_transaction.id,
        item_payload(quantity=5, tax_rate="0"),
        TENANT,
    )
    return engine.transactions.complete_transaction(open_transaction.id, TENANT)


# =============================================================================
# FLASK APP (SQL)
# =============================================================================

@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'CARD_GATEWAY_BACKEND': 'memory',
        'DEFAULT_WAREHOUSE_ID': 'W1',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def sql_engine(app, db_session):
    return app.extensions["pos_engine"]


@pytest.fixture(scope='function')
def seeded_sessions(db_session):
    """Register sessions S1 (T1, open), S2 (T2, open), S-CLOSED (T1, closed)."""
    db_session.add_all([
        RegisterSession(id="S1", tenant_id=TENANT, status="OPEN"),
        RegisterSession(id="S2", tenant_id=OTHER_TENANT, status="OPEN"),
        RegisterSession(id="S-CLOSED", tenant_id=TENANT, status="CLOSED"),
    ])
    db_session.commit()


@pytest.fixture(scope='function')
def seeded_stock(db_session):
    """P1 has 10 on hand in W1 for T1."""
    db_session.add(StockLevel(tenant_id=TENANT, product_id="P1", warehouse_id="W1", quantity=10))
    db_session.commit()
