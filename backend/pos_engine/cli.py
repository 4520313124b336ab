# Overview: Flask CLI command groups for database setup, dev seeding, and inspection.

# backend/pos_engine/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Database:
# - python -m flask pos-db reset --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Register sessions (dev seeding of the register module's table):
# - python -m flask sessions open --tenant T1 [--id S1]
#   Open a register session for a tenant.
# - python -m flask sessions close S1
#   Close a register session.
#
# Stock (dev seeding of the inventory module's table):
# - python -m flask stock set --tenant T1 --product P1 --warehouse default --quantity 50
#   Set the on-hand quantity of a product in a warehouse.
#
# Transaction inspection:
# - python -m flask transactions list --tenant T1 [--status COMPLETED]
#   List a tenant's transactions, newest first.

import uuid

import click
from flask import current_app
from flask.cli import with_appcontext

from .domain import SESSION_STATUS_CLOSED, SESSION_STATUS_OPEN, VALID_STATUSES
from .errors import PosError
from .extensions import db
from .models import RegisterSession, StockLevel
from .time_utils import utcnow


@click.group('pos-db')
def db_group():
    """Database setup commands."""


@db_group.command('reset')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('sessions')
def sessions_group():
    """Register session seeding commands."""


@sessions_group.command('open')
@click.option('--tenant', 'tenant_id', required=True, help='Tenant ID')
@click.option('--id', 'session_id', default=None, help='Session ID (generated if omitted)')
@with_appcontext
def open_session_cli(tenant_id, session_id):
    """
    Open a register session.

    Example:
        flask sessions open --tenant T1
        flask sessions open --tenant T1 --id S1
    """
    session_id = session_id or str(uuid.uuid4())

    if db.session.get(RegisterSession, session_id):
        click.echo(f"FAIL Session {session_id} already exists")
        raise SystemExit(1)

    db.session.add(RegisterSession(
        id=session_id,
        tenant_id=tenant_id,
        status=SESSION_STATUS_OPEN,
        opened_at=utcnow(),
    ))
    db.session.commit()
    click.echo(f"PASS Opened session {session_id} for tenant {tenant_id}")


@sessions_group.command('close')
@click.argument('session_id')
@with_appcontext
def close_session_cli(session_id):
    """
    Close a register session.

    Example:
        flask sessions close S1
    """
    session = db.session.get(RegisterSession, session_id)
    if not session:
        click.echo(f"FAIL Session {session_id} not found")
        raise SystemExit(1)

    if session.status == SESSION_STATUS_CLOSED:
        click.echo(f"SKIP Session {session_id} is already closed")
        return

    session.status = SESSION_STATUS_CLOSED
    session.closed_at = utcnow()
    db.session.commit()
    click.echo(f"PASS Closed session {session_id}")


@click.group('stock')
def stock_group():
    """Stock level seeding commands."""


@stock_group.command('set')
@click.option('--tenant', 'tenant_id', required=True, help='Tenant ID')
@click.option('--product', 'product_id', required=True, help='Product ID')
@click.option('--warehouse', 'warehouse_id', default=None, help='Warehouse ID (DEFAULT_WAREHOUSE_ID if omitted)')
@click.option('--quantity', type=int, required=True, help='On-hand quantity')
@with_appcontext
def set_stock_cli(tenant_id, product_id, warehouse_id, quantity):
    """
    Set on-hand quantity for a product.

    Example:
        flask stock set --tenant T1 --product P1 --warehouse default --quantity 50
    """
    if quantity < 0:
        click.echo("FAIL Quantity cannot be negative")
        raise SystemExit(1)

    warehouse_id = warehouse_id or current_app.config["DEFAULT_WAREHOUSE_ID"]
    stock = db.session.query(StockLevel).filter_by(
        tenant_id=tenant_id,
        product_id=product_id,
        warehouse_id=warehouse_id,
    ).first()

    if stock:
        stock.quantity = quantity
    else:
        db.session.add(StockLevel(
            tenant_id=tenant_id,
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity=quantity,
        ))
    db.session.commit()
    click.echo(f"PASS {product_id} @ {warehouse_id}: {quantity} on hand")


@click.group('transactions')
def transactions_group():
    """Transaction inspection commands."""


@transactions_group.command('list')
@click.option('--tenant', 'tenant_id', required=True, help='Tenant ID')
@click.option('--status', type=click.Choice(VALID_STATUSES), help='Filter by status')
@with_appcontext
def list_transactions_cli(tenant_id, status):
    """
    List a tenant's transactions.

    Example:
        flask transactions list --tenant T1
        flask transactions list --tenant T1 --status VOIDED
    """
    engine = current_app.extensions["pos_engine"]
    try:
        transactions = engine.transactions.get_transactions(
            tenant_id, {"status": status} if status else None
        )
    except PosError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)

    if not transactions:
        click.echo("No transactions found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'Number':<20} {'Status':<16} {'Payment':<9} {'Total':>10} {'Paid':>10} {'Created':<20} {'Flags'}")
    click.echo("="*100)

    for tx in transactions:
        flags = "RECONCILE" if tx.needs_reconciliation else "-"
        click.echo(f"{tx.transaction_number:<20} {tx.status:<16} {tx.payment_status:<9} "
                   f"{tx.total:>10} {tx.paid_amount:>10} {str(tx.created_at)[:19]:<20} {flags}")

    click.echo("="*100 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(db_group)
    app.cli.add_command(sessions_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(transactions_group)
