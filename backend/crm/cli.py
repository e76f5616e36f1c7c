# Overview: Flask CLI command groups for bootstrap, tenant setup, and ledger checks.

# backend/crm/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Partner management (MULTI-TENANT):
# - python -m flask partners list
#   List all partners with their cash balance.
# - python -m flask partners create --email owner@example.com --name "Acme Phones" --cash-cents 100000
#   Create a new partner (tenant).
# - python -m flask partners add-company --partner-id 1 --name "Acme Corp"
# - python -m flask partners add-employee --partner-id 1 --name "Ravi"
#
# Ledger checks:
# - python -m flask ledger reconcile [--partner-id 1]
#   Compare stored balances with the balance journal. Exits 1 on drift.

import sys

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Partner, Vendor
from .services import partner_service
from .services.balance_service import reconcile_balances
from .validation import LedgerError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('reset-db')
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


# =============================================================================
# PARTNER MANAGEMENT COMMANDS
# =============================================================================

@click.group('partners')
def partners_group():
    """Partner (tenant) management commands."""


@partners_group.command('list')
@with_appcontext
def list_partners_cli():
    """List all partners."""
    partners = partner_service.list_partners()

    if not partners:
        click.echo("No partners found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<30} {'Cash (cents)':>14} {'Vendors':>8}")
    click.echo("="*80)

    for partner in partners:
        vendor_count = db.session.query(Vendor).filter_by(partner_id=partner.id, is_deleted=False).count()
        click.echo(
            f"{partner.id:<5} {partner.name or '-':<25} {partner.email:<30} "
            f"{partner.cash_amount_cents:>14} {vendor_count:>8}"
        )

    click.echo("="*80 + "\n")


@partners_group.command('create')
@click.option('--email', required=True, help='Partner email (unique)')
@click.option('--name', default=None, help='Display name')
@click.option('--phone', default=None, help='Phone number (unique)')
@click.option('--cash-cents', type=int, default=0, help='Opening cash balance in cents')
@with_appcontext
def create_partner_cli(email, name, phone, cash_cents):
    """Create a new partner (tenant)."""
    try:
        partner = partner_service.create_partner(
            email=email, name=name, phone=phone, cash_amount_cents=cash_cents,
        )
    except LedgerError as e:
        click.echo(f"FAIL {e}")
        sys.exit(1)

    click.echo(f"PASS Created partner: {partner.email} (ID: {partner.id})")


@partners_group.command('add-company')
@click.option('--partner-id', type=int, required=True, help='Partner ID')
@click.option('--name', required=True, help='Company name')
@with_appcontext
def add_company_cli(partner_id, name):
    """Add a company to a partner."""
    try:
        company = partner_service.create_company(partner_id=partner_id, name=name)
    except LedgerError as e:
        click.echo(f"FAIL {e}")
        sys.exit(1)

    click.echo(f"PASS Created company: {company.name} (ID: {company.id})")


@partners_group.command('add-employee')
@click.option('--partner-id', type=int, required=True, help='Partner ID')
@click.option('--name', required=True, help='Employee name')
@click.option('--email', default=None)
@click.option('--phone', default=None)
@with_appcontext
def add_employee_cli(partner_id, name, email, phone):
    """Add an employee to a partner."""
    try:
        employee = partner_service.create_employee(
            partner_id=partner_id, name=name, email=email, phone=phone,
        )
    except LedgerError as e:
        click.echo(f"FAIL {e}")
        sys.exit(1)

    click.echo(f"PASS Created employee: {employee.name} (ID: {employee.id})")


# =============================================================================
# LEDGER COMMANDS
# =============================================================================

@click.group('ledger')
def ledger_group():
    """Ledger consistency checks."""


@ledger_group.command('reconcile')
@click.option('--partner-id', type=int, default=None, help='Only check this partner')
@with_appcontext
def reconcile_cli(partner_id):
    """Compare stored balances with the sum of journaled deltas."""
    if partner_id is not None and not db.session.get(Partner, partner_id):
        click.echo(f"FAIL Partner ID {partner_id} not found")
        sys.exit(1)

    drift = reconcile_balances(partner_id)
    if not drift:
        click.echo("PASS Balances match the journal.")
        return

    click.echo(f"FAIL {len(drift)} account(s) drifted from the journal:")
    for row in drift:
        click.echo(
            f"  {row['account_kind']} {row['account_id']} (partner {row['partner_id']}): "
            f"stored={row['stored_cents']} journal={row['journal_cents']}"
        )
    sys.exit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(partners_group)
    app.cli.add_command(ledger_group)
