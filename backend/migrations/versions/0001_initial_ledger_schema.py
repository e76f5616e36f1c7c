"""Initial schema: partners, directory, vendors, devices, transactions, balance journal

LEDGER SCHEMA:
1. Tenant root (partners) and directory (companies, employees)
2. Balance-bearing vendors with optimistic lock column
3. Devices and their append-only sell-event log
4. Append-only transactions and balance_events journal

Revision ID: 0001_initial_ledger
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_ledger'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def _flags():
    return [
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='0'),
    ]


def upgrade():
    # ==========================================================================
    # Tenant root and directory
    # ==========================================================================
    op.create_table('partners',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('cash_amount_cents', sa.BigInteger(), nullable=False, server_default='0'),
        *_flags(),
        *_timestamps(),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('phone'),
    )
    op.create_index('ix_partners_email', 'partners', ['email'], unique=True)
    op.create_index('ix_partners_is_active', 'partners', ['is_active'])
    op.create_index('ix_partners_is_deleted', 'partners', ['is_deleted'])

    op.create_table('companies',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('partner_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('credit_value_cents', sa.BigInteger(), nullable=False, server_default='0'),
        *_flags(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['partner_id'], ['partners.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_companies_partner_id', 'companies', ['partner_id'])
    op.create_index('ix_companies_partner_deleted', 'companies', ['partner_id', 'is_deleted'])

    op.create_table('employees',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('partner_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('salary_per_day_cents', sa.BigInteger(), nullable=False, server_default='0'),
        *_flags(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['partner_id'], ['partners.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_employees_partner_id', 'employees', ['partner_id'])
    op.create_index('ix_employees_partner_deleted', 'employees', ['partner_id', 'is_deleted'])

    # ==========================================================================
    # Vendors (balance-bearing)
    # ==========================================================================
    op.create_table('vendors',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('partner_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('amount_cents', sa.BigInteger(), nullable=False, server_default='0'),
        *_flags(),
        *_timestamps(),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['partner_id'], ['partners.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_vendors_partner_id', 'vendors', ['partner_id'])
    op.create_index('ix_vendors_partner_deleted', 'vendors', ['partner_id', 'is_deleted'])

    # ==========================================================================
    # Devices
    # ==========================================================================
    op.create_table('devices',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('device_code', sa.String(length=32), nullable=False),
        sa.Column('partner_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('picked_by_id', sa.Integer(), nullable=True),
        sa.Column('author_type', sa.String(length=16), nullable=False),
        sa.Column('author_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('service_number', sa.String(length=64), nullable=True),
        sa.Column('brand', sa.String(length=128), nullable=False),
        sa.Column('model', sa.String(length=128), nullable=False),
        sa.Column('imei1', sa.String(length=32), nullable=False),
        sa.Column('imei2', sa.String(length=32), nullable=True),
        sa.Column('initial_cost_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('cost_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('extra_amount_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('credit_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('per_credit_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('commission_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('gst_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('total_cost_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('profit_cents', sa.BigInteger(), nullable=True),
        sa.Column('box', sa.String(length=64), nullable=True),
        sa.Column('warranty', sa.String(length=64), nullable=True),
        sa.Column('issues', sa.Text(), nullable=True),
        *_flags(),
        *_timestamps(),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint("author_type IN ('partner', 'employee')", name='ck_devices_author_type'),
        sa.ForeignKeyConstraint(['partner_id'], ['partners.id']),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['picked_by_id'], ['employees.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_devices_device_code', 'devices', ['device_code'], unique=True)
    op.create_index('ix_devices_partner_id', 'devices', ['partner_id'])
    op.create_index('ix_devices_company_id', 'devices', ['company_id'])
    op.create_index('ix_devices_picked_by_id', 'devices', ['picked_by_id'])
    op.create_index('ix_devices_partner_deleted', 'devices', ['partner_id', 'is_deleted'])

    # ==========================================================================
    # Transactions (append-only)
    # ==========================================================================
    op.create_table('transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('partner_id', sa.Integer(), nullable=False),
        sa.Column('author_type', sa.String(length=16), nullable=False),
        sa.Column('author_id', sa.Integer(), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=True),
        sa.Column('device_id', sa.Integer(), nullable=True),
        sa.Column('amount_cents', sa.BigInteger(), nullable=False),
        sa.Column('note', sa.Text(), nullable=False, server_default=''),
        sa.Column('payment_mode', sa.String(length=8), nullable=True),
        sa.Column('transaction_type', sa.String(length=16), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('amount_cents > 0', name='ck_transactions_amount_positive'),
        sa.CheckConstraint(
            "transaction_type IN ('sell', 'return', 'credit', 'debit', 'investment')",
            name='ck_transactions_type',
        ),
        sa.CheckConstraint(
            "payment_mode IS NULL OR payment_mode IN ('cash', 'upi', 'card')",
            name='ck_transactions_payment_mode',
        ),
        sa.CheckConstraint("author_type IN ('partner', 'employee')", name='ck_transactions_author_type'),
        sa.ForeignKeyConstraint(['partner_id'], ['partners.id']),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id']),
        sa.ForeignKeyConstraint(['device_id'], ['devices.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_partner_id', 'transactions', ['partner_id'])
    op.create_index('ix_transactions_vendor_id', 'transactions', ['vendor_id'])
    op.create_index('ix_transactions_device_id', 'transactions', ['device_id'])
    op.create_index('ix_transactions_partner_date', 'transactions', ['partner_id', 'date'])
    op.create_index('ix_transactions_partner_type', 'transactions', ['partner_id', 'transaction_type'])

    # ==========================================================================
    # Device sell events (append-only ownership log)
    # ==========================================================================
    op.create_table('device_sell_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('device_id', sa.Integer(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(length=16), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=False),
        sa.Column('selling_cents', sa.BigInteger(), nullable=True),
        sa.Column('return_amount_cents', sa.BigInteger(), nullable=True),
        sa.Column('transaction_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("event_type IN ('sell', 'return')", name='ck_device_sell_events_type'),
        sa.CheckConstraint(
            "(event_type = 'sell' AND selling_cents IS NOT NULL AND return_amount_cents IS NULL) OR "
            "(event_type = 'return' AND return_amount_cents IS NOT NULL AND selling_cents IS NULL)",
            name='ck_device_sell_events_amounts',
        ),
        sa.ForeignKeyConstraint(['device_id'], ['devices.id']),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id']),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('device_id', 'sequence', name='uq_device_sell_events_device_seq'),
    )
    op.create_index('ix_device_sell_events_device_id', 'device_sell_events', ['device_id'])
    op.create_index('ix_device_sell_events_vendor', 'device_sell_events', ['vendor_id'])
    op.create_index('ix_device_sell_events_transaction_id', 'device_sell_events', ['transaction_id'])

    # ==========================================================================
    # Balance journal
    # ==========================================================================
    op.create_table('balance_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('partner_id', sa.Integer(), nullable=False),
        sa.Column('account_kind', sa.String(length=16), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('delta_cents', sa.BigInteger(), nullable=False),
        sa.Column('balance_after_cents', sa.BigInteger(), nullable=False),
        sa.Column('reason', sa.String(length=32), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=True),
        sa.Column('device_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("account_kind IN ('vendor', 'partner')", name='ck_balance_events_account_kind'),
        sa.ForeignKeyConstraint(['partner_id'], ['partners.id']),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.id']),
        sa.ForeignKeyConstraint(['device_id'], ['devices.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_balance_events_partner_id', 'balance_events', ['partner_id'])
    op.create_index('ix_balance_events_account', 'balance_events', ['account_kind', 'account_id'])
    op.create_index('ix_balance_events_transaction_id', 'balance_events', ['transaction_id'])
    op.create_index('ix_balance_events_device_id', 'balance_events', ['device_id'])


def downgrade():
    op.drop_table('balance_events')
    op.drop_table('device_sell_events')
    op.drop_table('transactions')
    op.drop_table('devices')
    op.drop_table('vendors')
    op.drop_table('employees')
    op.drop_table('companies')
    op.drop_table('partners')
