"""Employee attendance: one present/absent mark per employee per day

Revision ID: 0002_employee_attendance
Revises: 0001_initial_ledger
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0002_employee_attendance'
down_revision = '0001_initial_ledger'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('attendance',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('partner_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("status IN ('present', 'absent')", name='ck_attendance_status'),
        sa.ForeignKeyConstraint(['partner_id'], ['partners.id']),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('employee_id', 'work_date', name='uq_attendance_employee_date'),
    )
    op.create_index('ix_attendance_partner_id', 'attendance', ['partner_id'])
    op.create_index('ix_attendance_employee_id', 'attendance', ['employee_id'])
    op.create_index('ix_attendance_partner_date', 'attendance', ['partner_id', 'work_date'])


def downgrade():
    op.drop_table('attendance')
