"""create scheduling tables

Revision ID: 4a1c9e2f7b10
Revises:
Create Date: 2026-10-19 09:12:41.305118

"""
from datetime import time
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4a1c9e2f7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    # 1. Weekly opening hours
    weekly_hours = op.create_table(
        'weekly_hours',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('is_open', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('open_time', sa.Time(), nullable=True),
        sa.Column('close_time', sa.Time(), nullable=True),
        sa.Column('slot_duration_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.UniqueConstraint('day_of_week'),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_weekly_hours_day'),
    )

    # 2. Date overrides (closures and special hours)
    op.create_table(
        'date_overrides',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('is_closed', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('open_time', sa.Time(), nullable=True),
        sa.Column('close_time', sa.Time(), nullable=True),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('show_on_website', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    op.create_index('idx_date_overrides_date', 'date_overrides', ['date'])

    # 3. Appointments
    op.create_table(
        'appointments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('appointment_date', sa.Date(), nullable=False),
        sa.Column('appointment_time', sa.Time(), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_email', sa.String(length=255), nullable=False),
        sa.Column('customer_phone', sa.String(length=50), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='confirmed'),
        sa.Column('edit_token', sa.String(length=64), nullable=False),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('rescheduled_from_id', sa.Integer(), sa.ForeignKey('appointments.id'), nullable=True),
        sa.Column('reminder_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('edit_token'),
    )
    op.create_index(
        'uq_appointments_active_slot',
        'appointments',
        ['appointment_date', 'appointment_time'],
        unique=True,
        postgresql_where=sa.text("status != 'cancelled'"),
    )
    op.create_index('idx_appointments_status', 'appointments', ['status'])
    op.create_index('idx_appointments_email', 'appointments', ['customer_email'])

    # 4. Default hours: Tuesday-Saturday 10:00-17:00
    op.bulk_insert(weekly_hours, [
        {
            'day_of_week': day,
            'is_open': 1 <= day <= 5,
            'open_time': time(10, 0) if 1 <= day <= 5 else None,
            'close_time': time(17, 0) if 1 <= day <= 5 else None,
            'slot_duration_minutes': 60,
        }
        for day in range(7)
    ])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_appointments_email', table_name='appointments')
    op.drop_index('idx_appointments_status', table_name='appointments')
    op.drop_index('uq_appointments_active_slot', table_name='appointments')
    op.drop_table('appointments')
    op.drop_index('idx_date_overrides_date', table_name='date_overrides')
    op.drop_table('date_overrides')
    op.drop_table('weekly_hours')
