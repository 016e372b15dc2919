"""initial schema: catalog, schedules, bookings, slot holds

Revision ID: 0001
Revises:
Create Date: 2026-10-19 10:00:00

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

from salon_booking.models.types import UTCDateTime

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('tenants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('slug', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('timezone', sa.Text(), server_default=sa.text("'Europe/Berlin'"), nullable=False),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('phone', sa.Text(), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )

    op.create_table('staff',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('calendar_version', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_staff_tenant_id', 'staff', ['tenant_id'])

    op.create_table('working_hours',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('open_time', sa.Time(), nullable=False),
        sa.Column('close_time', sa.Time(), nullable=False),
        sa.Column('is_open', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_working_hours_day'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'day_of_week', name='uq_working_hours_tenant_day'),
    )

    op.create_table('staff_schedule',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('staff_id', sa.Integer(), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('break_start', sa.Time(), nullable=True),
        sa.Column('break_end', sa.Time(), nullable=True),
        sa.Column('is_working', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_staff_schedule_day'),
        sa.CheckConstraint(
            '(break_start IS NULL AND break_end IS NULL) OR '
            '(break_start >= start_time AND break_end <= end_time AND break_start < break_end)',
            name='ck_staff_schedule_break_within_shift',
        ),
        sa.ForeignKeyConstraint(['staff_id'], ['staff.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('staff_id', 'day_of_week', name='uq_staff_schedule_staff_day'),
    )

    op.create_table('blocked_dates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('staff_id', sa.Integer(), nullable=True),
        sa.Column('blocked_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['staff_id'], ['staff.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_blocked_dates_tenant_date', 'blocked_dates', ['tenant_id', 'blocked_date'])

    op.create_table('services',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('price', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('buffer_after', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('min_advance_hours', sa.Integer(), nullable=True),
        sa.Column('max_advance_days', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('online_booking_enabled', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_services_tenant_id', 'services', ['tenant_id'])

    op.create_table('service_variants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('service_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('price', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.ForeignKeyConstraint(['service_id'], ['services.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_service_variants_service_id', 'service_variants', ['service_id'])

    op.create_table('bookings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('service_id', sa.Integer(), nullable=False),
        sa.Column('variant_id', sa.Integer(), nullable=True),
        sa.Column('staff_id', sa.Integer(), nullable=False),
        sa.Column('start_time', UTCDateTime(), nullable=False),
        sa.Column('end_time', UTCDateTime(), nullable=False),
        sa.Column('status', sa.Text(), server_default=sa.text("'pending'"), nullable=False),
        sa.Column('source', sa.Text(), server_default=sa.text("'widget'"), nullable=False),
        sa.Column('duration_at_booking', sa.Integer(), nullable=False),
        sa.Column('price_at_booking', sa.Integer(), nullable=False),
        sa.Column('client_name', sa.Text(), nullable=False),
        sa.Column('client_phone', sa.Text(), nullable=False),
        sa.Column('client_email', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('cancel_token', sa.Text(), nullable=True),
        sa.Column('cancelled_at', UTCDateTime(), nullable=True),
        sa.Column('cancelled_by', sa.Text(), nullable=True),
        sa.Column('reschedule_token', sa.Text(), nullable=True),
        sa.Column('used_reschedule_token_hash', sa.Text(), nullable=True),
        sa.Column('was_rescheduled', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('original_start_time', UTCDateTime(), nullable=True),
        sa.Column('original_end_time', UTCDateTime(), nullable=True),
        sa.Column('rescheduled_at', UTCDateTime(), nullable=True),
        sa.Column('created_at', UTCDateTime(), nullable=False),
        sa.Column('updated_at', UTCDateTime(), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed', 'no_show')",
            name='ck_bookings_status',
        ),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['service_id'], ['services.id']),
        sa.ForeignKeyConstraint(['variant_id'], ['service_variants.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['staff_id'], ['staff.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cancel_token'),
        sa.UniqueConstraint('reschedule_token'),
    )
    op.create_index('ix_bookings_tenant_id', 'bookings', ['tenant_id'])
    op.create_index('ix_bookings_staff_start', 'bookings', ['staff_id', 'start_time'])
    op.create_index('ix_bookings_used_reschedule_token_hash', 'bookings', ['used_reschedule_token_hash'])

    op.create_table('slot_holds',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('service_id', sa.Integer(), nullable=False),
        sa.Column('variant_id', sa.Integer(), nullable=True),
        sa.Column('staff_id', sa.Integer(), nullable=False),
        sa.Column('start_time', UTCDateTime(), nullable=False),
        sa.Column('end_time', UTCDateTime(), nullable=False),
        sa.Column('session_token', sa.Text(), nullable=False),
        sa.Column('expires_at', UTCDateTime(), nullable=False),
        sa.Column('created_at', UTCDateTime(), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['service_id'], ['services.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['variant_id'], ['service_variants.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['staff_id'], ['staff.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('staff_id', 'start_time', name='uq_slot_holds_staff_start'),
    )
    op.create_index('ix_slot_holds_staff_expires', 'slot_holds', ['staff_id', 'expires_at'])

    # PostgreSQL: no two overlapping holds, no two overlapping active bookings
    # per staff member. SQLite relies on the staff calendar lock alone.
    if op.get_bind().dialect.name == 'postgresql':
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        op.execute(
            "ALTER TABLE slot_holds ADD CONSTRAINT ex_slot_holds_no_overlap "
            "EXCLUDE USING gist (staff_id WITH =, tsrange(start_time, end_time, '[)') WITH &&)"
        )
        op.execute(
            "ALTER TABLE bookings ADD CONSTRAINT ex_bookings_no_overlap "
            "EXCLUDE USING gist (staff_id WITH =, tsrange(start_time, end_time, '[)') WITH &&) "
            "WHERE (status IN ('pending', 'confirmed'))"
        )


def downgrade() -> None:
    op.drop_table('slot_holds')
    op.drop_table('bookings')
    op.drop_table('service_variants')
    op.drop_table('services')
    op.drop_table('blocked_dates')
    op.drop_table('staff_schedule')
    op.drop_table('working_hours')
    op.drop_table('staff')
    op.drop_table('tenants')
