"""bookings.reminder_sent_at for the day-before reminder email

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19 16:00:00

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

from salon_booking.models.types import UTCDateTime

# revision identifiers, used by Alembic.
revision: str = '0002'
down_revision: Union[str, Sequence[str], None] = '0001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column('bookings', sa.Column('reminder_sent_at', UTCDateTime(), nullable=True))
    op.create_index('ix_bookings_status_start', 'bookings', ['status', 'start_time'])


def downgrade() -> None:
    op.drop_index('ix_bookings_status_start', table_name='bookings')
    with op.batch_alter_table('bookings') as batch_op:
        batch_op.drop_column('reminder_sent_at')
