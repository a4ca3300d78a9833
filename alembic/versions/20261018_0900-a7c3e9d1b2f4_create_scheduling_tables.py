"""create scheduling tables

Revision ID: a7c3e9d1b2f4
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'a7c3e9d1b2f4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table('barbers',
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('services',
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('add_ons',
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('barber_day_offs',
        sa.Column('barber_id', sa.UUID(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('start_date <= end_date', name='check_day_off_range'),
        sa.ForeignKeyConstraint(['barber_id'], ['barbers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('appointments',
        sa.Column('customer_id', sa.UUID(), nullable=True),
        sa.Column('barber_id', sa.UUID(), nullable=False),
        sa.Column('service_id', sa.UUID(), nullable=False),
        sa.Column('additional_service_ids', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('add_on_ids', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('appointment_date', sa.Date(), nullable=False),
        sa.Column('appointment_time', sa.Time(), nullable=True),
        sa.Column('total_duration', sa.Integer(), nullable=False),
        sa.Column('priority_level', sa.String(length=10), nullable=False),
        sa.Column('appointment_type', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('queue_position', sa.Integer(), nullable=True),
        sa.Column('queue_insertion_reason', sa.String(length=30), nullable=True),
        sa.Column('total_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_walk_in', sa.Boolean(), nullable=False),
        sa.Column('is_urgent', sa.Boolean(), nullable=False),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('booking_kind', sa.String(length=10), nullable=False),
        sa.Column('friend_name', sa.String(length=255), nullable=True),
        sa.Column('friend_phone', sa.String(length=50), nullable=True),
        sa.Column('booked_by', sa.UUID(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "(appointment_type = 'scheduled' AND appointment_time IS NOT NULL) "
            "OR (appointment_type = 'queue' AND appointment_time IS NULL)",
            name='check_appointment_time_matches_type',
        ),
        sa.CheckConstraint('total_duration >= 0', name='check_appointment_duration'),
        sa.ForeignKeyConstraint(['barber_id'], ['barbers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    # Every scheduling read is scoped to one barber and day
    op.create_index('ix_appointment_barber_date', 'appointments', ['barber_id', 'appointment_date'], unique=False)

    op.create_table('function_traces',
        sa.Column('correlation_id', sa.UUID(), nullable=False),
        sa.Column('sequence_number', sa.Integer(), nullable=False),
        sa.Column('function_name', sa.String(length=255), nullable=False),
        sa.Column('module_path', sa.String(length=255), nullable=False),
        sa.Column('trace_type', sa.String(length=50), nullable=False),
        sa.Column('input_summary', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('output_summary', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('duration_ms', sa.Integer(), nullable=False),
        sa.Column('barber_id', sa.UUID(), nullable=True),
        sa.Column('customer_id', sa.UUID(), nullable=True),
        sa.Column('is_error', sa.Boolean(), nullable=False),
        sa.Column('error_type', sa.String(length=255), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_func_trace_corr_seq', 'function_traces', ['correlation_id', 'sequence_number'], unique=False)
    op.create_index('ix_func_trace_created', 'function_traces', ['created_at'], unique=False)
    op.create_index('ix_func_trace_barber', 'function_traces', ['barber_id'], unique=False)
    op.create_index('ix_func_trace_error', 'function_traces', ['is_error'], unique=False)
    op.create_index('ix_function_traces_correlation_id', 'function_traces', ['correlation_id'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index('ix_function_traces_correlation_id', table_name='function_traces')
    op.drop_index('ix_func_trace_error', table_name='function_traces')
    op.drop_index('ix_func_trace_barber', table_name='function_traces')
    op.drop_index('ix_func_trace_created', table_name='function_traces')
    op.drop_index('ix_func_trace_corr_seq', table_name='function_traces')
    op.drop_table('function_traces')
    op.drop_index('ix_appointment_barber_date', table_name='appointments')
    op.drop_table('appointments')
    op.drop_table('barber_day_offs')
    op.drop_table('add_ons')
    op.drop_table('services')
    op.drop_table('barbers')
