"""Initial schema: users, rooms, bookings, payments, room_dates

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('username', sa.String(50), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('name', sa.String(100), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table(
        'rooms',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('room_type', sa.String(20), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('image_url', sa.String(500), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('amenities', sa.JSON(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('rating', sa.Float(), nullable=True),
    )

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('room_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('check_in_date', sa.Date(), nullable=False),
        sa.Column('check_out_date', sa.Date(), nullable=False),
        sa.Column('guest_count', sa.Integer(), nullable=False),
        sa.Column('guest_name', sa.String(100), nullable=False),
        sa.Column('guest_email', sa.String(255), nullable=False),
        sa.Column('guest_phone', sa.String(30), nullable=False),
        sa.Column('special_requests', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('reference_number', sa.String(32), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('reference_number', name='uq_bookings_reference_number'),
    )
    op.create_index('ix_bookings_room_id', 'bookings', ['room_id'])
    op.create_index('ix_bookings_room_dates', 'bookings', ['room_id', 'check_in_date', 'check_out_date'])
    op.create_index('ix_bookings_user', 'bookings', ['user_id'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id'), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('payment_method', sa.String(50), nullable=False),
        sa.Column('transaction_id', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_payments_booking_id', 'payments', ['booking_id'])

    op.create_table(
        'room_dates',
        sa.Column('room_id', sa.Integer(), sa.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('price', sa.Numeric(10, 2), nullable=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id', ondelete='SET NULL'), nullable=True),
        sa.Column('block_reason', sa.String(100), nullable=True),
        sa.PrimaryKeyConstraint('room_id', 'date', name='room_dates_pkey'),
    )
    op.create_index('ix_room_dates_booking', 'room_dates', ['booking_id'])
    op.create_index('ix_room_dates_unavailable', 'room_dates', ['room_id', 'is_available', 'date'])


def downgrade() -> None:
    op.drop_index('ix_room_dates_unavailable', table_name='room_dates')
    op.drop_index('ix_room_dates_booking', table_name='room_dates')
    op.drop_table('room_dates')
    op.drop_index('ix_payments_booking_id', table_name='payments')
    op.drop_table('payments')
    op.drop_index('ix_bookings_user', table_name='bookings')
    op.drop_index('ix_bookings_room_dates', table_name='bookings')
    op.drop_index('ix_bookings_room_id', table_name='bookings')
    op.drop_table('bookings')
    op.drop_table('rooms')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
