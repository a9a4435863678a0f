"""Create users, events, ticket_types and registrations tables

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

This migration creates the ticketing schema:
- users: accounts with bcrypt hashes and a role
- events: organizer-owned events
- ticket_types: per-event inventory with an optimistic-lock version column
- registrations: ledger entries holding a snapshot of the ticket bought
"""

from alembic import op
import sqlalchemy as sa

from ticketing.db.types import UTCDateTime

# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_ONLY = "status IN ('pending', 'confirmed')"


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column(
            'role',
            sa.Enum('user', 'organizer', name='user_role_enum'),
            nullable=False,
            server_default='user',
        ),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('profile_picture', sa.String(500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', UTCDateTime(), nullable=False),
        sa.Column('updated_at', UTCDateTime(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'events',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('organizer_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('description', sa.String(1000), nullable=False),
        sa.Column('category', sa.String(32), nullable=False),
        sa.Column('venue_name', sa.String(255), nullable=False),
        sa.Column('venue_address', sa.JSON(), nullable=True),
        sa.Column('start_at', UTCDateTime(), nullable=False),
        sa.Column('end_at', UTCDateTime(), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('max_attendees', sa.Integer(), nullable=True),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('created_at', UTCDateTime(), nullable=False),
        sa.Column('updated_at', UTCDateTime(), nullable=False),
    )
    op.create_index('ix_events_organizer_id', 'events', ['organizer_id'])
    op.create_index('ix_events_category', 'events', ['category'])
    op.create_index('ix_events_start_at', 'events', ['start_at'])
    op.create_index('ix_events_status', 'events', ['status'])
    op.create_index('ix_events_created_at', 'events', ['created_at'])

    op.create_table(
        'ticket_types',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column(
            'event_id',
            sa.String(),
            sa.ForeignKey('events.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('sold', sa.Integer(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', UTCDateTime(), nullable=False),
        sa.Column('updated_at', UTCDateTime(), nullable=False),
        sa.UniqueConstraint('event_id', 'name', name='uq_ticket_types_event_name'),
        sa.CheckConstraint('price >= 0', name='ck_ticket_types_price_non_negative'),
        sa.CheckConstraint('quantity >= 1', name='ck_ticket_types_quantity_positive'),
        sa.CheckConstraint('sold >= 0', name='ck_ticket_types_sold_non_negative'),
        sa.CheckConstraint('sold <= quantity', name='ck_ticket_types_sold_within_quantity'),
    )
    op.create_index('ix_ticket_types_event_id', 'ticket_types', ['event_id'])

    op.create_table(
        'registrations',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('attendee_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('event_id', sa.String(), sa.ForeignKey('events.id'), nullable=False),
        sa.Column(
            'ticket_type_id',
            sa.String(),
            sa.ForeignKey('ticket_types.id', ondelete='SET NULL'),
            nullable=True,
        ),

        # Snapshot of the ticket type at registration time
        sa.Column('ticket_name', sa.String(100), nullable=False),
        sa.Column('ticket_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('ticket_quantity', sa.Integer(), nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),

        sa.Column(
            'payment_method',
            sa.Enum(
                'credit_card', 'debit_card', 'paypal', 'bank_transfer', 'cash',
                name='payment_method_enum',
            ),
            nullable=False,
        ),
        sa.Column(
            'status',
            sa.Enum(
                'pending', 'confirmed', 'cancelled', 'refunded',
                name='registration_status_enum',
            ),
            nullable=False,
        ),
        sa.Column(
            'payment_status',
            sa.Enum(
                'pending', 'completed', 'failed', 'refunded',
                name='payment_status_enum',
            ),
            nullable=False,
        ),
        sa.Column('transaction_id', sa.String(), nullable=True, unique=True),
        sa.Column(
            'check_in_status',
            sa.Enum(
                'not_checked_in', 'checked_in', 'no_show',
                name='check_in_status_enum',
            ),
            nullable=False,
        ),
        sa.Column('checked_in_at', UTCDateTime(), nullable=True),
        sa.Column('special_requests', sa.Text(), nullable=True),
        sa.Column('registered_at', UTCDateTime(), nullable=False),
        sa.Column('created_at', UTCDateTime(), nullable=False),
        sa.Column('updated_at', UTCDateTime(), nullable=False),
    )
    op.create_index('ix_registrations_attendee_id', 'registrations', ['attendee_id'])
    op.create_index('ix_registrations_event_id', 'registrations', ['event_id'])
    op.create_index('ix_registrations_status', 'registrations', ['status'])
    op.create_index('ix_registrations_registered_at', 'registrations', ['registered_at'])
    op.create_index(
        'uq_registrations_active_attendee_event',
        'registrations',
        ['attendee_id', 'event_id'],
        unique=True,
        postgresql_where=sa.text(ACTIVE_ONLY),
        sqlite_where=sa.text(ACTIVE_ONLY),
    )


def downgrade() -> None:
    op.drop_index('uq_registrations_active_attendee_event', table_name='registrations')
    op.drop_table('registrations')
    op.drop_table('ticket_types')
    op.drop_table('events')
    op.drop_table('users')

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for enum_name in (
            'check_in_status_enum',
            'payment_status_enum',
            'registration_status_enum',
            'payment_method_enum',
            'user_role_enum',
        ):
            sa.Enum(name=enum_name).drop(bind, checkfirst=True)
