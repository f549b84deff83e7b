"""Initial event scheduler schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2025-06-01

Creates the profiles, events, event_profiles and event_update_logs tables:
- profiles: scheduling participants (soft delete through is_active)
- events: UTC time ranges with an optimistic-lock revision counter
- event_profiles: ordered event/profile assignment (position column)
- event_update_logs: append-only audit trail, unique per (event_id, sequence)

UUID columns use PostgreSQL's native UUID type and 16-byte binaries on SQLite.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def uuid_column() -> sa.Column:
    return sa.Column(
        'uuid',
        postgresql.UUID(as_uuid=True).with_variant(sa.LargeBinary(16), 'sqlite'),
        nullable=False
    )


def upgrade() -> None:
    """
    Create all event scheduler tables.

    Tables:
    - profiles
    - events (FK created_by_id -> profiles.id, RESTRICT)
    - event_profiles (FK event_id CASCADE, profile_id RESTRICT)
    - event_update_logs (FK event_id CASCADE, updated_by_id RESTRICT)
    """
    op.create_table(
        'profiles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        uuid_column(),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('timezone', sa.String(length=64), nullable=False, server_default='UTC'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_profiles_uuid', 'profiles', ['uuid'], unique=True)
    op.create_index('idx_profiles_name_active', 'profiles', ['name', 'is_active'])

    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        uuid_column(),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('timezone', sa.String(length=64), nullable=False, server_default='UTC'),
        sa.Column('start_date_time', sa.DateTime(), nullable=False),
        sa.Column('end_date_time', sa.DateTime(), nullable=False),
        sa.Column('created_by_id', sa.Integer(), nullable=False),
        sa.Column('revision', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['created_by_id'], ['profiles.id'], ondelete='RESTRICT')
    )
    op.create_index('ix_events_uuid', 'events', ['uuid'], unique=True)
    op.create_index('ix_events_start_date_time', 'events', ['start_date_time'])
    op.create_index('ix_events_created_by_id', 'events', ['created_by_id'])

    op.create_table(
        'event_profiles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id'], ondelete='RESTRICT'),
        sa.UniqueConstraint('event_id', 'profile_id', name='uq_event_profile')
    )
    op.create_index('ix_event_profiles_event_id', 'event_profiles', ['event_id'])
    op.create_index('ix_event_profiles_profile_id', 'event_profiles', ['profile_id'])
    op.create_index('idx_event_profiles_profile_event', 'event_profiles', ['profile_id', 'event_id'])

    op.create_table(
        'event_update_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        uuid_column(),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('updated_by_id', sa.Integer(), nullable=False),
        sa.Column(
            'changes',
            postgresql.JSONB(astext_type=sa.Text()).with_variant(sa.JSON(), 'sqlite'),
            nullable=False
        ),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['updated_by_id'], ['profiles.id'], ondelete='RESTRICT'),
        sa.UniqueConstraint('event_id', 'sequence', name='uq_event_update_log_sequence')
    )
    op.create_index('ix_event_update_logs_uuid', 'event_update_logs', ['uuid'], unique=True)
    op.create_index('ix_event_update_logs_event_id', 'event_update_logs', ['event_id'])
    op.create_index('ix_event_update_logs_updated_by_id', 'event_update_logs', ['updated_by_id'])


def downgrade() -> None:
    """Drop all event scheduler tables (reverse dependency order)."""
    op.drop_index('ix_event_update_logs_updated_by_id', table_name='event_update_logs')
    op.drop_index('ix_event_update_logs_event_id', table_name='event_update_logs')
    op.drop_index('ix_event_update_logs_uuid', table_name='event_update_logs')
    op.drop_table('event_update_logs')

    op.drop_index('idx_event_profiles_profile_event', table_name='event_profiles')
    op.drop_index('ix_event_profiles_profile_id', table_name='event_profiles')
    op.drop_index('ix_event_profiles_event_id', table_name='event_profiles')
    op.drop_table('event_profiles')

    op.drop_index('ix_events_created_by_id', table_name='events')
    op.drop_index('ix_events_start_date_time', table_name='events')
    op.drop_index('ix_events_uuid', table_name='events')
    op.drop_table('events')

    op.drop_index('idx_profiles_name_active', table_name='profiles')
    op.drop_index('ix_profiles_uuid', table_name='profiles')
    op.drop_table('profiles')
