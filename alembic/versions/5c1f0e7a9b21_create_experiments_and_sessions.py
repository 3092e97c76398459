"""create_experiments_and_sessions

Revision ID: 5c1f0e7a9b21
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '5c1f0e7a9b21'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

EXPERIMENT_STATUSES = ('DRAFT', 'RUNNING', 'PAUSED', 'COMPLETED', 'STOPPED')
DEVICE_TYPES = ('DESKTOP', 'MOBILE', 'TABLET', 'OTHER')


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create experiments, experiment_variations and sessions."""
    op.create_table(
        'experiments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('hypothesis', sa.Text(), nullable=False),
        sa.Column('metrics', postgresql.JSONB(), nullable=False),
        sa.Column('primary_metric', sa.String(length=255), nullable=True),
        sa.Column('significance_level', sa.Float(), nullable=False),
        sa.Column('minimum_detectable_effect', sa.Float(), nullable=False),
        sa.Column('minimum_sample_size', sa.Integer(), nullable=True),
        sa.Column('status', sa.Enum(*EXPERIMENT_STATUSES, name='experiment_status'), nullable=False),
        sa.Column('winner_id', sa.Uuid(), nullable=True),
        sa.Column('results', postgresql.JSONB(), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('target_filters', postgresql.JSONB(), nullable=False),
        sa.Column('target_percentage', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            'significance_level >= 0.8 AND significance_level <= 0.99',
            name=op.f('ck_experiments_significance_level_range'),
        ),
        sa.CheckConstraint(
            'target_percentage >= 0 AND target_percentage <= 100',
            name=op.f('ck_experiments_target_percentage_range'),
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_experiments')),
    )
    op.create_index(op.f('ix_experiments_created_by'), 'experiments', ['created_by'])
    op.create_index('ix_experiments_status_start_date', 'experiments', ['status', 'start_date'])
    op.create_index(
        'ix_experiments_created_by_created_at',
        'experiments',
        ['created_by', sa.text('created_at DESC')],
    )

    op.create_table(
        'experiment_variations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('experiment_id', sa.Uuid(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('configuration', postgresql.JSONB(), nullable=False),
        sa.Column('weight', sa.Float(), nullable=False),
        sa.Column('participants', sa.Integer(), nullable=False),
        sa.Column('conversions', sa.Integer(), nullable=False),
        sa.Column('revenue', sa.Float(), nullable=False),
        sa.Column('metrics', postgresql.JSONB(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('weight >= 0 AND weight <= 1', name=op.f('ck_experiment_variations_weight_range')),
        sa.CheckConstraint('participants >= 0', name=op.f('ck_experiment_variations_participants_non_negative')),
        sa.CheckConstraint('conversions >= 0', name=op.f('ck_experiment_variations_conversions_non_negative')),
        sa.ForeignKeyConstraint(
            ['experiment_id'],
            ['experiments.id'],
            name=op.f('fk_experiment_variations_experiment_id_experiments'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_experiment_variations')),
    )
    op.create_index(
        op.f('ix_experiment_variations_experiment_id'),
        'experiment_variations',
        ['experiment_id'],
    )

    op.create_table(
        'sessions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('session_id', sa.String(length=255), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('device_type', sa.Enum(*DEVICE_TYPES, name='device_type'), nullable=False),
        sa.Column('device_brand', sa.String(length=100), nullable=True),
        sa.Column('device_model', sa.String(length=100), nullable=True),
        sa.Column('device_os', sa.String(length=100), nullable=True),
        sa.Column('device_os_version', sa.String(length=50), nullable=True),
        sa.Column('device_browser', sa.String(length=100), nullable=True),
        sa.Column('device_browser_version', sa.String(length=50), nullable=True),
        sa.Column('device_screen_resolution', sa.String(length=50), nullable=True),
        sa.Column('device_language', sa.String(length=35), nullable=True),
        sa.Column('location_country', sa.String(length=100), nullable=True),
        sa.Column('location_region', sa.String(length=100), nullable=True),
        sa.Column('location_city', sa.String(length=100), nullable=True),
        sa.Column('location_latitude', sa.Float(), nullable=True),
        sa.Column('location_longitude', sa.Float(), nullable=True),
        sa.Column('location_timezone', sa.String(length=64), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('page_count', sa.Integer(), nullable=False),
        sa.Column('event_count', sa.Integer(), nullable=False),
        sa.Column('engaged', sa.Boolean(), nullable=False),
        sa.Column('engagement_score', sa.Float(), nullable=False),
        sa.Column('conversions', sa.Integer(), nullable=False),
        sa.Column('revenue', sa.Float(), nullable=False),
        sa.Column('entry_page', sa.String(length=2048), nullable=True),
        sa.Column('exit_page', sa.String(length=2048), nullable=True),
        sa.Column('source', sa.String(length=255), nullable=True),
        sa.Column('medium', sa.String(length=255), nullable=True),
        sa.Column('campaign', sa.String(length=255), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_sessions')),
        sa.UniqueConstraint('session_id', name=op.f('uq_sessions_session_id')),
    )
    op.create_index(op.f('ix_sessions_user_id'), 'sessions', ['user_id'])
    op.create_index(op.f('ix_sessions_start_time'), 'sessions', ['start_time'])
    op.create_index('ix_sessions_start_time_desc', 'sessions', [sa.text('start_time DESC')])
    op.create_index(
        'ix_sessions_user_start_time',
        'sessions',
        ['user_id', sa.text('start_time DESC')],
    )


def downgrade() -> None:
    """Drop experiments, experiment_variations and sessions."""
    op.drop_index('ix_sessions_user_start_time', table_name='sessions')
    op.drop_index('ix_sessions_start_time_desc', table_name='sessions')
    op.drop_index(op.f('ix_sessions_start_time'), table_name='sessions')
    op.drop_index(op.f('ix_sessions_user_id'), table_name='sessions')
    op.drop_table('sessions')

    op.drop_index(op.f('ix_experiment_variations_experiment_id'), table_name='experiment_variations')
    op.drop_table('experiment_variations')

    op.drop_index('ix_experiments_created_by_created_at', table_name='experiments')
    op.drop_index('ix_experiments_status_start_date', table_name='experiments')
    op.drop_index(op.f('ix_experiments_created_by'), table_name='experiments')
    op.drop_table('experiments')

    sa.Enum(name='device_type').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='experiment_status').drop(op.get_bind(), checkfirst=True)
