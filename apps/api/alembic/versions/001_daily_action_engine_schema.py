"""daily action engine schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Catalog
    op.create_table(
        'action',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('benefit', sa.Text(), nullable=True),
        sa.Column('category', sa.Text(), nullable=False),
        sa.Column('theme', sa.Text(), nullable=True),
        sa.Column('country', sa.String(8), nullable=True),
        sa.Column('seasonal_start_date', sa.Date(), nullable=True),
        sa.Column('seasonal_end_date', sa.Date(), nullable=True),
        sa.Column('household_tags', sa.JSON(none_as_null=True), nullable=True),
        sa.Column('planning_required', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('activity_type', sa.Text(), nullable=True),
    )
    op.create_index('ix_action_category', 'action', ['category'])

    op.create_table(
        'badge',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('requirement_type', sa.Text(), nullable=False),
        sa.Column('requirement_value', sa.Integer(), nullable=True),
        sa.Column('category', sa.Text(), nullable=True),
    )

    op.create_table(
        'program',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('duration_days', sa.Integer(), server_default='7', nullable=False),
    )

    op.create_table(
        'program_action',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('program_id', sa.String(64), nullable=False),
        sa.Column('day_number', sa.Integer(), nullable=False),
        sa.Column('action_id', sa.String(64), nullable=False),
        sa.ForeignKeyConstraint(['program_id'], ['program.id'], ),
        sa.ForeignKeyConstraint(['action_id'], ['action.id'], ),
        sa.UniqueConstraint('program_id', 'day_number', name='uq_program_action_day'),
    )

    # Users and their signals
    op.create_table(
        'user_profile',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('has_kids', sa.Boolean(), nullable=True),
        sa.Column('kids_live_with_you', sa.Boolean(), nullable=True),
        sa.Column('country', sa.String(8), nullable=True),
        sa.Column('subscription_tier', sa.Text(), server_default='free', nullable=False),
        sa.Column('baseline_health', sa.Float(), nullable=True),
    )

    op.create_table(
        'category_survey',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('user_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('category', sa.Text(), nullable=False),
        sa.Column('self_rating', sa.Integer(), nullable=True),
        sa.Column('wants_improvement', sa.Boolean(), nullable=True),
        sa.Column('legacy_score', sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['user_profile.id'], ),
        sa.UniqueConstraint('user_id', 'category', name='uq_category_survey_user_category'),
        sa.CheckConstraint('self_rating IS NULL OR (self_rating BETWEEN 1 AND 5)', name='ck_category_survey_self_rating'),
    )

    op.create_table(
        'user_category_preference',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('user_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('category', sa.Text(), nullable=False),
        sa.Column('preference_weight', sa.Float(), server_default='0', nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['user_profile.id'], ),
        sa.UniqueConstraint('user_id', 'category', name='uq_user_category_preference'),
    )

    op.create_table(
        'user_hidden_action',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('user_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('action_id', sa.String(64), nullable=False),
        sa.Column('hidden_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user_profile.id'], ),
        sa.ForeignKeyConstraint(['action_id'], ['action.id'], ),
        sa.UniqueConstraint('user_id', 'action_id', name='uq_user_hidden_action'),
    )

    # Programs joined
    op.create_table(
        'user_program',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('user_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('program_id', sa.String(64), nullable=False),
        sa.Column('joined_date', sa.Date(), nullable=False),
        sa.Column('completed_days', sa.Integer(), server_default='0', nullable=False),
        sa.Column('completed', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user_profile.id'], ),
        sa.ForeignKeyConstraint(['program_id'], ['program.id'], ),
        sa.UniqueConstraint('user_id', 'program_id', name='uq_user_program_user_program'),
    )
    op.create_index('ix_user_program_user_id', 'user_program', ['user_id'])

    # Daily assignments: one per (user, date). Calendar export and email read this shape.
    op.create_table(
        'user_daily_action',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('user_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('action_id', sa.String(64), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('completed', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('favorited', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('dnc', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('source', sa.Text(), server_default='auto', nullable=False),
        sa.Column('program_enrollment_id', sa.Uuid(as_uuid=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['user_profile.id'], ),
        sa.ForeignKeyConstraint(['action_id'], ['action.id'], ),
        sa.ForeignKeyConstraint(['program_enrollment_id'], ['user_program.id'], ),
        sa.UniqueConstraint('user_id', 'date', name='uq_user_daily_action_user_date'),
    )
    op.create_index('ix_user_daily_action_date', 'user_daily_action', ['date'])

    op.create_table(
        'health_decay_log',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('user_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('missed_date', sa.Date(), nullable=False),
        sa.Column('decay_applied', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user_profile.id'], ),
        sa.UniqueConstraint('user_id', 'missed_date', name='uq_health_decay_log_user_date'),
    )

    op.create_table(
        'user_badge',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('user_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('badge_id', sa.String(64), nullable=False),
        sa.Column('earned_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user_profile.id'], ),
        sa.ForeignKeyConstraint(['badge_id'], ['badge.id'], ),
        sa.UniqueConstraint('user_id', 'badge_id', name='uq_user_badge'),
    )


def downgrade() -> None:
    op.drop_table('user_badge')
    op.drop_table('health_decay_log')
    op.drop_index('ix_user_daily_action_date', table_name='user_daily_action')
    op.drop_table('user_daily_action')
    op.drop_index('ix_user_program_user_id', table_name='user_program')
    op.drop_table('user_program')
    op.drop_table('user_hidden_action')
    op.drop_table('user_category_preference')
    op.drop_table('category_survey')
    op.drop_table('user_profile')
    op.drop_table('program_action')
    op.drop_table('program')
    op.drop_table('badge')
    op.drop_index('ix_action_category', table_name='action')
    op.drop_table('action')
