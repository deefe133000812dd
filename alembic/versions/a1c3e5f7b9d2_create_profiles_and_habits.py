"""create profiles and habits tables

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f7b9d2'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


habit_type = sa.Enum('POSITIVE', 'NEGATIVE', name='habittype')
target_period = sa.Enum('DAILY', 'WEEKLY', 'MONTHLY', name='targetperiod')


def upgrade() -> None:
    op.create_table(
        'profiles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('global_xp', sa.Integer(), nullable=False),
        sa.Column('last_consolidated', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'habits',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('icon', sa.String(length=16), nullable=False),
        sa.Column('habit_type', habit_type, nullable=False),
        sa.Column('target_period', target_period, nullable=False),
        sa.Column('target_count', sa.Integer(), nullable=False),
        sa.Column('streak', sa.Integer(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('last_completed', sa.Date(), nullable=True),
        sa.Column('completion_history', sa.JSON(), nullable=False),
        sa.Column('has_timer', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_habits_user_id'), 'habits', ['user_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_habits_user_id'), table_name='habits')
    op.drop_table('habits')
    op.drop_table('profiles')
    habit_type.drop(op.get_bind(), checkfirst=True)
    target_period.drop(op.get_bind(), checkfirst=True)
