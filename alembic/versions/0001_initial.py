"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # users
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('login', sa.String(length=80), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False, server_default=''),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_worker', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('pay', sa.Float(), nullable=False, server_default='0'),
        sa.Column('percent', sa.Float(), nullable=False, server_default='0'),
        sa.Column('pwd_hash', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('pwd_salt', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('token', sa.String(length=64), nullable=False, server_default=''),
    )
    op.create_index('ix_users_login', 'users', ['login'], unique=True)
    op.create_index('ix_users_token', 'users', ['token'])

    # schedule: a row per (day, worker) actually worked
    op.create_table(
        'schedule',
        sa.Column('day', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('day', 'month', 'year', 'user_id'),
    )
    op.create_index('ix_schedule_year_month', 'schedule', ['year', 'month'])

    # revenue
    op.create_table(
        'revenue',
        sa.Column('day', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('with_percent', sa.Float(), nullable=False, server_default='0'),
        sa.Column('without_percent', sa.Float(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('day', 'month', 'year'),
    )
    op.create_index('ix_revenue_year_month', 'revenue', ['year', 'month'])

    # payouts
    op.create_table(
        'payouts',
        sa.Column('day', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('day', 'month', 'year', 'user_id'),
    )
    op.create_index('ix_payouts_year_month', 'payouts', ['year', 'month'])


def downgrade() -> None:
    op.drop_index('ix_payouts_year_month', table_name='payouts')
    op.drop_table('payouts')
    op.drop_index('ix_revenue_year_month', table_name='revenue')
    op.drop_table('revenue')
    op.drop_index('ix_schedule_year_month', table_name='schedule')
    op.drop_table('schedule')
    op.drop_index('ix_users_token', table_name='users')
    op.drop_index('ix_users_login', table_name='users')
    op.drop_table('users')
