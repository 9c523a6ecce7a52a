"""initial game schema: users, daily scores, channels, reward claims, meta

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.engine import Connection


revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _has_table(conn: Connection, table_name: str) -> bool:
    return sa.inspect(conn).has_table(table_name)


def _has_index(conn: Connection, table_name: str, index_name: str) -> bool:
    if not _has_table(conn, table_name):
        return False
    return any(ix['name'] == index_name for ix in sa.inspect(conn).get_indexes(table_name))


def upgrade() -> None:
    conn = op.get_bind()

    if not _has_table(conn, 'users'):
        op.create_table(
            'users',
            sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=False),
            sa.Column('display_name', sa.String(length=255), nullable=True),
            sa.Column('tokens', sa.BigInteger(), nullable=False, server_default=sa.text('0')),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column('referrer_id', sa.BigInteger(), nullable=True),
            sa.Column('referral_confirmed', sa.Boolean(), nullable=False, server_default=sa.false()),
        )

    if not _has_index(conn, 'users', 'ix_users_referrer_id'):
        op.create_index('ix_users_referrer_id', 'users', ['referrer_id'])

    if not _has_table(conn, 'daily_scores'):
        op.create_table(
            'daily_scores',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
            sa.Column('day', sa.Date(), nullable=False),
            sa.Column('score', sa.Integer(), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.UniqueConstraint('user_id', 'day', name='uq_daily_scores_user_day'),
        )

    if not _has_index(conn, 'daily_scores', 'ix_daily_scores_day_score'):
        op.create_index('ix_daily_scores_day_score', 'daily_scores', ['day', 'score'])

    if not _has_table(conn, 'channels'):
        op.create_table(
            'channels',
            sa.Column('username', sa.String(length=255), primary_key=True),
            sa.Column('reward', sa.Integer(), nullable=False, server_default=sa.text('700')),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )

    if not _has_table(conn, 'reward_claims'):
        op.create_table(
            'reward_claims',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
            sa.Column('claim_type', sa.String(length=20), nullable=False),
            sa.Column('claim_key', sa.String(length=255), nullable=True),
            sa.Column('payload', sa.JSON(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.UniqueConstraint('user_id', 'claim_type', 'claim_key', name='uq_reward_claims_user_type_key'),
        )

    if not _has_index(conn, 'reward_claims', 'ix_reward_claims_user_type'):
        op.create_index('ix_reward_claims_user_type', 'reward_claims', ['user_id', 'claim_type'])

    if not _has_table(conn, 'meta'):
        op.create_table(
            'meta',
            sa.Column('key', sa.String(length=100), primary_key=True),
            sa.Column('value', sa.Text(), nullable=True),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )


def downgrade() -> None:
    conn = op.get_bind()

    if _has_table(conn, 'meta'):
        op.drop_table('meta')

    if _has_table(conn, 'reward_claims'):
        if _has_index(conn, 'reward_claims', 'ix_reward_claims_user_type'):
            op.drop_index('ix_reward_claims_user_type', table_name='reward_claims')
        op.drop_table('reward_claims')

    if _has_table(conn, 'channels'):
        op.drop_table('channels')

    if _has_table(conn, 'daily_scores'):
        if _has_index(conn, 'daily_scores', 'ix_daily_scores_day_score'):
            op.drop_index('ix_daily_scores_day_score', table_name='daily_scores')
        op.drop_table('daily_scores')

    if _has_table(conn, 'users'):
        if _has_index(conn, 'users', 'ix_users_referrer_id'):
            op.drop_index('ix_users_referrer_id', table_name='users')
        op.drop_table('users')
