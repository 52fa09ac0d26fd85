"""initial marketplace schema

Revision ID: 4c1e7a2b9d30
Revises:
Create Date: 2026-09-02 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4c1e7a2b9d30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completed_missions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('wallet_address', sa.String(length=64), nullable=True),
        sa.Column('wallet_secret', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_table(
        'missions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('organization_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('points', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('reward_xrp', sa.Numeric(12, 6), nullable=False, server_default='0'),
        sa.Column('max_participants', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('accepted_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='published'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('max_participants >= 1', name='ck_missions_max_participants'),
        sa.CheckConstraint(
            'accepted_count >= 0 AND accepted_count <= max_participants',
            name='ck_missions_accepted_count',
        ),
    )
    op.create_index('ix_missions_organization_id', 'missions', ['organization_id'])
    op.create_index('ix_missions_status', 'missions', ['status'])

    op.create_table(
        'applications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('mission_id', sa.Integer(), sa.ForeignKey('missions.id'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('message', sa.Text(), nullable=False, server_default=''),
        sa.Column('applied_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('mission_id', 'user_id', name='uq_applications_mission_user'),
    )
    op.create_index('ix_applications_mission_status', 'applications', ['mission_id', 'status'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('from_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('to_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('from_wallet', sa.String(length=64), nullable=True),
        sa.Column('to_wallet', sa.String(length=64), nullable=True),
        sa.Column('amount', sa.Numeric(12, 6), nullable=True),
        sa.Column('currency', sa.String(length=16), nullable=True),
        sa.Column('mission_id', sa.Integer(), sa.ForeignKey('missions.id'), nullable=True),
        sa.Column('tx_ref', sa.String(length=128), nullable=True),
        sa.Column('token_ref', sa.String(length=128), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('description', sa.String(length=512), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_mission', 'transactions', ['mission_id'])
    op.create_index('ix_transactions_to_user', 'transactions', ['to_user_id'])


def downgrade() -> None:
    op.drop_index('ix_transactions_to_user', table_name='transactions')
    op.drop_index('ix_transactions_mission', table_name='transactions')
    op.drop_table('transactions')
    op.drop_index('ix_applications_mission_status', table_name='applications')
    op.drop_table('applications')
    op.drop_index('ix_missions_status', table_name='missions')
    op.drop_index('ix_missions_organization_id', table_name='missions')
    op.drop_table('missions')
    op.drop_table('users')
