"""create_users_and_time_entries

Revision ID: 4f2a9c1d7e10
Revises:
Create Date: 2025-12-02 19:58:36.574450

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f2a9c1d7e10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('company_code', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('timezone', sa.String(length=64), nullable=False, server_default='UTC'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_company_code', 'users', ['company_code'])

    op.create_table(
        'time_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('company_code', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('project', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('summary', sa.Text(), nullable=False, server_default=''),
        # Naive UTC
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        # Weekly rule JSON; until/exception dates stored as YYYY-MM-DD strings
        sa.Column('recurrence', sa.JSON(), nullable=True),
        sa.Column('guest_ids', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_time_entries_id', 'time_entries', ['id'])
    op.create_index('ix_time_entries_company_code', 'time_entries', ['company_code'])


def downgrade() -> None:
    op.drop_index('ix_time_entries_company_code', table_name='time_entries')
    op.drop_index('ix_time_entries_id', table_name='time_entries')
    op.drop_table('time_entries')
    op.drop_index('ix_users_company_code', table_name='users')
    op.drop_index('ix_users_id', table_name='users')
    op.drop_table('users')
