"""initial_dues_schema

Revision ID: a1c3e5f7b901
Revises:
Create Date: 2025-01-06 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f7b901'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _payment_columns():
    return [
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', sa.String(30), nullable=False, server_default='pending'),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('reference', sa.String(100), nullable=True),
        sa.Column('confirmed_by', sa.Uuid(), nullable=True),
        sa.Column('rejected_by', sa.Uuid(), nullable=True),
        sa.Column('rejected_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'member_profile',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('full_name', sa.String(200), nullable=False),
        sa.Column('house_no', sa.String(20), nullable=True),
        sa.Column('status', sa.String(8), nullable=False, server_default='pending'),
        sa.Column('joined_on', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'monthly_dues',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('member_id', sa.Uuid(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        *_payment_columns(),
        sa.ForeignKeyConstraint(['member_id'], ['member_profile.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('member_id', 'month', 'year', name='uq_monthly_dues_member_period'),
        sa.CheckConstraint('month BETWEEN 1 AND 12', name='ck_monthly_dues_month'),
    )
    op.create_index('ix_monthly_dues_member_id', 'monthly_dues', ['member_id'])
    op.create_index('idx_monthly_dues_year_status', 'monthly_dues', ['year', 'status'])

    op.create_table(
        'entrance_dues',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('member_id', sa.Uuid(), nullable=False),
        *_payment_columns(),
        sa.ForeignKeyConstraint(['member_id'], ['member_profile.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_entrance_dues_member_id', 'entrance_dues', ['member_id'], unique=True)

    op.create_table(
        'discretionary_entry',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('polarity', sa.String(7), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('entry_date', sa.Date(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('updated_by', sa.Uuid(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('amount > 0', name='ck_discretionary_entry_amount_positive'),
    )
    op.create_index('idx_discretionary_entry_polarity_date', 'discretionary_entry', ['polarity', 'entry_date'])


def downgrade() -> None:
    op.drop_index('idx_discretionary_entry_polarity_date', table_name='discretionary_entry')
    op.drop_table('discretionary_entry')
    op.drop_index('ix_entrance_dues_member_id', table_name='entrance_dues')
    op.drop_table('entrance_dues')
    op.drop_index('idx_monthly_dues_year_status', table_name='monthly_dues')
    op.drop_index('ix_monthly_dues_member_id', table_name='monthly_dues')
    op.drop_table('monthly_dues')
    op.drop_table('member_profile')
