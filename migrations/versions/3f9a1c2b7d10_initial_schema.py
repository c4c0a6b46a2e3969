"""initial schema: households, receipts, quests

Revision ID: 3f9a1c2b7d10
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2b7d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name: str, nullable: bool = False, **kwargs) -> sa.Column:
    return sa.Column(name, sa.Numeric(precision=18, scale=2), nullable=nullable, **kwargs)


def upgrade() -> None:
    """Upgrade schema."""
    # 1. users / households / members
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=150), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'households',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('parent_user_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['parent_user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'household_members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('household_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='Member'),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        _money('monthly_expenditure', server_default='0'),
        _money('lifetime_expenditure', server_default='0'),
        sa.Column('last_expenditure_update', sa.DateTime(), nullable=True),
        sa.Column('xp', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_quest_claimed_at', sa.DateTime(), nullable=True),
        sa.Column('quests_completed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['household_id'], ['households.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('household_id', 'user_id', name='uq_household_member_user'),
    )
    op.create_index('ix_household_members_household_id', 'household_members', ['household_id'])
    op.create_index('ix_household_members_user_id', 'household_members', ['user_id'])

    # 2. budget categories / receipts / expenses
    op.create_table(
        'budget_categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('household_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.ForeignKeyConstraint(['household_id'], ['households.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_budget_categories_household_id', 'budget_categories', ['household_id'])

    op.create_table(
        'receipts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('household_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='REVIEW_REQUIRED'),
        sa.Column('merchant_name', sa.String(length=255), nullable=True),
        sa.Column('receipt_date', sa.DateTime(), nullable=True),
        _money('total_amount', nullable=True),
        sa.Column('uploaded_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['household_id'], ['households.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_receipts_household_id', 'receipts', ['household_id'])

    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('household_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('receipt_id', sa.Integer(), nullable=True),
        _money('amount'),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['household_id'], ['households.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['category_id'], ['budget_categories.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['receipt_id'], ['receipts.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_expenses_household_id', 'expenses', ['household_id'])

    op.create_table(
        'receipt_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('receipt_id', sa.Integer(), nullable=False),
        sa.Column('item_name', sa.String(length=500), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        _money('unit_price', nullable=True),
        _money('total_price'),
        sa.Column('line_number', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_manually_added', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('ocr_confidence', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('quantity >= 1', name='ck_receipt_items_quantity'),
        sa.CheckConstraint('total_price >= 0', name='ck_receipt_items_total_price'),
        sa.ForeignKeyConstraint(['receipt_id'], ['receipts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_receipt_items_receipt_id', 'receipt_items', ['receipt_id'])

    op.create_table(
        'receipt_item_assignments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('receipt_item_id', sa.Integer(), nullable=False),
        sa.Column('household_member_id', sa.Integer(), nullable=False),
        sa.Column('assigned_quantity', sa.Numeric(precision=10, scale=4), nullable=False, server_default='1'),
        _money('base_amount'),
        _money('service_charge_amount', server_default='0'),
        _money('gst_amount', server_default='0'),
        _money('total_amount'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['receipt_item_id'], ['receipt_items.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['household_member_id'], ['household_members.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('receipt_item_id', 'household_member_id', name='uq_assignment_item_member'),
    )
    op.create_index('ix_receipt_item_assignments_receipt_item_id', 'receipt_item_assignments', ['receipt_item_id'])
    op.create_index(
        'ix_receipt_item_assignments_household_member_id', 'receipt_item_assignments', ['household_member_id']
    )

    # 3. quests / badges
    op.create_table(
        'quests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False, server_default='daily'),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('xp_reward', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('target', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('difficulty', sa.String(length=16), nullable=False, server_default='easy'),
        sa.Column('category', sa.String(length=32), nullable=False, server_default='expense'),
        sa.Column('time_limit_seconds', sa.Integer(), nullable=True),
        sa.Column('is_repeatable', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
    )

    op.create_table(
        'member_quests',
        sa.Column('household_member_id', sa.Integer(), nullable=False),
        sa.Column('quest_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='in-progress'),
        sa.Column('progress', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('assigned_at', sa.DateTime(), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('claimed_at', sa.DateTime(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['household_member_id'], ['household_members.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['quest_id'], ['quests.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('household_member_id', 'quest_id'),
    )

    op.create_table(
        'badges',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('icon', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('milestone_kind', sa.String(length=32), nullable=False),
        sa.Column('threshold', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
    )

    op.create_table(
        'member_badges',
        sa.Column('household_member_id', sa.Integer(), nullable=False),
        sa.Column('badge_id', sa.Integer(), nullable=False),
        sa.Column('earned_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['household_member_id'], ['household_members.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['badge_id'], ['badges.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('household_member_id', 'badge_id'),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('member_badges')
    op.drop_table('badges')
    op.drop_table('member_quests')
    op.drop_table('quests')
    op.drop_index('ix_receipt_item_assignments_household_member_id', table_name='receipt_item_assignments')
    op.drop_index('ix_receipt_item_assignments_receipt_item_id', table_name='receipt_item_assignments')
    op.drop_table('receipt_item_assignments')
    op.drop_index('ix_receipt_items_receipt_id', table_name='receipt_items')
    op.drop_table('receipt_items')
    op.drop_index('ix_expenses_household_id', table_name='expenses')
    op.drop_table('expenses')
    op.drop_index('ix_receipts_household_id', table_name='receipts')
    op.drop_table('receipts')
    op.drop_index('ix_budget_categories_household_id', table_name='budget_categories')
    op.drop_table('budget_categories')
    op.drop_index('ix_household_members_user_id', table_name='household_members')
    op.drop_index('ix_household_members_household_id', table_name='household_members')
    op.drop_table('household_members')
    op.drop_table('households')
    op.drop_table('users')
