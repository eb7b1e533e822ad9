"""Create dues ledger tables.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create members, dues configs, dues, payments, transactions and user links."""
    op.create_table(
        'members',
        *_timestamps(),
        sa.Column('organization_id', sa.String(64), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_members_organization_id', 'members', ['organization_id'])
    op.create_index('idx_member_org_active', 'members', ['organization_id', 'is_active'])

    op.create_table(
        'dues_configs',
        *_timestamps(),
        sa.Column('organization_id', sa.String(64), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id'),
    )

    op.create_table(
        'dues',
        *_timestamps(),
        sa.Column('organization_id', sa.String(64), nullable=False),
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'PARTIAL', 'PAID', name='duesstatus'), nullable=False),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('member_id', 'month', 'year', name='uq_dues_member_month_year'),
    )
    op.create_index('ix_dues_organization_id', 'dues', ['organization_id'])
    op.create_index('ix_dues_member_id', 'dues', ['member_id'])
    op.create_index('idx_dues_org_period', 'dues', ['organization_id', 'year', 'month'])

    op.create_table(
        'payments',
        *_timestamps(),
        sa.Column('dues_id', sa.Integer(), nullable=False),
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('method', sa.Enum('CASH', 'TRANSFER', 'E_WALLET', name='paymentmethod'), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_by_id', sa.String(64), nullable=True),
        sa.ForeignKeyConstraint(['dues_id'], ['dues.id'], ),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payments_dues_id', 'payments', ['dues_id'])
    op.create_index('ix_payments_member_id', 'payments', ['member_id'])
    op.create_index('ix_payments_paid_at', 'payments', ['paid_at'])
    op.create_index('idx_payment_dues_paid_at', 'payments', ['dues_id', 'paid_at'])

    op.create_table(
        'transactions',
        *_timestamps(),
        sa.Column('organization_id', sa.String(64), nullable=False),
        sa.Column('type', sa.Enum('INCOME', 'EXPENSE', name='transactiontype'), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_by_id', sa.String(64), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_organization_id', 'transactions', ['organization_id'])
    op.create_index('idx_transaction_org_type', 'transactions', ['organization_id', 'type'])
    op.create_index('idx_transaction_occurred_at', 'transactions', ['occurred_at'])

    op.create_table(
        'user_member_links',
        *_timestamps(),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('organization_id', sa.String(64), nullable=False),
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_member_links_user_id', 'user_member_links', ['user_id'])
    op.create_index(
        'idx_user_member_link_user_org', 'user_member_links', ['user_id', 'organization_id'], unique=True
    )


def downgrade() -> None:
    """Drop all ledger tables."""
    op.drop_table('user_member_links')
    op.drop_table('transactions')
    op.drop_table('payments')
    op.drop_table('dues')
    op.drop_table('dues_configs')
    op.drop_table('members')
    sa.Enum(name='transactiontype').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='paymentmethod').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='duesstatus').drop(op.get_bind(), checkfirst=True)
