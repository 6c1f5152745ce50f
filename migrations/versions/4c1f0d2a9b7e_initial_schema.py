"""initial schema

Revision ID: 4c1f0d2a9b7e
Revises:
Create Date: 2026-10-19 09:12:31.402118

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c1f0d2a9b7e'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('mobile', sa.String(length=20), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('pay_password_hash', sa.String(length=255), nullable=False),
        sa.Column('balance', sa.Numeric(precision=18, scale=2), server_default=sa.text('0'), nullable=False),
        sa.Column('invitation_code', sa.String(length=12), nullable=False),
        sa.Column('inviter_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('balance >= 0', name='chk_user_balance_non_negative'),
        sa.ForeignKeyConstraint(['inviter_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invitation_code'),
        sa.UniqueConstraint('mobile'),
    )
    op.create_index('ix_users_inviter_id', 'users', ['inviter_id'], unique=False)

    op.create_table(
        'referral_levels',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('referrer_id', sa.Integer(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('level >= 1 AND level <= 3', name='chk_referral_level_range'),
        sa.ForeignKeyConstraint(['referrer_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'level', name='uq_referral_level_user_level'),
        sa.UniqueConstraint('user_id', 'referrer_id', name='uq_referral_level_user_referrer'),
    )
    op.create_index('ix_referral_levels_user_id', 'referral_levels', ['user_id'], unique=False)
    op.create_index('idx_referral_level_referrer_level', 'referral_levels', ['referrer_id', 'level'], unique=False)

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('price', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('daily_return', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('purchase_limit', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('price > 0', name='chk_product_price_positive'),
        sa.CheckConstraint('daily_return >= 0', name='chk_product_return_non_negative'),
        sa.CheckConstraint('duration_days > 0', name='chk_product_duration_positive'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'investments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('daily_return', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('purchased_at', sa.DateTime(), nullable=False),
        sa.Column('last_payout_at', sa.DateTime(), nullable=True),
        sa.Column('next_payout_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('payout_count', sa.Integer(), nullable=False),
        sa.Column('total_paid', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_investments_user_id', 'investments', ['user_id'], unique=False)
    op.create_index('ix_investments_product_id', 'investments', ['product_id'], unique=False)
    op.create_index('idx_investment_status_next_payout', 'investments', ['status', 'next_payout_at'], unique=False)
    op.create_index('idx_investment_user_product', 'investments', ['user_id', 'product_id'], unique=False)

    op.create_table(
        'commissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('beneficiary_id', sa.Integer(), nullable=False),
        sa.Column('source_user_id', sa.Integer(), nullable=True),
        sa.Column('investment_id', sa.Integer(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('rate', sa.Numeric(precision=5, scale=4), nullable=False),
        sa.Column('base_amount', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('amount', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['beneficiary_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['source_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['investment_id'], ['investments.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('investment_id', 'level', name='uq_commission_investment_level'),
    )
    op.create_index('ix_commissions_beneficiary_id', 'commissions', ['beneficiary_id'], unique=False)
    op.create_index('ix_commissions_source_user_id', 'commissions', ['source_user_id'], unique=False)
    op.create_index('idx_commission_beneficiary_created', 'commissions', ['beneficiary_id', 'created_at'], unique=False)

    op.create_table(
        'payout_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('investment_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('periods', sa.Integer(), nullable=False),
        sa.Column('period_start', sa.DateTime(), nullable=False),
        sa.Column('period_end', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['investment_id'], ['investments.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('investment_id', 'period_end', name='uq_payout_investment_period'),
    )
    op.create_index('ix_payout_records_investment_id', 'payout_records', ['investment_id'], unique=False)
    op.create_index('ix_payout_records_user_id', 'payout_records', ['user_id'], unique=False)

    op.create_table(
        'ledger_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('amount', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('balance_after', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('reference', sa.String(length=120), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_ledger_entries_user_id', 'ledger_entries', ['user_id'], unique=False)
    op.create_index('ix_ledger_entries_reference', 'ledger_entries', ['reference'], unique=False)
    op.create_index('idx_ledger_user_created', 'ledger_entries', ['user_id', 'created_at'], unique=False)

    op.create_table(
        'deposit_accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('holder_name', sa.String(length=150), nullable=False),
        sa.Column('bank', sa.String(length=50), nullable=False),
        sa.Column('iban', sa.String(length=34), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('iban'),
    )

    op.create_table(
        'bank_accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('holder_name', sa.String(length=150), nullable=False),
        sa.Column('bank', sa.String(length=50), nullable=False),
        sa.Column('iban', sa.String(length=34), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'iban', name='uq_bank_account_user_iban'),
    )
    op.create_index('ix_bank_accounts_user_id', 'bank_accounts', ['user_id'], unique=False)

    op.create_table(
        'deposits',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('deposit_account_id', sa.Integer(), nullable=True),
        sa.Column('amount', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('payer_name', sa.String(length=150), nullable=True),
        sa.Column('reference', sa.String(length=120), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['deposit_account_id'], ['deposit_accounts.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_deposits_user_id', 'deposits', ['user_id'], unique=False)
    op.create_index('ix_deposits_status', 'deposits', ['status'], unique=False)

    op.create_table(
        'withdrawals',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('bank_account_id', sa.Integer(), nullable=True),
        sa.Column('amount', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('fee', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('net_amount', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['bank_account_id'], ['bank_accounts.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_withdrawals_user_id', 'withdrawals', ['user_id'], unique=False)
    op.create_index('ix_withdrawals_status', 'withdrawals', ['status'], unique=False)

    op.create_table(
        'daily_checkins',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('checkin_date', sa.Date(), nullable=False),
        sa.Column('reward', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'checkin_date', name='uq_daily_checkin_user_date'),
    )

    op.create_table(
        'job_locks',
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('owner', sa.String(length=64), nullable=True),
        sa.Column('locked_until', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('name'),
    )


def downgrade():
    op.drop_table('job_locks')
    op.drop_table('daily_checkins')
    op.drop_index('ix_withdrawals_status', table_name='withdrawals')
    op.drop_index('ix_withdrawals_user_id', table_name='withdrawals')
    op.drop_table('withdrawals')
    op.drop_index('ix_deposits_status', table_name='deposits')
    op.drop_index('ix_deposits_user_id', table_name='deposits')
    op.drop_table('deposits')
    op.drop_index('ix_bank_accounts_user_id', table_name='bank_accounts')
    op.drop_table('bank_accounts')
    op.drop_table('deposit_accounts')
    op.drop_index('idx_ledger_user_created', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_reference', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_user_id', table_name='ledger_entries')
    op.drop_table('ledger_entries')
    op.drop_index('ix_payout_records_user_id', table_name='payout_records')
    op.drop_index('ix_payout_records_investment_id', table_name='payout_records')
    op.drop_table('payout_records')
    op.drop_index('idx_commission_beneficiary_created', table_name='commissions')
    op.drop_index('ix_commissions_source_user_id', table_name='commissions')
    op.drop_index('ix_commissions_beneficiary_id', table_name='commissions')
    op.drop_table('commissions')
    op.drop_index('idx_investment_user_product', table_name='investments')
    op.drop_index('idx_investment_status_next_payout', table_name='investments')
    op.drop_index('ix_investments_product_id', table_name='investments')
    op.drop_index('ix_investments_user_id', table_name='investments')
    op.drop_table('investments')
    op.drop_table('products')
    op.drop_index('idx_referral_level_referrer_level', table_name='referral_levels')
    op.drop_index('ix_referral_levels_user_id', table_name='referral_levels')
    op.drop_table('referral_levels')
    op.drop_index('ix_users_inviter_id', table_name='users')
    op.drop_table('users')
