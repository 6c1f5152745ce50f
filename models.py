# models.py - Flask-SQLAlchemy models for users, investments and the referral network
import enum
from decimal import Decimal
from sqlalchemy import UniqueConstraint, Index, CheckConstraint, text
from werkzeug.security import check_password_hash, generate_password_hash
from flask_login import UserMixin

from extensions import db
from utils import money, isoformat

# ===========================================================
# ENUM DEFINITIONS
# ===========================================================

class TransactionStatus(enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class InvestmentStatus(enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"


class LedgerType(enum.Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    PURCHASE = "purchase"
    COMMISSION = "commission"
    PAYOUT = "payout"
    CHECKIN = "checkin"
    REFUND = "refund"


MAX_REFERRAL_LEVEL = 3

# ===========================================================
# BASE MIXIN FOR COMMON FIELDS
# ===========================================================

class BaseMixin:
    """Provides created_at and updated_at timestamps to inheriting models."""
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)
    updated_at = db.Column(db.DateTime,
                           default=db.func.now(),
                           onupdate=db.func.now())

# ===========================================================
# USER MODELS
# ===========================================================

class User(db.Model, BaseMixin, UserMixin):
    """Core user entity: one balance, an invitation code and an optional inviter."""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    mobile = db.Column(db.String(20), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    pay_password_hash = db.Column(db.String(255), nullable=False)
    balance = db.Column(db.Numeric(18, 2), nullable=False, default=Decimal("0.00"), server_default=text("0"))
    invitation_code = db.Column(db.String(12), unique=True, nullable=False)
    inviter_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    inviter = db.relationship('User', remote_side=[id], backref='invitees')
    investments = db.relationship('Investment', back_populates='user', lazy='dynamic')

    __table_args__ = (
        CheckConstraint('balance >= 0', name='chk_user_balance_non_negative'),
    )

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def set_pay_password(self, pay_password: str):
        self.pay_password_hash = generate_password_hash(pay_password)

    def check_pay_password(self, pay_password: str) -> bool:
        return check_password_hash(self.pay_password_hash, pay_password)

    def to_public_dict(self):
        return {
            "id": self.id,
            "mobile": self.mobile,
            "invitation_code": self.invitation_code,
            "inviter_id": self.inviter_id,
            "created_at": isoformat(self.created_at),
        }

    def to_dict(self):
        result = self.to_public_dict()
        result.update({
            "balance": money(self.balance),
            "is_active": self.is_active,
        })
        return result

    def __repr__(self):
        return f"<User {self.id} {self.mobile}>"


class ReferralLevel(db.Model):
    """Denormalized upline: one row per (user, ancestor) up to MAX_REFERRAL_LEVEL."""
    __tablename__ = 'referral_levels'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    referrer_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    level = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)

    user = db.relationship('User', foreign_keys=[user_id])
    referrer = db.relationship('User', foreign_keys=[referrer_id])

    __table_args__ = (
        UniqueConstraint('user_id', 'level', name='uq_referral_level_user_level'),
        UniqueConstraint('user_id', 'referrer_id', name='uq_referral_level_user_referrer'),
        CheckConstraint(f'level >= 1 AND level <= {MAX_REFERRAL_LEVEL}', name='chk_referral_level_range'),
        Index('idx_referral_level_referrer_level', 'referrer_id', 'level'),
    )

# ===========================================================
# PRODUCTS & INVESTMENTS
# ===========================================================

class Product(db.Model, BaseMixin):
    __tablename__ = 'products'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    price = db.Column(db.Numeric(18, 2), nullable=False)
    daily_return = db.Column(db.Numeric(18, 2), nullable=False)
    duration_days = db.Column(db.Integer, nullable=False, default=30)
    purchase_limit = db.Column(db.Integer, nullable=True)  # None = unlimited
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint('price > 0', name='chk_product_price_positive'),
        CheckConstraint('daily_return >= 0', name='chk_product_return_non_negative'),
        CheckConstraint('duration_days > 0', name='chk_product_duration_positive'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "price": money(self.price),
            "daily_return": money(self.daily_return),
            "duration_days": self.duration_days,
            "total_return": money(self.daily_return * self.duration_days),
            "purchase_limit": self.purchase_limit,
            "is_active": self.is_active,
        }


class Investment(db.Model, BaseMixin):
    """A purchased product; accrues daily_return every payout interval until expires_at."""
    __tablename__ = 'investments'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id', ondelete='RESTRICT'), nullable=False, index=True)
    amount = db.Column(db.Numeric(18, 2), nullable=False)
    daily_return = db.Column(db.Numeric(18, 2), nullable=False)
    purchased_at = db.Column(db.DateTime, nullable=False)
    last_payout_at = db.Column(db.DateTime, nullable=True)
    next_payout_at = db.Column(db.DateTime, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    payout_count = db.Column(db.Integer, nullable=False, default=0)
    total_paid = db.Column(db.Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    status = db.Column(db.String(20), nullable=False, default=InvestmentStatus.ACTIVE.value)

    user = db.relationship('User', back_populates='investments')
    product = db.relationship('Product')

    __table_args__ = (
        Index('idx_investment_status_next_payout', 'status', 'next_payout_at'),
        Index('idx_investment_user_product', 'user_id', 'product_id'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "amount": money(self.amount),
            "daily_return": money(self.daily_return),
            "purchased_at": isoformat(self.purchased_at),
            "last_payout_at": isoformat(self.last_payout_at),
            "next_payout_at": isoformat(self.next_payout_at),
            "expires_at": isoformat(self.expires_at),
            "payout_count": self.payout_count,
            "total_paid": money(self.total_paid),
            "status": self.status,
        }

# ===========================================================
# COMMISSIONS & PAYOUTS
# ===========================================================

class Commission(db.Model):
    """Audit row for one referral credit; at most one per (investment, level)."""
    __tablename__ = 'commissions'

    id = db.Column(db.Integer, primary_key=True)
    beneficiary_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    source_user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)
    investment_id = db.Column(db.Integer, db.ForeignKey('investments.id', ondelete='CASCADE'), nullable=False)
    level = db.Column(db.Integer, nullable=False)
    rate = db.Column(db.Numeric(5, 4), nullable=False)
    base_amount = db.Column(db.Numeric(18, 2), nullable=False)
    amount = db.Column(db.Numeric(18, 2), nullable=False)
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)

    beneficiary = db.relationship('User', foreign_keys=[beneficiary_id])
    source_user = db.relationship('User', foreign_keys=[source_user_id])

    __table_args__ = (
        UniqueConstraint('investment_id', 'level', name='uq_commission_investment_level'),
        Index('idx_commission_beneficiary_created', 'beneficiary_id', 'created_at'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "level": self.level,
            "rate": float(self.rate),
            "base_amount": money(self.base_amount),
            "amount": money(self.amount),
            "source_user_id": self.source_user_id,
            "source_mobile": self.source_user.mobile if self.source_user else None,
            "investment_id": self.investment_id,
            "created_at": isoformat(self.created_at),
        }


class PayoutRecord(db.Model):
    __tablename__ = 'payout_records'

    id = db.Column(db.Integer, primary_key=True)
    investment_id = db.Column(db.Integer, db.ForeignKey('investments.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    amount = db.Column(db.Numeric(18, 2), nullable=False)
    periods = db.Column(db.Integer, nullable=False)
    period_start = db.Column(db.DateTime, nullable=False)
    period_end = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('investment_id', 'period_end', name='uq_payout_investment_period'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "investment_id": self.investment_id,
            "amount": money(self.amount),
            "periods": self.periods,
            "period_start": isoformat(self.period_start),
            "period_end": isoformat(self.period_end),
            "created_at": isoformat(self.created_at),
        }


class LedgerEntry(db.Model):
    """One row per balance mutation; amount is signed."""
    __tablename__ = 'ledger_entries'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False)
    amount = db.Column(db.Numeric(18, 2), nullable=False)
    balance_after = db.Column(db.Numeric(18, 2), nullable=False)
    description = db.Column(db.String(255))
    reference = db.Column(db.String(120), index=True)
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)

    __table_args__ = (
        Index('idx_ledger_user_created', 'user_id', 'created_at'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "amount": money(self.amount),
            "balance_after": money(self.balance_after),
            "description": self.description,
            "reference": self.reference,
            "created_at": isoformat(self.created_at),
        }

# ===========================================================
# DEPOSITS & WITHDRAWALS
# ===========================================================

class DepositAccount(db.Model, BaseMixin):
    """Company bank account that receives user deposits."""
    __tablename__ = 'deposit_accounts'

    id = db.Column(db.Integer, primary_key=True)
    holder_name = db.Column(db.String(150), nullable=False)
    bank = db.Column(db.String(50), nullable=False)
    iban = db.Column(db.String(34), unique=True, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self):
        return {
            "id": self.id,
            "holder_name": self.holder_name,
            "bank": self.bank,
            "iban": self.iban,
        }


class BankAccount(db.Model, BaseMixin):
    """User bank account used as a withdrawal destination."""
    __tablename__ = 'bank_accounts'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    holder_name = db.Column(db.String(150), nullable=False)
    bank = db.Column(db.String(50), nullable=False)
    iban = db.Column(db.String(34), nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'iban', name='uq_bank_account_user_iban'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "holder_name": self.holder_name,
            "bank": self.bank,
            "iban": self.iban,
            "created_at": isoformat(self.created_at),
        }


class Deposit(db.Model, BaseMixin):
    __tablename__ = 'deposits'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    deposit_account_id = db.Column(db.Integer, db.ForeignKey('deposit_accounts.id', ondelete='SET NULL'), nullable=True)
    amount = db.Column(db.Numeric(18, 2), nullable=False)
    payer_name = db.Column(db.String(150))
    reference = db.Column(db.String(120))
    status = db.Column(db.String(20), nullable=False, default=TransactionStatus.PENDING.value, index=True)
    processed_at = db.Column(db.DateTime, nullable=True)
    note = db.Column(db.String(255))

    user = db.relationship('User')
    deposit_account = db.relationship('DepositAccount')

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "amount": money(self.amount),
            "deposit_account": self.deposit_account.to_dict() if self.deposit_account else None,
            "payer_name": self.payer_name,
            "reference": self.reference,
            "status": self.status,
            "note": self.note,
            "created_at": isoformat(self.created_at),
            "processed_at": isoformat(self.processed_at),
        }


class Withdrawal(db.Model, BaseMixin):
    __tablename__ = 'withdrawals'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    bank_account_id = db.Column(db.Integer, db.ForeignKey('bank_accounts.id', ondelete='SET NULL'), nullable=True)
    amount = db.Column(db.Numeric(18, 2), nullable=False)
    fee = db.Column(db.Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    net_amount = db.Column(db.Numeric(18, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=TransactionStatus.PENDING.value, index=True)
    processed_at = db.Column(db.DateTime, nullable=True)
    note = db.Column(db.String(255))

    user = db.relationship('User')
    bank_account = db.relationship('BankAccount')

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "amount": money(self.amount),
            "fee": money(self.fee),
            "net_amount": money(self.net_amount),
            "bank_account": self.bank_account.to_dict() if self.bank_account else None,
            "status": self.status,
            "note": self.note,
            "created_at": isoformat(self.created_at),
            "processed_at": isoformat(self.processed_at),
        }

# ===========================================================
# DAILY CHECK-IN & JOB LOCKS
# ===========================================================

class DailyCheckin(db.Model):
    __tablename__ = 'daily_checkins'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    checkin_date = db.Column(db.Date, nullable=False)
    reward = db.Column(db.Numeric(18, 2), nullable=False)
    created_at = db.Column(db.DateTime, default=db.func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'checkin_date', name='uq_daily_checkin_user_date'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "checkin_date": self.checkin_date.isoformat(),
            "reward": money(self.reward),
            "created_at": isoformat(self.created_at),
        }


class JobLock(db.Model):
    """Lease lock shared by every process that can run a batch job."""
    __tablename__ = 'job_locks'

    name = db.Column(db.String(64), primary_key=True)
    owner = db.Column(db.String(64), nullable=True)
    locked_until = db.Column(db.DateTime, nullable=True)
