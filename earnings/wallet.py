from decimal import Decimal, ROUND_DOWN
import logging
from typing import Dict, Any, List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import (User, Deposit, DepositAccount, Withdrawal, BankAccount,
                    TransactionStatus, LedgerType)
from earnings import ledger
from errors import (ValidationError, NotFoundError, ConflictError,
                    PermissionDeniedError)
from utils import utcnow, quantize_money, normalize_iban, validate_iban

logger = logging.getLogger(__name__)

# ==========================================================
#                  CONFIGURATION
# ==========================================================
class WithdrawalConfig:
    """Limits read from the app config at call time."""

    @staticmethod
    def min_withdrawal() -> Decimal:
        return Decimal(current_app.config["WITHDRAWAL_MIN"])

    @staticmethod
    def max_withdrawal() -> Decimal:
        return Decimal(current_app.config["WITHDRAWAL_MAX"])

    @staticmethod
    def calculate_fee(amount: Decimal) -> Decimal:
        """Calculate processing fee"""
        percent = Decimal(current_app.config["WITHDRAWAL_FEE_PERCENT"])
        fee = (amount * percent) / Decimal("100")
        return fee.quantize(Decimal('0.01'), rounding=ROUND_DOWN)


def _currency() -> str:
    return current_app.config.get("CURRENCY", "AOA")


def _require_active_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    if not user.is_active:
        raise PermissionDeniedError("Account is inactive")
    return user

# ==========================================================
#                  BANK ACCOUNTS
# ==========================================================
def list_deposit_accounts() -> List[DepositAccount]:
    return (DepositAccount.query
            .filter_by(is_active=True)
            .order_by(DepositAccount.id.asc())
            .all())


def add_deposit_account(holder_name: str, bank: str, iban: str) -> DepositAccount:
    """Register a company account that receives deposits (CLI seeding)."""
    iban = normalize_iban(iban)
    if not holder_name or not bank:
        raise ValidationError("holder_name and bank are required")
    if not validate_iban(iban):
        raise ValidationError("Invalid IBAN")

    account = DepositAccount.query.filter_by(iban=iban).first()
    if account:
        account.holder_name = holder_name
        account.bank = bank
        account.is_active = True
    else:
        account = DepositAccount(holder_name=holder_name, bank=bank, iban=iban)
        db.session.add(account)
    db.session.commit()
    logger.info(f"Deposit account {account.id} ({bank} {iban}) is active")
    return account


def list_bank_accounts(user_id: int) -> List[BankAccount]:
    return (BankAccount.query
            .filter_by(user_id=user_id)
            .order_by(BankAccount.created_at.asc(), BankAccount.id.asc())
            .all())


def add_bank_account(user_id: int, holder_name: str, bank: str, iban: str) -> BankAccount:
    holder_name = (holder_name or "").strip()
    bank = (bank or "").strip()
    iban = normalize_iban(iban)

    if not holder_name or not bank or not iban:
        raise ValidationError("holder_name, bank and iban are required")
    if not validate_iban(iban):
        raise ValidationError("Invalid IBAN")
    _require_active_user(user_id)

    account = BankAccount(user_id=user_id, holder_name=holder_name, bank=bank, iban=iban)
    db.session.add(account)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("This bank account is already registered")

    logger.info(f"User {user_id} added bank account {account.id}")
    return account

# ==========================================================
#                  DEPOSITS
# ==========================================================
def create_deposit(user_id: int, amount: Decimal, deposit_account_id: int,
                   payer_name: str = None, reference: str = None) -> Deposit:
    """Record a bank transfer announced by the user; credited only on approval."""
    minimum = Decimal(current_app.config["DEPOSIT_MIN"])
    if amount < minimum:
        raise ValidationError(f"Minimum deposit is {minimum} {_currency()}")

    _require_active_user(user_id)
    account = db.session.get(DepositAccount, deposit_account_id) if deposit_account_id else None
    if not account or not account.is_active:
        raise NotFoundError("Deposit account not found")

    deposit = Deposit(
        user_id=user_id,
        deposit_account_id=account.id,
        amount=quantize_money(amount),
        payer_name=(payer_name or "").strip() or None,
        reference=(reference or "").strip() or None,
        status=TransactionStatus.PENDING.value,
    )
    db.session.add(deposit)
    db.session.commit()

    logger.info(f"Deposit {deposit.id} of {deposit.amount} created by user {user_id}")
    return deposit


def _pending_deposit_for_update(deposit_id: int) -> Deposit:
    deposit = Deposit.query.filter_by(id=deposit_id).with_for_update().first()
    if not deposit:
        raise NotFoundError("Deposit not found")
    if deposit.status != TransactionStatus.PENDING.value:
        raise ConflictError(f"Deposit is already {deposit.status}")
    return deposit


def approve_deposit(deposit_id: int, note: str = None) -> Deposit:
    try:
        deposit = _pending_deposit_for_update(deposit_id)
        ledger.credit(
            deposit.user_id,
            deposit.amount,
            LedgerType.DEPOSIT,
            description="Deposit approved",
            reference=f"DEP-{deposit.id}",
        )
        deposit.status = TransactionStatus.COMPLETED.value
        deposit.processed_at = utcnow()
        deposit.note = note
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"Deposit {deposit_id} approved: {deposit.amount} credited to user {deposit.user_id}")
    return deposit


def reject_deposit(deposit_id: int, note: str = None) -> Deposit:
    try:
        deposit = _pending_deposit_for_update(deposit_id)
        deposit.status = TransactionStatus.FAILED.value
        deposit.processed_at = utcnow()
        deposit.note = note
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"Deposit {deposit_id} rejected")
    return deposit


def list_deposits(user_id: int) -> List[Deposit]:
    return (Deposit.query
            .filter_by(user_id=user_id)
            .order_by(Deposit.created_at.desc(), Deposit.id.desc())
            .all())

# ==========================================================
#                  WITHDRAWALS
# ==========================================================
class WithdrawalValidator:
    @staticmethod
    def validate_withdrawal_request(user: Optional[User], amount: Decimal, pay_password: str) -> None:
        if not user:
            raise NotFoundError("User not found")
        if not user.is_active:
            raise PermissionDeniedError("Account is inactive")

        if not pay_password or not user.check_pay_password(pay_password):
            raise PermissionDeniedError("Invalid payment password")

        minimum = WithdrawalConfig.min_withdrawal()
        maximum = WithdrawalConfig.max_withdrawal()
        if amount < minimum:
            raise ValidationError(f"Minimum withdrawal is {minimum} {_currency()}")
        if amount > maximum:
            raise ValidationError(f"Maximum withdrawal is {maximum} {_currency()}")

        pending = Withdrawal.query.filter_by(
            user_id=user.id, status=TransactionStatus.PENDING.value
        ).first()
        if pending:
            raise ConflictError("You have a pending withdrawal. Please wait for it to complete.")


def request_withdrawal(user_id: int, amount: Decimal, pay_password: str,
                       bank_account_id: int) -> Dict[str, Any]:
    """
    Debit the full amount now and queue the withdrawal for an operator.
    The fee is kept by the platform; net_amount is what gets transferred.
    """
    amount = quantize_money(amount)
    try:
        user = User.query.filter_by(id=user_id).with_for_update().first()
        WithdrawalValidator.validate_withdrawal_request(user, amount, pay_password)

        bank_account = db.session.get(BankAccount, bank_account_id) if bank_account_id else None
        if not bank_account or bank_account.user_id != user_id:
            raise NotFoundError("Bank account not found")

        fee = WithdrawalConfig.calculate_fee(amount)
        withdrawal = Withdrawal(
            user_id=user_id,
            bank_account_id=bank_account.id,
            amount=amount,
            fee=fee,
            net_amount=amount - fee,
            status=TransactionStatus.PENDING.value,
        )
        db.session.add(withdrawal)
        db.session.flush()

        ledger.debit(
            user_id,
            amount,
            LedgerType.WITHDRAWAL,
            description=f"Withdrawal to {bank_account.bank} {bank_account.iban}",
            reference=f"WDR-{withdrawal.id}",
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"Withdrawal {withdrawal.id} requested by user {user_id}: {amount} (fee {fee})")
    return {
        "withdrawal": withdrawal.to_dict(),
        "balance": float(db.session.get(User, user_id).balance),
    }


def _pending_withdrawal_for_update(withdrawal_id: int) -> Withdrawal:
    withdrawal = Withdrawal.query.filter_by(id=withdrawal_id).with_for_update().first()
    if not withdrawal:
        raise NotFoundError("Withdrawal not found")
    if withdrawal.status != TransactionStatus.PENDING.value:
        raise ConflictError(f"Withdrawal is already {withdrawal.status}")
    return withdrawal


def complete_withdrawal(withdrawal_id: int, note: str = None) -> Withdrawal:
    try:
        withdrawal = _pending_withdrawal_for_update(withdrawal_id)
        withdrawal.status = TransactionStatus.COMPLETED.value
        withdrawal.processed_at = utcnow()
        withdrawal.note = note
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"Withdrawal {withdrawal_id} completed")
    return withdrawal


def fail_withdrawal(withdrawal_id: int, note: str = None) -> Withdrawal:
    """Mark a withdrawal failed and return the debited amount to the user."""
    try:
        withdrawal = _pending_withdrawal_for_update(withdrawal_id)
        ledger.credit(
            withdrawal.user_id,
            withdrawal.amount,
            LedgerType.REFUND,
            description="Withdrawal failed, amount refunded",
            reference=f"WDR-{withdrawal.id}",
        )
        withdrawal.status = TransactionStatus.FAILED.value
        withdrawal.processed_at = utcnow()
        withdrawal.note = note
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.warning(f"Withdrawal {withdrawal_id} failed, {withdrawal.amount} refunded to user {withdrawal.user_id}")
    return withdrawal


def list_withdrawals(user_id: int) -> List[Withdrawal]:
    return (Withdrawal.query
            .filter_by(user_id=user_id)
            .order_by(Withdrawal.created_at.desc(), Withdrawal.id.desc())
            .all())
