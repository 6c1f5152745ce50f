import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import update

from extensions import db
from models import User, LedgerEntry, LedgerType
from errors import InsufficientBalanceError, NotFoundError, ValidationError
from utils import quantize_money

logger = logging.getLogger(__name__)


def _apply_delta(user_id: int, delta: Decimal, require_funds: bool) -> Decimal:
    """
    Change a balance with one UPDATE so concurrent writers cannot lose updates.
    Must be called inside the caller's transaction (no commit here).
    """
    stmt = update(User).where(User.id == user_id)
    if require_funds:
        stmt = stmt.where(User.balance >= -delta)

    result = db.session.execute(
        stmt.values(balance=User.balance + delta),
        execution_options={"synchronize_session": False},
    )

    if result.rowcount != 1:
        if db.session.get(User, user_id) is None:
            raise NotFoundError("User not found")
        raise InsufficientBalanceError("Insufficient balance")

    user = db.session.get(User, user_id)
    db.session.expire(user, ["balance"])
    return quantize_money(user.balance)


def _record(user_id, entry_type, amount, balance_after, description, reference) -> LedgerEntry:
    entry = LedgerEntry(
        user_id=user_id,
        type=entry_type.value,
        amount=amount,
        balance_after=balance_after,
        description=description,
        reference=reference,
    )
    db.session.add(entry)
    return entry


def credit(user_id: int, amount: Decimal, entry_type: LedgerType,
           description: str = None, reference: Optional[str] = None) -> LedgerEntry:
    amount = quantize_money(amount)
    if amount <= 0:
        raise ValidationError("Credit amount must be positive")

    balance_after = _apply_delta(user_id, amount, require_funds=False)
    logger.info(f"Credit {entry_type.value}: user {user_id} +{amount} -> {balance_after}")
    return _record(user_id, entry_type, amount, balance_after, description, reference)


def debit(user_id: int, amount: Decimal, entry_type: LedgerType,
          description: str = None, reference: Optional[str] = None) -> LedgerEntry:
    amount = quantize_money(amount)
    if amount <= 0:
        raise ValidationError("Debit amount must be positive")

    balance_after = _apply_delta(user_id, -amount, require_funds=True)
    logger.info(f"Debit {entry_type.value}: user {user_id} -{amount} -> {balance_after}")
    return _record(user_id, entry_type, -amount, balance_after, description, reference)
