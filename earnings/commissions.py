import logging
from decimal import Decimal
from typing import List

from extensions import db
from models import Commission, Investment, User, LedgerType
from earnings import ledger
from earnings.plan import CommissionPlan
from earnings.referral_tree import ReferralTreeHelper
from utils import quantize_down

logger = logging.getLogger(__name__)
commissions_logger = logging.getLogger("commissions")

MIN_COMMISSION_AMOUNT = Decimal('0.01')


def calculate_commission(amount: Decimal, rate: Decimal) -> Decimal:
    return quantize_down(Decimal(amount) * rate)


def distribute_commissions(investment: Investment, plan: CommissionPlan) -> List[Commission]:
    """
    Credit the buyer's uplines their share of the investment amount.
    Must be called inside the purchase transaction (no commit here).
    Returns the commissions created; an investment that already has
    commissions gets none.
    """
    existing = Commission.query.filter_by(investment_id=investment.id).count()
    if existing:
        commissions_logger.warning(
            f"Investment {investment.id} already has {existing} commissions - skipping"
        )
        return []

    upline = ReferralTreeHelper.get_upline(investment.user_id)
    if not upline:
        logger.info(f"User {investment.user_id} has no upline, no commissions to distribute")
        return []

    created = []
    for entry in upline:
        level = entry["level"]
        rate = plan.rate_for(level)
        amount = calculate_commission(investment.amount, rate)

        if amount < MIN_COMMISSION_AMOUNT:
            logger.debug(f"Commission {amount} below minimum for level {level}")
            continue

        beneficiary = db.session.get(User, entry["user_id"])
        if not beneficiary or not beneficiary.is_active:
            commissions_logger.info(
                f"Level {level} upline {entry['user_id']} missing or inactive - commission not paid"
            )
            continue

        ledger.credit(
            beneficiary.id,
            amount,
            LedgerType.COMMISSION,
            description=f"Level {level} commission from user {investment.user_id}",
            reference=f"INV-{investment.id}-L{level}",
        )

        commission = Commission(
            beneficiary_id=beneficiary.id,
            source_user_id=investment.user_id,
            investment_id=investment.id,
            level=level,
            rate=rate,
            base_amount=investment.amount,
            amount=amount,
        )
        db.session.add(commission)
        created.append(commission)

        commissions_logger.info(
            f"Level {level} commission {amount} ({rate * 100}%) to user {beneficiary.id} "
            f"for investment {investment.id}"
        )

    db.session.flush()
    return created
