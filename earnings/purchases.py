# earnings/purchases.py
import logging
from datetime import timedelta, datetime
from typing import Dict, Any, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import User, Product, Investment, InvestmentStatus, LedgerType
from earnings import ledger
from earnings.commissions import distribute_commissions
from earnings.plan import get_commission_plan
from errors import NotFoundError, ValidationError, PermissionDeniedError, ConflictError
from utils import utcnow, money

logger = logging.getLogger(__name__)


class PurchaseValidator:
    @staticmethod
    def validate_purchase(user: Optional[User], product: Optional[Product]) -> None:
        if not user:
            raise NotFoundError("User not found")
        if not user.is_active:
            raise PermissionDeniedError("Account is inactive")
        if not product or not product.is_active:
            raise NotFoundError("Product not found")

        if product.purchase_limit is not None:
            owned = Investment.query.filter_by(user_id=user.id, product_id=product.id).count()
            if owned >= product.purchase_limit:
                raise ValidationError(
                    f"Purchase limit reached for {product.name} ({product.purchase_limit})"
                )


def purchase_product(user_id: int, product_id: int, now: datetime = None) -> Dict[str, Any]:
    """
    Buy a product with the user's balance: debit the price, open the
    investment and pay upline commissions in one transaction.
    """
    now = now or utcnow()
    interval = timedelta(hours=current_app.config["PAYOUT_INTERVAL_HOURS"])

    try:
        # Row lock serializes purchases per user so the purchase limit holds
        user = User.query.filter_by(id=user_id).with_for_update().first()
        product = db.session.get(Product, product_id)
        PurchaseValidator.validate_purchase(user, product)

        investment = Investment(
            user_id=user.id,
            product_id=product.id,
            amount=product.price,
            daily_return=product.daily_return,
            purchased_at=now,
            next_payout_at=now + interval,
            expires_at=now + timedelta(days=product.duration_days),
            status=InvestmentStatus.ACTIVE.value,
        )
        db.session.add(investment)
        db.session.flush()

        ledger.debit(
            user.id,
            product.price,
            LedgerType.PURCHASE,
            description=f"Purchase of {product.name}",
            reference=f"INV-{investment.id}",
        )

        commissions = distribute_commissions(investment, get_commission_plan())

        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.error(f"Integrity error during purchase of product {product_id} by user {user_id}")
        raise ConflictError("Purchase could not be completed, please retry")
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        f"User {user_id} purchased {product.name} for {product.price} "
        f"(investment {investment.id}, {len(commissions)} commissions)"
    )

    return {
        "investment": investment.to_dict(),
        "balance": money(db.session.get(User, user_id).balance),
        "commissions": [
            {"level": c.level, "beneficiary_id": c.beneficiary_id, "amount": money(c.amount)}
            for c in commissions
        ],
    }
