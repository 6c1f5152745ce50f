import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, Any

from flask import current_app
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import User, DailyCheckin, LedgerType
from earnings import ledger
from errors import ConflictError
from utils import utcnow, money

logger = logging.getLogger(__name__)


def checkin_status(user_id: int, now: datetime = None) -> Dict[str, Any]:
    today = (now or utcnow()).date()
    checkin = DailyCheckin.query.filter_by(user_id=user_id, checkin_date=today).first()
    return {
        "date": today.isoformat(),
        "checked_in": checkin is not None,
        "reward": money(current_app.config["CHECKIN_REWARD"]),
        "total_checkins": DailyCheckin.query.filter_by(user_id=user_id).count(),
    }


def daily_checkin(user_id: int, now: datetime = None) -> Dict[str, Any]:
    """Credit the check-in reward once per UTC calendar day."""
    today = (now or utcnow()).date()
    reward = Decimal(current_app.config["CHECKIN_REWARD"])

    if DailyCheckin.query.filter_by(user_id=user_id, checkin_date=today).first():
        raise ConflictError("Already checked in today")

    try:
        checkin = DailyCheckin(user_id=user_id, checkin_date=today, reward=reward)
        db.session.add(checkin)
        # The unique (user_id, checkin_date) constraint decides concurrent attempts
        db.session.flush()

        if reward > 0:
            ledger.credit(
                user_id,
                reward,
                LedgerType.CHECKIN,
                description=f"Daily check-in {today.isoformat()}",
                reference=f"CHK-{user_id}-{today:%Y%m%d}",
            )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Already checked in today")
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"User {user_id} checked in for {today}, reward {reward}")
    return {
        "checkin": checkin.to_dict(),
        "balance": money(db.session.get(User, user_id).balance),
    }
