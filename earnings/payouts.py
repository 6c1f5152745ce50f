"""
Daily payouts.

Every active investment earns its daily_return once per payout interval,
counted from the purchase time, until expires_at. A run that happens late
pays every whole interval that elapsed, and the anchor moves forward by
whole intervals so the schedule never drifts toward the run time.
"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Any

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from models import Investment, InvestmentStatus, PayoutRecord, LedgerType
from earnings import ledger
from earnings.locks import JobLockManager
from utils import utcnow, quantize_money

logger = logging.getLogger("payouts")

PAYOUT_LOCK_NAME = "daily-payouts"


class PayoutProcessor:

    def __init__(self, interval: timedelta = timedelta(hours=24), lock_ttl_seconds: int = 600):
        if interval <= timedelta(0):
            raise ValueError("Payout interval must be positive")
        self.interval = interval
        self.lock_ttl_seconds = lock_ttl_seconds

    @classmethod
    def from_config(cls, config) -> "PayoutProcessor":
        return cls(
            interval=timedelta(hours=config.get("PAYOUT_INTERVAL_HOURS", 24)),
            lock_ttl_seconds=config.get("PAYOUT_LOCK_TTL_SECONDS", 600),
        )

    def due_periods(self, investment: Investment, now: datetime) -> int:
        """Whole intervals elapsed since the last payout, capped at expiry."""
        anchor = investment.last_payout_at or investment.purchased_at
        end = min(now, investment.expires_at)
        if end <= anchor:
            return 0
        return (end - anchor) // self.interval

    def run(self, now: datetime = None) -> Dict[str, Any]:
        now = now or utcnow()
        summary = {
            "lock_acquired": False,
            "processed": 0,
            "skipped": 0,
            "expired": 0,
            "failed": 0,
            "total_paid": Decimal("0.00"),
        }

        owner = JobLockManager.acquire(PAYOUT_LOCK_NAME, self.lock_ttl_seconds, now=now)
        if owner is None:
            logger.info("Payout run skipped: another runner holds the lock")
            summary["total_paid"] = 0.0
            return summary
        summary["lock_acquired"] = True

        try:
            due_ids = [
                row.id for row in (Investment.query
                                   .filter(Investment.status == InvestmentStatus.ACTIVE.value)
                                   .filter(Investment.next_payout_at <= now)
                                   .order_by(Investment.next_payout_at.asc(), Investment.id.asc())
                                   .with_entities(Investment.id)
                                   .all())
            ]
            logger.info(f"Payout run at {now.isoformat()}: {len(due_ids)} investments due")

            for investment_id in due_ids:
                try:
                    outcome, paid = self._process_investment(investment_id, now)
                    db.session.commit()
                except Exception as e:
                    db.session.rollback()
                    summary["failed"] += 1
                    logger.exception(f"Payout failed for investment {investment_id}: {e}")
                    continue

                if outcome == "skipped":
                    summary["skipped"] += 1
                    continue
                summary["processed"] += 1 if paid > 0 else 0
                summary["total_paid"] += paid
                if outcome == "expired":
                    summary["expired"] += 1
        finally:
            db.session.rollback()
            JobLockManager.release(PAYOUT_LOCK_NAME, owner)

        logger.info(
            f"Payout run finished: processed={summary['processed']} skipped={summary['skipped']} "
            f"expired={summary['expired']} failed={summary['failed']} total_paid={summary['total_paid']}"
        )
        summary["total_paid"] = float(summary["total_paid"])
        return summary

    def _process_investment(self, investment_id: int, now: datetime):
        """
        Pay one investment inside the current transaction.
        Returns (outcome, amount_paid); outcome is 'paid', 'expired' or 'skipped'.
        """
        investment = db.session.get(Investment, investment_id)
        if investment is None or investment.status != InvestmentStatus.ACTIVE.value:
            return "skipped", Decimal("0.00")

        previous_next = investment.next_payout_at
        anchor = investment.last_payout_at or investment.purchased_at
        periods = self.due_periods(investment, now)

        new_anchor = anchor + self.interval * periods
        new_next = new_anchor + self.interval
        expired = new_next > investment.expires_at
        amount = quantize_money(Decimal(investment.daily_return) * periods)

        values = {
            "next_payout_at": new_next,
            "payout_count": Investment.payout_count + periods,
            "total_paid": Investment.total_paid + amount,
        }
        if periods:
            values["last_payout_at"] = new_anchor
        if expired:
            values["status"] = InvestmentStatus.EXPIRED.value

        # Compare-and-set: a concurrent runner that already advanced the row wins
        result = db.session.execute(
            update(Investment)
            .where(Investment.id == investment_id)
            .where(Investment.status == InvestmentStatus.ACTIVE.value)
            .where(Investment.next_payout_at == previous_next)
            .values(**values),
            execution_options={"synchronize_session": False},
        )
        if result.rowcount != 1:
            db.session.rollback()
            logger.warning(f"Investment {investment_id} was advanced by another runner - skipped")
            return "skipped", Decimal("0.00")

        if amount > 0:
            ledger.credit(
                investment.user_id,
                amount,
                LedgerType.PAYOUT,
                description=f"Daily return x{periods} for investment {investment_id}",
                reference=f"PAY-{investment_id}-{new_anchor:%Y%m%d%H%M}",
            )
            db.session.add(PayoutRecord(
                investment_id=investment_id,
                user_id=investment.user_id,
                amount=amount,
                periods=periods,
                period_start=anchor,
                period_end=new_anchor,
            ))
            try:
                db.session.flush()
            except IntegrityError:
                db.session.rollback()
                logger.warning(f"Payout period ending {new_anchor} already recorded for investment {investment_id}")
                return "skipped", Decimal("0.00")

            logger.info(
                f"Paid {amount} ({periods} period(s)) to user {investment.user_id} "
                f"for investment {investment_id}"
            )

        db.session.expire(investment)

        if expired:
            logger.info(f"Investment {investment_id} expired after {investment.payout_count} payouts")
            return "expired", amount
        return "paid", amount


def run_payouts(now: datetime = None) -> Dict[str, Any]:
    """Run a payout pass with the current app's configuration."""
    return PayoutProcessor.from_config(current_app.config).run(now)


def run_scheduled_payouts(app):
    """Scheduler entry point; runs outside any request."""
    with app.app_context():
        try:
            return run_payouts()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Scheduled payout run failed")
            return None
        finally:
            db.session.remove()
