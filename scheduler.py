"""
In-process scheduler for the payout run.

Every gunicorn worker starts one; the job_locks lease makes sure only one
of them pays at a time.
"""
import atexit
import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from earnings.payouts import run_scheduled_payouts

logger = logging.getLogger("payouts")

PAYOUT_JOB_ID = "daily-payouts"

_scheduler: Optional[BackgroundScheduler] = None


def get_scheduler() -> Optional[BackgroundScheduler]:
    return _scheduler


def scheduler_status():
    """Running state and next run time, for the health endpoint."""
    if _scheduler is None:
        return {"running": False}
    job = _scheduler.get_job(PAYOUT_JOB_ID)
    return {
        "running": _scheduler.running,
        "next_run_time": job.next_run_time.isoformat() if job and job.next_run_time else None,
    }


def init_scheduler(app) -> Optional[BackgroundScheduler]:
    global _scheduler

    if not app.config.get("PAYOUT_SCHEDULER_ENABLED", False):
        app.logger.info("Payout scheduler disabled")
        return None
    if _scheduler is not None:
        return _scheduler

    minutes = app.config.get("PAYOUT_CHECK_MINUTES", 60)
    scheduler = BackgroundScheduler(timezone="UTC", daemon=True)
    scheduler.add_job(
        run_scheduled_payouts,
        trigger="interval",
        minutes=minutes,
        args=[app],
        id=PAYOUT_JOB_ID,
        name="Daily payouts",
        next_run_time=datetime.now(timezone.utc),
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.start()
    _scheduler = scheduler

    atexit.register(shutdown_scheduler)
    logger.info(f"Payout scheduler started, checking every {minutes} minutes")
    return scheduler


def shutdown_scheduler():
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Payout scheduler stopped")
    _scheduler = None
