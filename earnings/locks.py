import logging
import uuid
from datetime import timedelta
from typing import Optional

from sqlalchemy import update, or_
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import JobLock
from utils import utcnow

logger = logging.getLogger(__name__)


class JobLockManager:
    """
    Lease lock in the job_locks table. Works across gunicorn workers, the CLI
    and the operator endpoint; an expired lease can be taken over.
    """

    @staticmethod
    def _ensure_row(name: str) -> None:
        if db.session.get(JobLock, name) is not None:
            return
        db.session.add(JobLock(name=name))
        try:
            db.session.commit()
        except IntegrityError:
            # Another process created the row first
            db.session.rollback()

    @staticmethod
    def acquire(name: str, ttl_seconds: int, now=None) -> Optional[str]:
        """Return an owner token if the lock was taken, None if it is held elsewhere."""
        now = now or utcnow()
        JobLockManager._ensure_row(name)

        owner = uuid.uuid4().hex
        result = db.session.execute(
            update(JobLock)
            .where(JobLock.name == name)
            .where(or_(JobLock.locked_until.is_(None), JobLock.locked_until <= now))
            .values(owner=owner, locked_until=now + timedelta(seconds=ttl_seconds)),
            execution_options={"synchronize_session": False},
        )
        db.session.commit()

        if result.rowcount != 1:
            logger.info(f"Job lock '{name}' is held by another runner")
            return None
        return owner

    @staticmethod
    def release(name: str, owner: str) -> bool:
        result = db.session.execute(
            update(JobLock)
            .where(JobLock.name == name, JobLock.owner == owner)
            .values(owner=None, locked_until=None),
            execution_options={"synchronize_session": False},
        )
        db.session.commit()
        if result.rowcount != 1:
            logger.warning(f"Job lock '{name}' was no longer held by {owner} at release")
            return False
        return True
