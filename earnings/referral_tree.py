import logging
import secrets
import string
from typing import List, Dict, Any, Optional

from flask import current_app

from extensions import db
from models import User, ReferralLevel, MAX_REFERRAL_LEVEL
from errors import ConflictError

logger = logging.getLogger(__name__)

INVITATION_CODE_LENGTH = 6
INVITATION_CODE_ATTEMPTS = 5
INVITATION_CODE_ALPHABET = string.ascii_uppercase + string.digits


class ReferralTreeHelper:
    """
    Three-level referral network.
    Uplines are stored in referral_levels at registration time; downlines are
    read by walking users.inviter_id.
    """

    @staticmethod
    def generate_invitation_code() -> str:
        for _ in range(INVITATION_CODE_ATTEMPTS + 1):
            code = ''.join(secrets.choice(INVITATION_CODE_ALPHABET) for _ in range(INVITATION_CODE_LENGTH))
            if not User.query.filter_by(invitation_code=code).first():
                return code
        raise ConflictError("Could not generate a unique invitation code")

    @staticmethod
    def find_by_invitation_code(code: str) -> Optional[User]:
        if not code:
            return None
        return User.query.filter_by(invitation_code=code.strip().upper()).first()

    @staticmethod
    def verify_invitation_code(code: str) -> Optional[Dict[str, Any]]:
        owner = ReferralTreeHelper.find_by_invitation_code(code)
        if not owner or not owner.is_active:
            return None
        return {"id": owner.id, "mobile": owner.mobile}

    @staticmethod
    def find_referral_levels(inviter_id: Optional[int], max_level: int = MAX_REFERRAL_LEVEL) -> List[Dict[str, Any]]:
        """
        Walk inviter pointers upward from the direct inviter, at most max_level hops.
        A repeated id ends the walk.
        """
        levels = []
        visited = set()
        current_id = inviter_id
        level = 1

        while current_id and level <= max_level:
            if current_id in visited:
                current_app.logger.error(f"Cycle detected in inviter chain at user {current_id}")
                break
            visited.add(current_id)

            inviter = db.session.get(User, current_id)
            if not inviter:
                break

            levels.append({
                "level": level,
                "user_id": inviter.id,
                "mobile": inviter.mobile,
                "invitation_code": inviter.invitation_code,
            })
            current_id = inviter.inviter_id
            level += 1

        return levels

    @staticmethod
    def record_referral_levels(user_id: int, levels: List[Dict[str, Any]]) -> None:
        """Must be called inside an existing transaction (no commit here)."""
        for entry in levels:
            if entry["user_id"] == user_id:
                current_app.logger.warning(f"Skipping self-reference in upline of user {user_id}")
                continue
            db.session.add(ReferralLevel(
                user_id=user_id,
                referrer_id=entry["user_id"],
                level=entry["level"],
            ))

    @staticmethod
    def get_upline(user_id: int) -> List[Dict[str, int]]:
        """
        Uplines for commission: [{level, user_id}] ordered by level.
        Users registered before referral_levels existed are walked and backfilled.
        """
        rows = (ReferralLevel.query
                .filter_by(user_id=user_id)
                .order_by(ReferralLevel.level.asc())
                .all())
        if rows:
            return [{"level": row.level, "user_id": row.referrer_id} for row in rows]

        user = db.session.get(User, user_id)
        if not user or not user.inviter_id:
            return []

        levels = ReferralTreeHelper.find_referral_levels(user.inviter_id)
        levels = [entry for entry in levels if entry["user_id"] != user_id]
        if levels:
            current_app.logger.info(f"Backfilling {len(levels)} referral levels for user {user_id}")
            ReferralTreeHelper.record_referral_levels(user_id, levels)
            db.session.flush()
        return [{"level": entry["level"], "user_id": entry["user_id"]} for entry in levels]

    @staticmethod
    def _serialize_member(user: User) -> Dict[str, Any]:
        return {
            "id": user.id,
            "mobile": user.mobile,
            "invitation_code": user.invitation_code,
            "created_at": user.created_at.isoformat() if user.created_at else None,
        }

    @staticmethod
    def get_referral_network(user_id: int) -> Dict[str, Any]:
        """Downline by level, read by walking inviter_id."""
        network = {}
        seen = {user_id}
        parent_ids = [user_id]

        for level in range(1, MAX_REFERRAL_LEVEL + 1):
            if parent_ids:
                members = (User.query
                           .filter(User.inviter_id.in_(parent_ids))
                           .order_by(User.created_at.asc(), User.id.asc())
                           .all())
            else:
                members = []
            members = [member for member in members if member.id not in seen]
            seen.update(member.id for member in members)

            network[f"level{level}"] = [ReferralTreeHelper._serialize_member(m) for m in members]
            parent_ids = [member.id for member in members]

        network["total"] = sum(len(network[f"level{level}"]) for level in range(1, MAX_REFERRAL_LEVEL + 1))
        return network

    @staticmethod
    def get_all_referrals(user_id: int) -> Dict[str, Any]:
        """Downline by level, read from the denormalized referral_levels table."""
        rows = (ReferralLevel.query
                .filter_by(referrer_id=user_id)
                .order_by(ReferralLevel.level.asc(), ReferralLevel.user_id.asc())
                .all())

        organized = {f"level{level}": [] for level in range(1, MAX_REFERRAL_LEVEL + 1)}
        for row in rows:
            organized[f"level{row.level}"].append(ReferralTreeHelper._serialize_member(row.user))
        organized["total"] = len(rows)
        return organized
