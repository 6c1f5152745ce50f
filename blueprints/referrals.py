from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user

from extensions import db, referral_cache
from models import Commission
from earnings.referral_tree import ReferralTreeHelper
from errors import PermissionDeniedError
from utils import money, parse_pagination


bp = Blueprint("referrals", __name__, url_prefix="/api/user")


def _require_self(user_id):
    if user_id != current_user.id:
        raise PermissionDeniedError("You can only view your own network")


#=======================================================================================
#      REFERRAL NETWORK
#=======================================================================================
@bp.route("/<int:user_id>/referral-network", methods=["GET"])
@login_required
def referral_network(user_id):
    """Downline by level (1..3), walked through inviter links. Cached when Redis is configured."""
    _require_self(user_id)
    network = referral_cache.get_network(
        user_id, lambda: ReferralTreeHelper.get_referral_network(user_id)
    )
    return jsonify({"success": True, "data": network}), 200


@bp.route("/<int:user_id>/all-referrals", methods=["GET"])
@login_required
def all_referrals(user_id):
    _require_self(user_id)
    return jsonify({"success": True, "data": ReferralTreeHelper.get_all_referrals(user_id)}), 200


@bp.route("/commissions", methods=["GET"])
@login_required
def commissions():
    """Commissions received, newest first, with totals per level."""
    page, limit = parse_pagination(request.args)
    query = Commission.query.filter_by(beneficiary_id=current_user.id)

    total = query.count()
    rows = (query
            .order_by(Commission.created_at.desc(), Commission.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all())

    by_level = dict(
        db.session.query(Commission.level, db.func.sum(Commission.amount))
        .filter(Commission.beneficiary_id == current_user.id)
        .group_by(Commission.level)
        .all()
    )

    current_app.logger.debug(f"User {current_user.id} listed {len(rows)} commissions")
    return jsonify({
        "success": True,
        "data": {
            "commissions": [c.to_dict() for c in rows],
            "totals_by_level": {f"level{level}": money(by_level.get(level)) for level in (1, 2, 3)},
            "page": page,
            "limit": limit,
            "total": total,
        }
    }), 200
