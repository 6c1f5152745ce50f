from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user

from extensions import db
from models import User, LedgerEntry, LedgerType, Investment, InvestmentStatus
from errors import NotFoundError
from utils import money, parse_pagination


bp = Blueprint('profile', __name__, url_prefix="/api/user")

# ----------------------------------------------------------------------------------
# 1️⃣ CURRENT USER PROFILE (balance included)
# ----------------------------------------------------------------------------------
@bp.route("/profile", methods=["GET"])
@login_required
def get_user_profile():
    user = db.session.get(User, current_user.id)
    return jsonify({"success": True, "data": user.to_dict()}), 200


#===================================================================================
# PUBLIC USER INFO

@bp.route("/<int:user_id>", methods=["GET"])
@login_required
def get_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return jsonify({"success": True, "data": user.to_public_dict()}), 200


#=======================================================================================
#      LEDGER
#=======================================================================================
@bp.route("/ledger", methods=["GET"])
@login_required
def get_ledger():
    """Paginated balance history, newest first. Optional ?type= filter."""
    page, limit = parse_pagination(request.args)
    query = LedgerEntry.query.filter_by(user_id=current_user.id)

    entry_type = request.args.get("type")
    if entry_type:
        query = query.filter_by(type=entry_type)

    total = query.count()
    entries = (query
               .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
               .offset((page - 1) * limit)
               .limit(limit)
               .all())

    return jsonify({
        "success": True,
        "data": {
            "entries": [entry.to_dict() for entry in entries],
            "page": page,
            "limit": limit,
            "total": total,
        }
    }), 200


@bp.route("/earnings", methods=["GET"])
@login_required
def get_earnings():
    user_id = current_user.id
    totals = dict(
        db.session.query(LedgerEntry.type, db.func.sum(LedgerEntry.amount))
        .filter(LedgerEntry.user_id == user_id)
        .filter(LedgerEntry.type.in_([
            LedgerType.COMMISSION.value,
            LedgerType.PAYOUT.value,
            LedgerType.CHECKIN.value,
        ]))
        .group_by(LedgerEntry.type)
        .all()
    )

    active_investments = Investment.query.filter_by(
        user_id=user_id, status=InvestmentStatus.ACTIVE.value
    ).count()

    commission = money(totals.get(LedgerType.COMMISSION.value))
    payout = money(totals.get(LedgerType.PAYOUT.value))
    checkin = money(totals.get(LedgerType.CHECKIN.value))

    current_app.logger.debug(f"Earnings summary requested by user {user_id}")
    return jsonify({
        "success": True,
        "data": {
            "commissions": commission,
            "payouts": payout,
            "checkins": checkin,
            "total": round(commission + payout + checkin, 2),
            "active_investments": active_investments,
            "currency": current_app.config.get("CURRENCY", "AOA"),
        }
    }), 200
