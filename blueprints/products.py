from flask import Blueprint, jsonify, current_app
from flask_login import login_required, current_user

from extensions import db
from models import Product, Investment, PayoutRecord
from earnings.purchases import purchase_product
from errors import NotFoundError


bp = Blueprint("products", __name__, url_prefix="/api")


#==========================================================================
#      PRODUCT CATALOG
#==========================================================================
@bp.route("/products", methods=["GET"])
def list_products():
    products = (Product.query
                .filter_by(is_active=True)
                .order_by(Product.price.asc(), Product.id.asc())
                .all())
    return jsonify({"success": True, "data": [p.to_dict() for p in products]}), 200


@bp.route("/products/<int:product_id>/purchase", methods=["POST"])
@login_required
def purchase(product_id):
    """Buy a product with the wallet balance; pays upline commissions."""
    result = purchase_product(current_user.id, product_id)
    return jsonify({
        "success": True,
        "message": "Purchase successful",
        "data": result,
    }), 201


#==========================================================================
#      INVESTMENTS
#==========================================================================
@bp.route("/investments", methods=["GET"])
@login_required
def list_investments():
    investments = (Investment.query
                   .filter_by(user_id=current_user.id)
                   .order_by(Investment.purchased_at.desc(), Investment.id.desc())
                   .all())
    return jsonify({"success": True, "data": [i.to_dict() for i in investments]}), 200


@bp.route("/investments/<int:investment_id>/payouts", methods=["GET"])
@login_required
def list_investment_payouts(investment_id):
    investment = db.session.get(Investment, investment_id)
    # Other users' investments are reported as missing
    if not investment or investment.user_id != current_user.id:
        raise NotFoundError("Investment not found")

    records = (PayoutRecord.query
               .filter_by(investment_id=investment_id)
               .order_by(PayoutRecord.period_end.asc())
               .all())
    current_app.logger.debug(f"{len(records)} payout records for investment {investment_id}")
    return jsonify({
        "success": True,
        "data": {
            "investment": investment.to_dict(),
            "payouts": [r.to_dict() for r in records],
        }
    }), 200
