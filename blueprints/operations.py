import hmac
from functools import wraps

from flask import Blueprint, jsonify, request, current_app

from earnings import wallet
from earnings.catalog import create_product
from earnings.payouts import run_payouts
from errors import AuthenticationError, PermissionDeniedError


bp = Blueprint("operations", __name__, url_prefix="/ops")


def operator_required(f):
    """
    Decorator to restrict access to operator routes.
    - Expects 'Authorization: Bearer <OPERATOR_TOKEN>'.
    - Refuses everything when no token is configured.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get("OPERATOR_TOKEN") or ""
        if not expected:
            raise PermissionDeniedError("Operator access is disabled")

        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token:
            raise AuthenticationError("Operator token required")

        if not hmac.compare_digest(token.strip().encode(), expected.encode()):
            current_app.logger.warning(f"Rejected operator token from {request.remote_addr}")
            raise PermissionDeniedError("Invalid operator token")

        return f(*args, **kwargs)
    return decorated_function


def _note():
    data = request.get_json(silent=True) or {}
    note = data.get("note") if isinstance(data, dict) else None
    return str(note)[:255] if note else None


#==========================================================================
#      PAYOUTS
#==========================================================================
@bp.route("/payouts/run", methods=["POST"])
@operator_required
def trigger_payouts():
    summary = run_payouts()
    current_app.logger.info(f"Operator payout run: {summary}")
    status = 200 if summary["lock_acquired"] else 409
    return jsonify({"success": summary["lock_acquired"], "data": summary}), status


#==========================================================================
#      DEPOSITS & WITHDRAWALS
#==========================================================================
@bp.route("/deposits/<int:deposit_id>/approve", methods=["POST"])
@operator_required
def approve_deposit(deposit_id):
    deposit = wallet.approve_deposit(deposit_id, note=_note())
    return jsonify({"success": True, "data": deposit.to_dict()}), 200


@bp.route("/deposits/<int:deposit_id>/reject", methods=["POST"])
@operator_required
def reject_deposit(deposit_id):
    deposit = wallet.reject_deposit(deposit_id, note=_note())
    return jsonify({"success": True, "data": deposit.to_dict()}), 200


@bp.route("/withdrawals/<int:withdrawal_id>/complete", methods=["POST"])
@operator_required
def complete_withdrawal(withdrawal_id):
    withdrawal = wallet.complete_withdrawal(withdrawal_id, note=_note())
    return jsonify({"success": True, "data": withdrawal.to_dict()}), 200


@bp.route("/withdrawals/<int:withdrawal_id>/fail", methods=["POST"])
@operator_required
def fail_withdrawal(withdrawal_id):
    withdrawal = wallet.fail_withdrawal(withdrawal_id, note=_note())
    return jsonify({"success": True, "data": withdrawal.to_dict()}), 200


#==========================================================================
#      PRODUCTS
#==========================================================================
@bp.route("/products", methods=["POST"])
@operator_required
def add_product():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    product = create_product(data)
    return jsonify({"success": True, "data": product.to_dict()}), 201
