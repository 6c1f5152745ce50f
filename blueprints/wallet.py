from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from earnings import wallet
from earnings.checkin import daily_checkin, checkin_status
from errors import ValidationError
from utils import parse_amount


bp = Blueprint("wallet", __name__, url_prefix="/api")


def _json_body():
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        raise ValidationError("Invalid or missing JSON body")
    return data


def _int_field(data, name):
    value = data.get(name)
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{name} is required")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")


# ==========================================================
#                  BANK ACCOUNTS
# ==========================================================
@bp.route("/bank-accounts", methods=["GET"])
@login_required
def list_bank_accounts():
    accounts = wallet.list_bank_accounts(current_user.id)
    return jsonify({"success": True, "data": [a.to_dict() for a in accounts]}), 200


@bp.route("/bank-accounts", methods=["POST"])
@login_required
def add_bank_account():
    data = _json_body()
    account = wallet.add_bank_account(
        current_user.id,
        holder_name=data.get("holder_name"),
        bank=data.get("bank"),
        iban=data.get("iban"),
    )
    return jsonify({"success": True, "data": account.to_dict()}), 201


@bp.route("/deposit-accounts", methods=["GET"])
@login_required
def list_deposit_accounts():
    accounts = wallet.list_deposit_accounts()
    return jsonify({"success": True, "data": [a.to_dict() for a in accounts]}), 200


# ==========================================================
#                  DEPOSITS
# ==========================================================
@bp.route("/deposits", methods=["GET"])
@login_required
def list_deposits():
    deposits = wallet.list_deposits(current_user.id)
    return jsonify({"success": True, "data": [d.to_dict() for d in deposits]}), 200


@bp.route("/deposits", methods=["POST"])
@login_required
def create_deposit():
    """
    Announce a bank transfer to one of the deposit accounts.
    Expected JSON: {"amount": 5000, "deposit_account_id": 1, "payer_name": "", "reference": ""}
    """
    data = _json_body()
    deposit = wallet.create_deposit(
        current_user.id,
        amount=parse_amount(data.get("amount")),
        deposit_account_id=_int_field(data, "deposit_account_id"),
        payer_name=data.get("payer_name"),
        reference=data.get("reference"),
    )
    return jsonify({
        "success": True,
        "message": "Deposit registered, awaiting confirmation",
        "data": deposit.to_dict(),
    }), 201


# ==========================================================
#                  WITHDRAWALS
# ==========================================================
@bp.route("/withdrawals", methods=["GET"])
@login_required
def list_withdrawals():
    withdrawals = wallet.list_withdrawals(current_user.id)
    return jsonify({"success": True, "data": [w.to_dict() for w in withdrawals]}), 200


@bp.route("/withdrawals", methods=["POST"])
@login_required
def request_withdrawal():
    """
    Expected JSON: {"amount": 5000, "pay_password": "", "bank_account_id": 1}
    """
    data = _json_body()
    result = wallet.request_withdrawal(
        current_user.id,
        amount=parse_amount(data.get("amount")),
        pay_password=str(data.get("pay_password") or ""),
        bank_account_id=_int_field(data, "bank_account_id"),
    )
    return jsonify({
        "success": True,
        "message": "Withdrawal requested",
        "data": result,
    }), 201


# ==========================================================
#                  DAILY CHECK-IN
# ==========================================================
@bp.route("/checkin", methods=["GET"])
@login_required
def get_checkin():
    return jsonify({"success": True, "data": checkin_status(current_user.id)}), 200


@bp.route("/checkin", methods=["POST"])
@login_required
def post_checkin():
    result = daily_checkin(current_user.id)
    return jsonify({"success": True, "message": "Checked in", "data": result}), 201
