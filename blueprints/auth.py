from flask import Blueprint, jsonify, request, current_app
from flask_login import login_user, logout_user, current_user
from sqlalchemy.exc import IntegrityError
import logging

from extensions import db, referral_cache
from models import User
from earnings.referral_tree import ReferralTreeHelper
from errors import ValidationError, ConflictError, AuthenticationError, PermissionDeniedError
from utils import validate_mobile


logger = logging.getLogger(__name__)
#==================================================================================================================

bp = Blueprint("auth", __name__, url_prefix="/api")

MIN_PASSWORD_LENGTH = 6
MIN_PAY_PASSWORD_LENGTH = 4


def _json_body():
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        raise ValidationError("Invalid or missing JSON body")
    return data


#===========================================================================
#      REGISTER ROUTE
#==============================================================================
@bp.route("/register", methods=["POST"])
def register():
    """
    Create a new user and attach them to the inviter's network.
    Expected JSON:
    {
        "mobile": "",
        "password": "",
        "pay_password": "",
        "invitation_code": ""   (optional)
    }
    """
    data = _json_body()

    mobile = str(data.get("mobile") or "").strip()
    password = str(data.get("password") or "")
    pay_password = str(data.get("pay_password") or "")
    invitation_code = str(data.get("invitation_code") or "").strip().upper()

    # -----------------------------------------
    #  BASIC VALIDATION
    # -----------------------------------------
    if not mobile or not password or not pay_password:
        raise ValidationError("mobile, password and pay_password are required")

    if not validate_mobile(mobile):
        raise ValidationError("Invalid mobile number")

    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    if len(pay_password) < MIN_PAY_PASSWORD_LENGTH:
        raise ValidationError(f"Payment password must be at least {MIN_PAY_PASSWORD_LENGTH} characters")

    if User.query.filter_by(mobile=mobile).first():
        raise ConflictError("Mobile number already registered")

    # -----------------------------------------
    #  HANDLE INVITATION CODE
    # -----------------------------------------
    inviter = None
    referral_levels = []
    if invitation_code:
        inviter = ReferralTreeHelper.find_by_invitation_code(invitation_code)
        if not inviter or not inviter.is_active:
            raise ValidationError("Invalid invitation code")
        referral_levels = ReferralTreeHelper.find_referral_levels(inviter.id)

    # -----------------------------------------
    #  ATOMIC TRANSACTION
    # -----------------------------------------
    try:
        new_user = User(
            mobile=mobile,
            invitation_code=ReferralTreeHelper.generate_invitation_code(),
            inviter_id=inviter.id if inviter else None,
        )
        new_user.set_password(password)
        new_user.set_pay_password(pay_password)

        db.session.add(new_user)
        db.session.flush()

        ReferralTreeHelper.record_referral_levels(new_user.id, referral_levels)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.warning(f"Registration conflict for mobile {mobile}")
        raise ConflictError("Mobile number already registered")
    except Exception:
        db.session.rollback()
        raise

    # Every upline's cached network now misses this user
    referral_cache.invalidate([entry["user_id"] for entry in referral_levels])

    login_user(new_user)
    current_app.logger.info(
        f"Registered user {new_user.id} with {len(referral_levels)} upline levels"
    )

    return jsonify({
        "success": True,
        "message": "Registration successful",
        "data": {
            "user": new_user.to_dict(),
            "referral_levels": referral_levels,
        }
    }), 201


# --------------------------------------------------
#      LOGIN / LOGOUT
# --------------------------------------------------
@bp.route("/login", methods=["POST"])
def login():
    """
    Authenticate a user.
    Expected JSON:
    {
        "mobile": "",
        "password": ""
    }
    """
    data = _json_body()
    mobile = str(data.get("mobile") or "").strip()
    password = str(data.get("password") or "")

    if not mobile or not password:
        raise ValidationError("mobile and password are required")

    user = User.query.filter_by(mobile=mobile).first()
    if not user or not user.check_password(password):
        raise AuthenticationError("Invalid credentials")

    if not user.is_active:
        raise PermissionDeniedError("Account is inactive")

    login_user(user)
    current_app.logger.info(f"User {user.id} logged in")

    return jsonify({
        "success": True,
        "message": "Login successful",
        "data": {"user": user.to_dict()}
    }), 200


@bp.route("/logout", methods=["POST"])
def logout():
    if current_user.is_authenticated:
        current_app.logger.info(f"User {current_user.id} logged out")
    logout_user()
    return jsonify({"success": True, "message": "Logged out"}), 200


@bp.route("/session", methods=["GET"])
def session_status():
    if not current_user.is_authenticated:
        return jsonify({"success": True, "data": {"authenticated": False}}), 200
    return jsonify({
        "success": True,
        "data": {"authenticated": True, "user": current_user.to_dict()}
    }), 200


#=======================================================================================
#      INVITATION CODE VERIFICATION
#=======================================================================================
@bp.route("/invitation/<code>/verify", methods=["GET"])
def verify_invitation(code):
    owner = ReferralTreeHelper.verify_invitation_code(code)
    if not owner:
        return jsonify({"success": True, "data": {"valid": False}}), 200
    return jsonify({"success": True, "data": {"valid": True, "owner": owner}}), 200
