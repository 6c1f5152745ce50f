import os
from flask import Flask, jsonify, request
from config import Config
from extensions import db, login_manager, init_extensions
from logger import setup_app_logging
from errors import register_error_handlers
from earnings.plan import CommissionPlan
from scheduler import scheduler_status, init_scheduler
from utils import utcnow


# --------------------------------------------------------------------------------------------------------
#       Application factory
# --------------------------------------------------------------------------------------------------------
def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    if not app.debug and not app.testing:
        app.config.update(
            SESSION_COOKIE_SECURE=True,
            SESSION_COOKIE_HTTPONLY=True,
            REMEMBER_COOKIE_SECURE=True,
            REMEMBER_COOKIE_HTTPONLY=True,
        )

    setup_app_logging(app)

    # ----------------------------------------------------------------------------------------------------------------------------------
    # DATABASE URI / instance dir
    # --------------------------------------------------------------------------------------------------------------------------------------------
    DATABASE_URI = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if DATABASE_URI.startswith("sqlite"):
        os.makedirs(app.instance_path, exist_ok=True)
        # Pool options only apply to server databases
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {}

    # --------------------------------------------------------------------------------------------------------------------------
    # Commission plan - refuse to start on an invalid plan
    # ----------------------------------------------------------------------------------------------------------------------------
    plan = CommissionPlan.from_config(app.config)
    is_valid, message = plan.validate()
    if not is_valid:
        raise ValueError(f"Invalid COMMISSION_RATES: {message}")
    app.extensions["commission_plan"] = plan
    app.logger.info(message)

    # --------------------------------------------------------------------------------------------------------------------------
    # Initialize extensions
    # ----------------------------------------------------------------------------------------------------------------------------
    init_extensions(app)

    register_blueprints(app)
    register_error_handlers(app)

    from cli import register_cli
    register_cli(app)

    # ------------------------------------------------------------------------------------------------------------------------
    # Flask-Login user_loader
    # ------------------------------------------------------------------------------------------------------------------------
    @login_manager.user_loader
    def load_user(user_id):
        from models import User
        return db.session.get(User, int(user_id))

    # ----------------------
    # Global before_request
    # ----------------------
    @app.before_request
    def log_request():
        app.logger.debug(f"{request.method} {request.path}")

    # ----------------------
    # Basic routes
    # ----------------------
    @app.route("/health")
    def health():
        return jsonify({
            "success": True,
            "message": "Service is running",
            "timestamp": utcnow().isoformat(),
            "scheduler": scheduler_status(),
        }), 200

    return app


# ------------------------------------------------------------------------------------------------------------------------
# Register blueprints
# -----------------------------------------------------------------------------------------------------------------------
def register_blueprints(app):
    from blueprints.auth import bp as auth_bp
    from blueprints.profile import bp as profile_bp
    from blueprints.products import bp as products_bp
    from blueprints.referrals import bp as referrals_bp
    from blueprints.wallet import bp as wallet_bp
    from blueprints.operations import bp as operations_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(referrals_bp)
    app.register_blueprint(wallet_bp)
    app.register_blueprint(operations_bp)


# ----------------------
# Local development
# ----------------------
if __name__ == "__main__":
    app = create_app()
    init_scheduler(app)
    port = int(os.environ.get("PORT", 5000))
    debug_mode = app.config.get("DEBUG", False)
    app.run(debug=debug_mode, host="0.0.0.0", port=port, use_reloader=False)
