from flask import jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_cors import CORS

from earnings.cache import ReferralCache


db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
cors = CORS()
referral_cache = ReferralCache()


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"success": False, "error": "Authentication required"}), 401


def init_extensions(app):
    """Initialize Flask extensions"""
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    cors.init_app(app, origins=app.config.get("CORS_ORIGINS", "*"))
    referral_cache.init_app(app)

    return app
