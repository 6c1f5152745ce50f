# ==========================================================
#                  PLATFORM EXCEPTIONS
# ==========================================================
from flask import jsonify
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import SQLAlchemyError


class PlatformError(Exception):
    """Base error; carries the message and HTTP status returned to the client."""
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(PlatformError):
    status_code = 400


class InsufficientBalanceError(PlatformError):
    status_code = 400


class AuthenticationError(PlatformError):
    status_code = 401


class PermissionDeniedError(PlatformError):
    status_code = 403


class NotFoundError(PlatformError):
    status_code = 404


class ConflictError(PlatformError):
    status_code = 409


def error_response(message, status_code):
    return jsonify({"success": False, "error": message}), status_code


def register_error_handlers(app):
    from extensions import db

    @app.errorhandler(PlatformError)
    def handle_platform_error(e):
        db.session.rollback()
        app.logger.info(f"{type(e).__name__}: {e.message}")
        return error_response(e.message, e.status_code)

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        db.session.rollback()
        app.logger.exception("Database error")
        return error_response("Internal server error", 500)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return error_response(e.description, e.code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        db.session.rollback()
        app.logger.exception("Unhandled error")
        return error_response("Internal server error", 500)
