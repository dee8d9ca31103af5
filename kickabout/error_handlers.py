"""JSON error handlers shared by every blueprint."""

from flask import Blueprint, current_app, jsonify
from flask_wtf.csrf import CSRFError
from google.api_core import exceptions as google_exceptions

from .errors import AppError, UnavailableError

error_handlers_bp = Blueprint("error_handlers", __name__)


def error_response(kind, message, status_code, details=None):
    """Build the error envelope returned by every endpoint."""
    error = {"kind": kind, "message": message}
    if details:
        error["details"] = details
    return jsonify({"status": "error", "error": error}), status_code


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles every application error kind."""
    if error.status_code >= 500:
        current_app.logger.error(f"{type(error).__name__}: {error.message}")
    else:
        current_app.logger.warning(f"{type(error).__name__}: {error.message}")
    return error_response(
        error.kind, error.message, error.status_code, getattr(error, "errors", None)
    )


@error_handlers_bp.app_errorhandler(google_exceptions.GoogleAPICallError)
def handle_store_error(e):
    """Handles Firestore errors that escaped a service call."""
    current_app.logger.error(f"Database Error: {e}")
    # Avoid exposing raw database error details to the user
    return handle_app_error(UnavailableError())


@error_handlers_bp.app_errorhandler(CSRFError)
def handle_csrf_error(e):
    """Handles CSRF errors on form posts outside the JSON API."""
    current_app.logger.warning(f"CSRF Error: {e.description}")
    return error_response("csrf_error", e.description, 400)


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return error_response("not_found", "Resource not found.", 404)


@error_handlers_bp.app_errorhandler(405)
def handle_405(e):
    """Handles requests with an unsupported method."""
    return error_response("method_not_allowed", "Method not allowed.", 405)


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return error_response("internal_error", "An unexpected error occurred.", 500)
