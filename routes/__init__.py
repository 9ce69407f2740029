"""
Flask route blueprints for PrintQueue.

This module contains the JSON endpoints a presentation layer calls:
- jobs: Print job creation, history, reconciliation and cancellation
- printer: Printer status/queue/options, on-demand cleanup, health check

Each blueprint is registered with the Flask app in create_app().
"""

from flask import jsonify

from core.exceptions import (
    DeviceUnavailableError,
    ForbiddenError,
    InvalidTransitionError,
    JobNotFoundError,
    PersistenceError,
    PrintQueueError,
    ValidationError,
)
from logging_config import get_logger

from .jobs import jobs_bp
from .printer import printer_bp

__all__ = [
    "jobs_bp",
    "printer_bp",
    "register_blueprints",
    "register_error_handlers",
]


# Module logger
logger = get_logger(__name__)

# Most specific first
ERROR_STATUS_CODES = (
    (ValidationError, 400),
    (ForbiddenError, 403),
    (JobNotFoundError, 404),
    (InvalidTransitionError, 409),
    (DeviceUnavailableError, 503),
    (PersistenceError, 500),
)


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(jobs_bp)
    app.register_blueprint(printer_bp)


def status_code_for(error: PrintQueueError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


def register_error_handlers(app):
    """
    Translate PrintQueue exceptions into JSON error responses.

    Args:
        app: Flask application instance
    """

    @app.errorhandler(PrintQueueError)
    def handle_print_queue_error(e: PrintQueueError):
        status_code = status_code_for(e)
        if status_code >= 500:
            logger.error(f"{status_code} error: {e}", exc_info=True)
        else:
            logger.info(f"{status_code} response: {e.message}")
        return jsonify({"error": e.message, "details": e.details}), status_code

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"error": "Not found"}), 404
