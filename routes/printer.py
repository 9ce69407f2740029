"""
Printer and maintenance routes (JSON).

Handles:
- /api/printer/status  - Printer reachability
- /api/printer/queue   - Current spooler queue
- /api/printer/options - Supported settings, defaults and capabilities
- /api/cleanup         - Run the retention sweep on demand
- /health              - Health check endpoint
"""

from flask import Blueprint, current_app, jsonify

from modules.print_settings import get_available_options, get_defaults
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

printer_bp = Blueprint("printer", __name__)


@printer_bp.route("/api/printer/status", methods=["GET"])
def printer_status():
    status = current_app.config["DEVICE_GATEWAY"].get_status()
    return jsonify(status.to_dict())


@printer_bp.route("/api/printer/queue", methods=["GET"])
def printer_queue():
    listing = current_app.config["DEVICE_GATEWAY"].query_queue()
    return jsonify(listing.to_dict())


@printer_bp.route("/api/printer/options", methods=["GET"])
def printer_options():
    capabilities = current_app.config["DEVICE_GATEWAY"].get_capabilities()
    return jsonify({
        "options": get_available_options(),
        "defaults": get_defaults(),
        **capabilities.to_dict(),
    })


@printer_bp.route("/api/cleanup", methods=["POST"])
def run_cleanup():
    """Run every retention sweep now. Never fails; counts are zero on error."""
    logger.info("On-demand cleanup requested")
    summary = current_app.config["RETENTION_SWEEPER"].run_all()
    return jsonify(summary.to_dict())


@printer_bp.route("/health", methods=["GET"])
def health():
    database = current_app.config["DATABASE"]
    sweeper = current_app.config["RETENTION_SWEEPER"]
    return jsonify({
        "status": "ok" if database.is_open else "degraded",
        "database": database.is_open,
        "cleanup_scheduled": sweeper.is_running,
    })
