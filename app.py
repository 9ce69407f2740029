"""
PrintQueue - Flask Application Entry Point.

This is a slim app factory that:
1. Opens the database handle (fail-fast)
2. Selects the printer gateway for the configured spooler (once)
3. Builds the job store, job lifecycle and retention sweeper
4. Starts the daily cleanup thread
5. Registers the JSON route blueprints and error handlers

ARCHITECTURE:
    Main Thread
    ├── Database open / close
    ├── Flask request handling (one unit of work per request)
    └── Cleanup on shutdown

    Cleanup Thread (background)
    └── Daily retention sweep at CLEANUP_TIME, then every 24 hours

The services hold no per-request state; every request reads and writes the
database directly.
"""

from __future__ import annotations

import atexit
import logging
import os
import sys
from datetime import timedelta
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from flask import Flask

from logging_config import setup_logging, get_logger
from core.database import Database
from core.device_gateway import DeviceGateway, create_gateway
from core.exceptions import PersistenceError
from services.job_store import JobStore
from services.job_lifecycle import JobLifecycle
from services.retention_sweeper import RetentionSweeper
from routes import register_blueprints, register_error_handlers


# Module logger (configured after setup_logging)
logger = get_logger(__name__)

# app.extensions key holding the shutdown hook
SHUTDOWN_EXTENSION = "print_queue_shutdown"


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In PyInstaller bundle: Returns the directory containing the executable
    In development: Returns the directory containing app.py
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent


def create_app(
    config_object: Union[str, type] = "config.Config",
    gateway: Optional[DeviceGateway] = None,
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    FAIL-FAST: If the database cannot be opened, the app will not start.

    Args:
        config_object: Config class, or its import path
        gateway: Printer gateway to use instead of the configured one

    Returns:
        Configured Flask application

    Raises:
        PersistenceError: If the database cannot be opened
    """
    # Load .env from base path (next to executable in production)
    base_path = _get_base_path()
    env_file = base_path / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(override=True)

    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    log_dir = app.config.get("LOG_DIR") if app.config.get("ENVIRONMENT") == "production" else None

    root_logger = setup_logging(log_level=log_level, log_dir=log_dir)

    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting PrintQueue in {app.config.get('ENVIRONMENT')} mode")

    # Ensure document folders exist
    for folder_key in ("UPLOAD_FOLDER", "SCANNED_FOLDER"):
        Path(app.config[folder_key]).mkdir(parents=True, exist_ok=True)

    # =========================================================================
    # CORE INITIALIZATION (FAIL-FAST)
    # =========================================================================

    database = Database(app.config["DATABASE_URL"])
    try:
        database.open()
    except PersistenceError as e:
        logger.error(f"FATAL: Cannot start application - {e}")
        raise

    if gateway is None:
        gateway = create_gateway(
            backend=app.config["PRINTER_BACKEND"],
            printer_name=app.config["PRINTER_NAME"],
            command_timeout=app.config["PRINTER_COMMAND_TIMEOUT"],
            submit_timeout=app.config["PRINTER_SUBMIT_TIMEOUT"],
        )

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    job_store = JobStore(database)
    job_lifecycle = JobLifecycle(job_store, gateway)
    sweeper = RetentionSweeper(
        job_store,
        upload_dir=app.config["UPLOAD_FOLDER"],
        scanned_dir=app.config["SCANNED_FOLDER"],
        retention=timedelta(hours=app.config["RETENTION_HOURS"]),
        run_at=app.config["CLEANUP_TIME"],
    )

    if app.config.get("CLEANUP_SCHEDULE_ENABLED"):
        sweeper.start()

    app.config["DATABASE"] = database
    app.config["DEVICE_GATEWAY"] = gateway
    app.config["JOB_STORE"] = job_store
    app.config["JOB_LIFECYCLE"] = job_lifecycle
    app.config["RETENTION_SWEEPER"] = sweeper

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")
        sweeper.stop()
        database.close()
        logger.info("Shutdown complete")

    atexit.register(cleanup)
    app.extensions[SHUTDOWN_EXTENSION] = cleanup

    # =========================================================================
    # BLUEPRINTS AND ERROR HANDLERS
    # =========================================================================

    register_blueprints(app)
    register_error_handlers(app)

    logger.info("Application initialized successfully")
    return app


def shutdown_app(app: Flask) -> None:
    """
    Stop the app's cleanup thread and close its database now.

    Removes the atexit hook registered by create_app(), so an app that is
    shut down explicitly is not shut down again at interpreter exit.
    Safe to call multiple times.
    """
    cleanup = app.extensions.pop(SHUTDOWN_EXTENSION, None)
    if cleanup is None:
        return
    atexit.unregister(cleanup)
    cleanup()


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(debug=debug_mode)
