"""
Configuration for PrintQueue.

All values can be overridden from the environment or a .env file next to
the application.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    MAX_CONTENT_LENGTH = 50 * 1024 * 1024  # 50 MB uploads
    SESSION_COOKIE_NAME = "print_queue_session"
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")

    # Debug mode
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"

    # Storage
    DATABASE_URL = os.environ.get(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'data' / 'print_queue.db'}"
    )
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", str(BASE_DIR / "uploads"))
    SCANNED_FOLDER = os.environ.get(
        "SCANNED_FOLDER", str(BASE_DIR / "scanned_documents")
    )

    # Rotating log files are written here in production; console only otherwise
    LOG_DIR = os.environ.get("LOG_DIR", str(BASE_DIR / "logs"))

    # ==========================================================================
    # Printer
    # ==========================================================================
    # PRINTER_BACKEND selects the spooler command syntax once at startup:
    #   cups    - lp / lpq / lpstat / cancel (Linux, Raspberry Pi, macOS)
    #   windows - print /D: and PowerShell print cmdlets
    #   auto    - pick from the running platform
    # ==========================================================================
    PRINTER_NAME = os.environ.get("PRINTER_NAME", "Ink-Tank-310-series")
    PRINTER_BACKEND = os.environ.get("PRINTER_BACKEND", "auto")
    PRINTER_COMMAND_TIMEOUT = float(os.environ.get("PRINTER_COMMAND_TIMEOUT", "5"))
    PRINTER_SUBMIT_TIMEOUT = float(os.environ.get("PRINTER_SUBMIT_TIMEOUT", "30"))

    # ==========================================================================
    # Retention
    # ==========================================================================
    # Uploaded documents, scanned documents and job rows older than
    # RETENTION_HOURS are deleted by the daily cleanup, which runs at
    # CLEANUP_TIME (HH:MM, local time) and every 24 hours after that.
    # ==========================================================================
    RETENTION_HOURS = float(os.environ.get("RETENTION_HOURS", "24"))
    CLEANUP_TIME = os.environ.get("CLEANUP_TIME", "23:59")
    CLEANUP_SCHEDULE_ENABLED = os.environ.get("CLEANUP_SCHEDULE_ENABLED", "1") == "1"


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    PERMANENT_SESSION_LIFETIME = 3600  # 1 hour


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    DATABASE_URL = "sqlite://"
    PRINTER_BACKEND = "cups"
    CLEANUP_SCHEDULE_ENABLED = False
