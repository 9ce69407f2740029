"""
Logging for PrintQueue.

Request threads, spooler commands and the daily cleanup thread all write to
the "print_queue" logger tree. Every line carries the thread name, which is
how a cleanup run is told apart from a request, and job lines go to
"print_queue.job.<id>" so one job's history can be grepped out of the log.

Log Format:
    2026-10-16 10:15:32 [INFO    ] [Thread-4] print_queue.job.42 - Printer accepted job (device token 42)
    2026-10-16 23:59:00 [INFO    ] [Cleanup] print_queue.services.retention_sweeper - Deleted expired file: a.pdf

Usage:
    setup_logging(logging.INFO, log_dir=app.config["LOG_DIR"])

    logger = get_logger(__name__)
    get_job_logger(job.id).info("Resubmitting pending job")
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional, Union


APP_LOGGER_NAME = "print_queue"

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] [%(thread_name)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Per log file: 10 MB, 5 rotations
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


class ThreadContextFilter(logging.Filter):
    """Stamps each record with the emitting thread's name."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.thread_name = threading.current_thread().name
        return True


def _rotating_handler(path: Path, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=path,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def setup_logging(
    log_level: int = logging.INFO,
    log_dir: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    Configure the print_queue logger tree.

    Console output is always on. When log_dir is given, everything at
    log_level also goes to print_queue.log and ERROR and above to
    print_queue_error.log in that directory. Calling this again replaces the
    previous handlers.

    Returns:
        The print_queue root logger
    """
    logger = logging.getLogger(APP_LOGGER_NAME)
    logger.setLevel(log_level)
    logger.propagate = False
    logger.handlers.clear()

    handlers = [logging.StreamHandler(sys.stdout)]
    handlers[0].setLevel(log_level)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(_rotating_handler(log_dir / f"{APP_LOGGER_NAME}.log", log_level))
        handlers.append(_rotating_handler(log_dir / f"{APP_LOGGER_NAME}_error.log", logging.ERROR))

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    thread_filter = ThreadContextFilter()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(thread_filter)
        logger.addHandler(handler)

    if log_dir is not None:
        logger.info(f"File logging enabled in {log_dir}")
    logger.info(f"Logging configured at level {logging.getLevelName(log_level)}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """Module logger under print_queue (e.g. print_queue.services.job_store)."""
    if not name.startswith(APP_LOGGER_NAME):
        name = f"{APP_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def get_job_logger(job_id: Any) -> logging.Logger:
    """Logger for one print job: print_queue.job.<job_id>."""
    return logging.getLogger(f"{APP_LOGGER_NAME}.job.{job_id}")


def set_thread_name(name: str) -> None:
    """Rename the current thread (shown in the [thread] log field)."""
    threading.current_thread().name = name
