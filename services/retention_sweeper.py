"""
Retention sweeper with a daily background thread.

Deletes uploaded documents, scanned documents and job rows once they are
older than the retention window (24 hours by default).

Schedule:
    The background thread sleeps until the next CLEANUP_TIME (today if it is
    still ahead, otherwise tomorrow), runs every sweep, then repeats every
    24 hours until stop() is called. run_all() can also be called on demand;
    a race with the timer is harmless because deleting something that is
    already gone is a no-op.

Never Raises:
    Each sweep catches its own failures and reports a zero count for that
    sweep. A single undeletable file is logged and skipped.

Usage:
    sweeper = RetentionSweeper(job_store, upload_dir, scanned_dir)
    sweeper.start()            # daily schedule

    summary = sweeper.run_all()  # on demand

    sweeper.stop()             # at shutdown
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from datetime import datetime, time as dt_time, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional, Union

from core.exceptions import PersistenceError
from services.job_store import JobStore
from logging_config import get_logger, set_thread_name


# Module logger
logger = get_logger(__name__)

DEFAULT_RETENTION = timedelta(hours=24)
DEFAULT_RUN_AT = dt_time(23, 59)
SWEEP_INTERVAL = timedelta(hours=24)


@dataclass(frozen=True)
class SweepResult:
    deleted_count: int
    message: str

    def to_dict(self):
        return {"deleted_count": self.deleted_count, "message": self.message}


@dataclass(frozen=True)
class CleanupSummary:
    """Aggregated counts from run_all()."""

    uploaded_docs: int
    scanned_docs: int
    print_jobs: int
    message: str

    def to_dict(self):
        return {
            "uploaded_docs": self.uploaded_docs,
            "scanned_docs": self.scanned_docs,
            "print_jobs": self.print_jobs,
            "message": self.message,
        }


def parse_run_at(value: Union[str, dt_time]) -> dt_time:
    """
    Parse a "HH:MM" wall-clock time.

    Raises:
        ValueError: If the value is not a valid time
    """
    if isinstance(value, dt_time):
        return value
    hours, minutes = value.strip().split(":")
    return dt_time(int(hours), int(minutes))


def seconds_until(run_at: dt_time, now: datetime) -> float:
    """
    Seconds from now until the next occurrence of run_at.

    An occurrence exactly at now counts as tomorrow's.
    """
    target = now.replace(hour=run_at.hour, minute=run_at.minute, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class RetentionSweeper:
    """
    Time-based garbage collector for documents and job rows.

    Attributes:
        retention: Age after which files and rows are deleted
        run_at: Local wall-clock time of the daily run
        is_running: Whether the background thread is active
    """

    def __init__(
        self,
        job_store: JobStore,
        upload_dir: Union[str, Path],
        scanned_dir: Union[str, Path],
        retention: timedelta = DEFAULT_RETENTION,
        run_at: Union[str, dt_time] = DEFAULT_RUN_AT,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the sweeper.

        Args:
            job_store: Store whose old rows are deleted
            upload_dir: Directory of uploaded originals
            scanned_dir: Directory of scanned outputs
            retention: Retention window (default 24 hours)
            run_at: Daily run time, "HH:MM" or datetime.time (default 23:59)
            clock: Returns the current aware UTC time (for tests)
        """
        self._job_store = job_store
        self.upload_dir = Path(upload_dir)
        self.scanned_dir = Path(scanned_dir)
        self.retention = retention
        self.run_at = parse_run_at(run_at)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        # Thread control
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._is_running = False

    @property
    def is_running(self) -> bool:
        return self._is_running

    # -------------------------------------------------------------------------
    # Sweeps
    # -------------------------------------------------------------------------

    def sweep_documents(self, directory: Union[str, Path]) -> SweepResult:
        """
        Delete regular files in directory older than the retention window.

        Age is measured from the file's last-modified time.

        Returns:
            SweepResult with the number of files deleted
        """
        directory = Path(directory)
        if not directory.is_dir():
            logger.info(f"Cleanup skipped, directory does not exist: {directory}")
            return SweepResult(0, f"Directory does not exist: {directory}")

        cutoff = (self._clock() - self.retention).timestamp()
        deleted = 0

        try:
            entries = list(os.scandir(directory))
        except OSError as e:
            logger.error(f"Cannot list {directory}: {e}")
            return SweepResult(0, f"Failed to clean up {directory}: {e}")

        for entry in entries:
            try:
                if not entry.is_file(follow_symlinks=False):
                    continue
                if entry.stat(follow_symlinks=False).st_mtime >= cutoff:
                    continue
                os.unlink(entry.path)
            except FileNotFoundError:
                # Removed by a concurrent sweep
                continue
            except OSError as e:
                logger.error(f"Error deleting {entry.path}: {e}")
                continue

            deleted += 1
            logger.info(f"Deleted expired file: {entry.name}")

        logger.info(f"Cleanup of {directory} completed. Deleted: {deleted}")
        return SweepResult(deleted, f"Cleaned up {deleted} old document(s) in {directory}")

    def sweep_jobs(self) -> SweepResult:
        """
        Delete job rows submitted before the retention window, any status.

        Returns:
            SweepResult (zero on storage failure)
        """
        cutoff = self._clock() - self.retention
        try:
            deleted = self._job_store.delete_submitted_before(cutoff)
        except PersistenceError as e:
            logger.error(f"Error cleaning up print jobs: {e}")
            return SweepResult(0, f"Failed to clean up print jobs: {e.message}")

        logger.info(f"Cleanup of print jobs completed. Deleted: {deleted}")
        return SweepResult(deleted, f"Cleaned up {deleted} old print job(s) from database")

    def run_all(self) -> CleanupSummary:
        """
        Run every sweep and aggregate the counts. Never raises.
        """
        logger.info("Starting retention cleanup")

        uploaded = self._safe_sweep(lambda: self.sweep_documents(self.upload_dir), "uploaded documents")
        scanned = self._safe_sweep(lambda: self.sweep_documents(self.scanned_dir), "scanned documents")
        jobs = self._safe_sweep(self.sweep_jobs, "print jobs")

        summary = CleanupSummary(
            uploaded_docs=uploaded.deleted_count,
            scanned_docs=scanned.deleted_count,
            print_jobs=jobs.deleted_count,
            message=(
                f"Cleanup completed: {uploaded.deleted_count} uploaded docs, "
                f"{scanned.deleted_count} scanned docs, {jobs.deleted_count} print jobs removed"
            ),
        )
        logger.info(summary.message)
        return summary

    def _safe_sweep(self, sweep: Callable[[], SweepResult], label: str) -> SweepResult:
        try:
            return sweep()
        except Exception as e:
            logger.error(f"Cleanup of {label} failed: {e}", exc_info=True)
            return SweepResult(0, f"Failed to clean up {label}: {e}")

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    def seconds_until_next_run(self) -> float:
        now = self._clock().astimezone()
        return seconds_until(self.run_at, now)

    def start(self) -> None:
        """
        Start the daily cleanup thread.

        Safe to call multiple times - only starts if not already running.
        """
        if self._is_running:
            logger.warning("RetentionSweeper already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._schedule_loop,
            name="Cleanup",
            daemon=True,
        )
        self._is_running = True
        self._thread.start()

        logger.info(f"Daily cleanup scheduled at {self.run_at.strftime('%H:%M')}")

    def stop(self) -> None:
        """Stop the cleanup thread. Safe to call multiple times."""
        if not self._is_running:
            return

        self._stop_event.set()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
            if self._thread.is_alive():
                logger.warning("Cleanup thread did not stop cleanly")

        self._is_running = False
        self._thread = None
        logger.info("Cleanup thread stopped")

    def _schedule_loop(self) -> None:
        set_thread_name("Cleanup")

        delay = self.seconds_until_next_run()
        logger.info(f"Next cleanup in {int(delay // 60)} minutes")

        while not self._stop_event.wait(timeout=delay):
            self.run_all()
            delay = SWEEP_INTERVAL.total_seconds()

        logger.info("Cleanup loop exiting")
