"""
Unit tests for the retention sweeper.
"""

import os
import threading
from datetime import datetime, time, timedelta, timezone
from unittest.mock import Mock, patch

import pytest

from core.exceptions import PersistenceError
from models.print_settings import PrintSettings
from services.retention_sweeper import RetentionSweeper, parse_run_at, seconds_until


NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _make_file(directory, name, age):
    path = directory / name
    path.write_bytes(b"data")
    mtime = (NOW - age).timestamp()
    os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def dirs(tmp_path):
    uploads = tmp_path / "uploads"
    scanned = tmp_path / "scanned"
    uploads.mkdir()
    scanned.mkdir()
    return uploads, scanned


@pytest.fixture
def sweeper(job_store, dirs):
    uploads, scanned = dirs
    return RetentionSweeper(job_store, uploads, scanned, clock=lambda: NOW)


class TestSweepDocuments:
    """Tests for sweep_documents()."""

    def test_only_expired_files_deleted(self, sweeper, dirs):
        uploads, _ = dirs
        old = _make_file(uploads, "old.pdf", timedelta(hours=25))
        fresh = _make_file(uploads, "fresh.pdf", timedelta(minutes=1))

        result = sweeper.sweep_documents(uploads)

        assert result.deleted_count == 1
        assert not old.exists()
        assert fresh.exists()

    def test_subdirectories_left_alone(self, sweeper, dirs):
        uploads, _ = dirs
        (uploads / "nested").mkdir()

        assert sweeper.sweep_documents(uploads).deleted_count == 0
        assert (uploads / "nested").is_dir()

    def test_undeletable_file_skipped(self, sweeper, dirs):
        uploads, _ = dirs
        locked = _make_file(uploads, "locked.pdf", timedelta(hours=30))
        expired = _make_file(uploads, "expired.pdf", timedelta(hours=30))
        real_unlink = os.unlink

        def unlink(path):
            if os.path.basename(path) == "locked.pdf":
                raise PermissionError(13, "Permission denied", path)
            real_unlink(path)

        with patch("services.retention_sweeper.os.unlink", side_effect=unlink):
            result = sweeper.sweep_documents(uploads)

        assert result.deleted_count == 1
        assert locked.exists()
        assert not expired.exists()

    def test_missing_directory(self, sweeper, tmp_path):
        result = sweeper.sweep_documents(tmp_path / "missing")

        assert result.deleted_count == 0
        assert "does not exist" in result.message


class TestSweepJobs:
    """Tests for sweep_jobs()."""

    def test_expired_jobs_deleted_regardless_of_status(self, sweeper, job_store):
        old = job_store.create(1, "old.pdf", "/uploads/old.pdf", PrintSettings(),
                               submitted_at=NOW - timedelta(hours=25))
        job_store.mark_completed(old.id)
        recent = job_store.create(1, "new.pdf", "/uploads/new.pdf", PrintSettings(),
                                  submitted_at=NOW - timedelta(minutes=1))

        result = sweeper.sweep_jobs()

        assert result.deleted_count == 1
        assert job_store.get_by_id(old.id) is None
        assert job_store.get_by_id(recent.id) is not None

    def test_storage_failure_reports_zero(self, dirs):
        store = Mock()
        store.delete_submitted_before.side_effect = PersistenceError("delete", "disk I/O error")
        uploads, scanned = dirs

        result = RetentionSweeper(store, uploads, scanned, clock=lambda: NOW).sweep_jobs()

        assert result.deleted_count == 0
        assert "disk I/O error" in result.message


class TestRunAll:
    """Tests for run_all()."""

    def test_aggregates_counts(self, sweeper, job_store, dirs):
        uploads, scanned = dirs
        _make_file(uploads, "a.pdf", timedelta(days=2))
        _make_file(uploads, "b.pdf", timedelta(days=3))
        _make_file(scanned, "scan.png", timedelta(days=2))
        job_store.create(1, "a.pdf", "/uploads/a.pdf", PrintSettings(),
                         submitted_at=NOW - timedelta(days=2))

        summary = sweeper.run_all()

        assert summary.uploaded_docs == 2
        assert summary.scanned_docs == 1
        assert summary.print_jobs == 1
        assert summary.to_dict()["message"] == (
            "Cleanup completed: 2 uploaded docs, 1 scanned docs, 1 print jobs removed"
        )

    def test_never_raises(self, dirs):
        store = Mock()
        store.delete_submitted_before.side_effect = RuntimeError("unexpected")
        uploads, scanned = dirs

        summary = RetentionSweeper(store, uploads, scanned, clock=lambda: NOW).run_all()

        assert summary.print_jobs == 0


class TestScheduling:
    """Tests for run-time parsing and the background thread."""

    def test_parse_run_at(self):
        assert parse_run_at("23:59") == time(23, 59)
        assert parse_run_at(time(1, 30)) == time(1, 30)

        with pytest.raises(ValueError):
            parse_run_at("midnight")

    def test_seconds_until_later_today(self):
        now = datetime(2024, 5, 1, 23, 0)

        assert seconds_until(time(23, 59), now) == 59 * 60

    def test_seconds_until_tomorrow(self):
        now = datetime(2024, 5, 1, 23, 59)

        assert seconds_until(time(23, 59), now) == 24 * 3600

    def test_start_and_stop(self, sweeper):
        sweeper.start()
        sweeper.start()
        assert sweeper.is_running

        sweeper.stop()
        assert not sweeper.is_running

        sweeper.stop()

    def test_loop_runs_cleanup_after_delay(self, sweeper):
        ran = threading.Event()

        with patch.object(sweeper, "seconds_until_next_run", return_value=0.01), \
                patch.object(sweeper, "run_all", side_effect=ran.set) as run_all:
            sweeper.start()
            try:
                assert ran.wait(timeout=5.0)
            finally:
                sweeper.stop()

        run_all.assert_called_once_with()

    def test_stop_before_delay_skips_cleanup(self, sweeper):
        with patch.object(sweeper, "seconds_until_next_run", return_value=60.0), \
                patch.object(sweeper, "run_all") as run_all:
            sweeper.start()
            sweeper.stop()

        run_all.assert_not_called()
