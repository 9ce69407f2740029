"""
Unit tests for JobStore against an in-memory SQLite database.
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.database import Database
from core.exceptions import PersistenceError
from models.print_job import JobStatus
from models.print_settings import ColorMode, PaperSize, PaperType, PrintQuality, PrintSettings


NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _create(job_store, user_id=1, name="report.pdf", submitted_at=None, **kwargs):
    return job_store.create(
        user_id=user_id,
        document_name=name,
        document_path=f"/uploads/{name}",
        settings=kwargs.pop("settings", PrintSettings()),
        submitted_at=submitted_at,
        **kwargs,
    )


class TestCreateAndGet:
    """Tests for create() and get_by_id()."""

    def test_create_assigns_id_and_defaults(self, job_store):
        job = _create(job_store)

        assert job.id is not None
        assert job.status is JobStatus.PENDING
        assert job.completed_at is None
        assert job.device_token is None
        assert job.submitted_at.tzinfo is not None

    def test_settings_round_trip(self, job_store):
        settings = PrintSettings(
            paper_type=PaperType.GLOSSY,
            print_quality=PrintQuality.DPI_1200,
            color_mode=ColorMode.COLOR,
            paper_size=PaperSize.LEGAL,
        )
        job = _create(job_store, settings=settings, submitted_at=NOW)

        stored = job_store.get_by_id(job.id)

        assert stored == job
        assert stored.settings == settings
        assert stored.submitted_at == NOW

    def test_get_missing_returns_none(self, job_store):
        assert job_store.get_by_id(999) is None

    def test_naive_timestamp_rejected(self, job_store):
        with pytest.raises((PersistenceError, ValueError)):
            _create(job_store, submitted_at=datetime(2024, 5, 1, 12, 0))


class TestListByUser:
    """Tests for list_by_user()."""

    def test_only_own_jobs_newest_first(self, job_store):
        older = _create(job_store, user_id=1, name="a.pdf", submitted_at=NOW - timedelta(hours=2))
        _create(job_store, user_id=2, name="b.pdf", submitted_at=NOW - timedelta(hours=1))
        newer = _create(job_store, user_id=1, name="c.pdf", submitted_at=NOW)

        jobs = job_store.list_by_user(1)

        assert [job.id for job in jobs] == [newer.id, older.id]
        assert all(job.user_id == 1 for job in jobs)

    def test_same_timestamp_ordered_by_id(self, job_store):
        first = _create(job_store, submitted_at=NOW)
        second = _create(job_store, submitted_at=NOW)

        assert [job.id for job in job_store.list_by_user(1)] == [second.id, first.id]

    def test_unknown_user(self, job_store):
        _create(job_store)

        assert job_store.list_by_user(42) == []


class TestStatusUpdates:
    """Tests for update_status() and mark_completed()."""

    def test_update_status_with_token(self, job_store):
        job = _create(job_store)

        assert job_store.update_status(job.id, JobStatus.IN_PROGRESS, device_token="123")

        stored = job_store.get_by_id(job.id)
        assert stored.status is JobStatus.IN_PROGRESS
        assert stored.device_token == "123"

    def test_update_missing_job(self, job_store):
        assert not job_store.update_status(999, JobStatus.IN_PROGRESS)

    @pytest.mark.parametrize("terminal", [JobStatus.COMPLETED, JobStatus.FAILED])
    def test_update_never_leaves_terminal_status(self, job_store, terminal):
        job = _create(job_store)
        job_store.mark_completed(job.id, terminal, completed_at=NOW)

        assert not job_store.update_status(job.id, JobStatus.IN_PROGRESS, device_token="42")

        stored = job_store.get_by_id(job.id)
        assert stored.status is terminal
        assert stored.completed_at == NOW
        assert stored.device_token is None

    def test_update_to_terminal_status_rejected(self, job_store):
        job = _create(job_store)

        with pytest.raises(ValueError):
            job_store.update_status(job.id, JobStatus.COMPLETED)

        assert job_store.get_by_id(job.id).completed_at is None

    def test_mark_completed_stamps_time(self, job_store):
        job = _create(job_store)

        assert job_store.mark_completed(job.id, completed_at=NOW)

        stored = job_store.get_by_id(job.id)
        assert stored.status is JobStatus.COMPLETED
        assert stored.completed_at == NOW

    def test_terminal_row_not_restamped(self, job_store):
        job = _create(job_store)
        job_store.mark_completed(job.id, JobStatus.FAILED, completed_at=NOW)

        assert not job_store.mark_completed(job.id, JobStatus.COMPLETED)

        stored = job_store.get_by_id(job.id)
        assert stored.status is JobStatus.FAILED
        assert stored.completed_at == NOW

    def test_mark_completed_requires_terminal_status(self, job_store):
        job = _create(job_store)

        with pytest.raises(ValueError):
            job_store.mark_completed(job.id, JobStatus.IN_PROGRESS)


class TestDeletion:
    """Tests for delete(), delete_submitted_before() and count()."""

    def test_delete(self, job_store):
        job = _create(job_store)

        assert job_store.delete(job.id)
        assert not job_store.delete(job.id)
        assert job_store.get_by_id(job.id) is None

    def test_delete_submitted_before_ignores_status(self, job_store):
        old_pending = _create(job_store, submitted_at=NOW - timedelta(hours=25))
        old_done = _create(job_store, submitted_at=NOW - timedelta(hours=30))
        job_store.mark_completed(old_done.id)
        recent = _create(job_store, submitted_at=NOW - timedelta(minutes=1))

        deleted = job_store.delete_submitted_before(NOW - timedelta(hours=24))

        assert deleted == 2
        assert job_store.get_by_id(old_pending.id) is None
        assert job_store.get_by_id(recent.id) is not None
        assert job_store.count() == 1


class TestDatabaseHandle:
    """Tests for the Database handle lifecycle."""

    def test_closed_database_raises_persistence_error(self):
        database = Database("sqlite://")

        with pytest.raises(PersistenceError):
            database.session()

    def test_open_creates_file_database(self, tmp_path):
        database = Database(f"sqlite:///{tmp_path / 'data' / 'jobs.db'}")
        database.open()
        database.open()

        assert database.is_open
        assert (tmp_path / "data" / "jobs.db").exists()

        database.close()
        database.close()
        assert not database.is_open
