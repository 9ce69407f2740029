"""
Print job persistence.

JobStore is a pure persistence surface: it never changes a job on its own
initiative and has no notion of a "current user". Ownership checks belong to
the job lifecycle service.

Every write runs in its own short transaction on a single row (or one bulk
DELETE for retention). Status writes are conditional on the stored status
being allowed to move to the new one (JobStatus.can_transition_to), so a
terminal row is never rewritten. Storage failures are raised as
PersistenceError and never swallowed.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from core.database import Database, PrintJobRow
from core.exceptions import PersistenceError
from models.print_job import Job, JobStatus
from models.print_settings import ColorMode, PaperSize, PaperType, PrintQuality, PrintSettings
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


def _source_values(target: JobStatus) -> List[str]:
    """Stored status values a row may hold to be moved to target."""
    return [status.value for status in JobStatus if status.can_transition_to(target)]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _row_to_job(row: PrintJobRow) -> Job:
    """Convert a database row into an immutable Job snapshot."""
    return Job(
        id=row.id,
        user_id=row.user_id,
        document_name=row.document_name,
        document_path=row.document_path,
        settings=PrintSettings(
            paper_type=PaperType(row.paper_type),
            print_quality=PrintQuality(row.print_quality),
            color_mode=ColorMode(row.color_mode),
            paper_size=PaperSize(row.paper_size),
        ),
        status=JobStatus(row.status),
        submitted_at=row.submitted_at,
        completed_at=row.completed_at,
        device_token=row.device_token,
    )


class JobStore:
    """
    Durable record of print jobs.

    Attributes:
        database: Open Database handle (injected)
    """

    def __init__(self, database: Database):
        self.database = database

    def create(
        self,
        user_id: Any,
        document_name: str,
        document_path: str,
        settings: PrintSettings,
        status: JobStatus = JobStatus.PENDING,
        submitted_at: Optional[datetime] = None,
    ) -> Job:
        """
        Insert a new job row.

        Args:
            user_id: Owning user
            document_name: Display name of the document
            document_path: Storage location of the document
            settings: Normalized print settings
            status: Initial status (default PENDING)
            submitted_at: Creation time (default now, UTC)

        Returns:
            The stored Job with its assigned id

        Raises:
            PersistenceError: If the insert fails
        """
        row = PrintJobRow(
            user_id=user_id,
            document_name=document_name,
            document_path=str(document_path),
            paper_type=settings.paper_type.value,
            print_quality=int(settings.print_quality),
            color_mode=settings.color_mode.value,
            paper_size=settings.paper_size.value,
            status=status.value,
            submitted_at=submitted_at or _utcnow(),
        )

        try:
            with self.database.session() as session, session.begin():
                session.add(row)
                session.flush()
                job = _row_to_job(row)
        except SQLAlchemyError as e:
            raise PersistenceError("insert", str(e)) from e

        logger.debug(f"Stored job {job.id} for user {user_id}")
        return job

    def get_by_id(self, job_id: Any) -> Optional[Job]:
        """
        Retrieve a job regardless of owner.

        Returns:
            Job or None if not found
        """
        try:
            with self.database.session() as session:
                row = session.get(PrintJobRow, job_id)
                return _row_to_job(row) if row else None
        except SQLAlchemyError as e:
            raise PersistenceError("select", str(e)) from e

    def list_by_user(self, user_id: Any) -> List[Job]:
        """
        List one user's jobs, newest submission first.

        Never returns a job owned by another user.
        """
        query = (
            select(PrintJobRow)
            .where(PrintJobRow.user_id == user_id)
            .order_by(PrintJobRow.submitted_at.desc(), PrintJobRow.id.desc())
        )
        try:
            with self.database.session() as session:
                return [_row_to_job(row) for row in session.scalars(query)]
        except SQLAlchemyError as e:
            raise PersistenceError("select", str(e)) from e

    def update_status(
        self,
        job_id: Any,
        status: JobStatus,
        device_token: Optional[str] = None,
    ) -> bool:
        """
        Move a job to a non-terminal status (and optionally set its device token).

        The row is only updated if its current status may transition to
        status, so a job that was cancelled or completed in the meantime is
        left as it is.

        Returns:
            True if this call performed the transition, False if the job does
            not exist or its current status does not allow it

        Raises:
            ValueError: If status is terminal (use mark_completed())
        """
        if status.is_terminal:
            raise ValueError(f"{status.value} is terminal; use mark_completed()")

        values = {"status": status.value}
        if device_token is not None:
            values["device_token"] = device_token

        try:
            with self.database.session() as session, session.begin():
                result = session.execute(
                    update(PrintJobRow)
                    .where(
                        PrintJobRow.id == job_id,
                        PrintJobRow.status.in_(_source_values(status)),
                    )
                    .values(**values)
                )
                return result.rowcount > 0
        except SQLAlchemyError as e:
            raise PersistenceError("update", str(e)) from e

    def mark_completed(
        self,
        job_id: Any,
        status: JobStatus = JobStatus.COMPLETED,
        completed_at: Optional[datetime] = None,
    ) -> bool:
        """
        Move a job into a terminal status and stamp its completion time.

        Only applies to rows whose status may transition to status (never a
        terminal row), so two concurrent callers cannot both stamp the same
        job.

        Args:
            job_id: Job to finish
            status: COMPLETED or FAILED
            completed_at: Completion time (default now, UTC)

        Returns:
            True if this call performed the transition

        Raises:
            ValueError: If status is not terminal
        """
        if not status.is_terminal:
            raise ValueError(f"{status.value} is not a terminal status")

        try:
            with self.database.session() as session, session.begin():
                result = session.execute(
                    update(PrintJobRow)
                    .where(
                        PrintJobRow.id == job_id,
                        PrintJobRow.status.in_(_source_values(status)),
                    )
                    .values(status=status.value, completed_at=completed_at or _utcnow())
                )
                return result.rowcount > 0
        except SQLAlchemyError as e:
            raise PersistenceError("update", str(e)) from e

    def delete(self, job_id: Any) -> bool:
        """
        Delete a job row.

        Returns:
            True if deleted, False if not found
        """
        try:
            with self.database.session() as session, session.begin():
                result = session.execute(delete(PrintJobRow).where(PrintJobRow.id == job_id))
                return result.rowcount > 0
        except SQLAlchemyError as e:
            raise PersistenceError("delete", str(e)) from e

    def delete_submitted_before(self, cutoff: datetime) -> int:
        """
        Delete every job submitted before cutoff, whatever its status.

        Returns:
            Number of rows deleted
        """
        try:
            with self.database.session() as session, session.begin():
                result = session.execute(
                    delete(PrintJobRow).where(PrintJobRow.submitted_at < cutoff)
                )
                return result.rowcount
        except SQLAlchemyError as e:
            raise PersistenceError("delete", str(e)) from e

    def count(self) -> int:
        try:
            with self.database.session() as session:
                return session.scalar(select(func.count()).select_from(PrintJobRow))
        except SQLAlchemyError as e:
            raise PersistenceError("select", str(e)) from e
