"""
Print job lifecycle service.

Drives jobs through the state machine and reconciles stored status against
the spooler queue.

State Machine:
    pending ──submit ok──> in-progress ──gone from queue──> completed
       │                        │
       └────────cancel──────────┴──────────────────────────> failed

    completed and failed are terminal; nothing moves a job out of them.

Degrade Gracefully:
    A failed submission leaves the job pending and the message is returned
    to the caller. A printer that is temporarily unreachable must not be
    recorded as a permanent failure; the job can be resubmitted or
    reconciled later.

Idempotence:
    reconcile() only ever moves a non-terminal job to completed, and the
    store refuses to re-stamp a terminal row, so concurrent reconciles end
    in the same state regardless of interleaving. Output idempotence (not
    printing two copies) is left to callers: create_and_submit() is called
    once per uploaded document and there is no dedup key.

Usage:
    lifecycle = JobLifecycle(job_store, gateway)

    outcome = lifecycle.create_and_submit(user_id, "a.pdf", "/uploads/a.pdf", {})
    if not outcome.submission.success:
        flash(outcome.message)

    job = lifecycle.reconcile(outcome.job.id, user_id)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from core.device_gateway import DeviceGateway
from core.exceptions import (
    DeviceUnavailableError,
    ForbiddenError,
    InvalidTransitionError,
    JobNotFoundError,
    MissingDataError,
)
from models.device import DeviceSubmissionResult
from models.print_job import Job, JobStatus
from modules.print_settings import normalize_settings
from services.job_store import JobStore
from logging_config import get_logger, get_job_logger


# Module logger
logger = get_logger(__name__)

QUEUED_NOT_SENT_MESSAGE = "Your document is queued but could not be sent to the printer yet"


@dataclass(frozen=True)
class SubmissionOutcome:
    """What create_and_submit() / resubmit() hand back to the caller."""

    job: Job
    submission: DeviceSubmissionResult
    message: str

    def to_dict(self):
        return {
            "job": self.job.to_dict(),
            "submission": self.submission.to_dict(),
            "message": self.message,
        }


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


class JobLifecycle:
    """
    The only writer of job status.

    Attributes:
        store: JobStore for persistence
        gateway: DeviceGateway for the configured spooler
    """

    def __init__(self, store: JobStore, gateway: DeviceGateway):
        self.store = store
        self.gateway = gateway

    # -------------------------------------------------------------------------
    # Creation and submission
    # -------------------------------------------------------------------------

    def create_and_submit(
        self,
        user_id: Any,
        document_name: str,
        document_path: str,
        raw_settings: Optional[Mapping[str, Any]] = None,
    ) -> SubmissionOutcome:
        """
        Persist a new job and send it to the printer.

        Args:
            user_id: Owning user
            document_name: Original file name
            document_path: Stored upload location
            raw_settings: Settings payload (missing fields get defaults)

        Returns:
            SubmissionOutcome; the job is in-progress if the printer accepted
            it, otherwise still pending

        Raises:
            MissingDataError: If user_id, document_name or document_path is missing
            SettingsValidationError: If a setting is not supported (no row is created)
            PersistenceError: If the job cannot be stored
        """
        missing = [
            name for name, value in (
                ("user_id", user_id),
                ("document_name", document_name),
                ("document_path", document_path),
            )
            if _is_missing(value)
        ]
        if missing:
            raise MissingDataError(missing)

        settings = normalize_settings(raw_settings)

        job = self.store.create(
            user_id=user_id,
            document_name=document_name,
            document_path=str(document_path),
            settings=settings,
        )
        job_logger = get_job_logger(job.id)
        job_logger.info(f"Created job for '{document_name}' (user {user_id})")

        return self._submit(job)

    def resubmit(self, job_id: Any, caller_user_id: Any) -> SubmissionOutcome:
        """
        Send a pending job to the printer again.

        Only jobs that never reached the printer can be resubmitted, so this
        cannot produce a second copy of an accepted job.

        Raises:
            JobNotFoundError, ForbiddenError
            InvalidTransitionError: If the job is not pending
        """
        job = self._get_owned(job_id, caller_user_id)
        if job.status is not JobStatus.PENDING:
            raise InvalidTransitionError(job.id, job.status.value, "resubmit")

        get_job_logger(job.id).info("Resubmitting pending job")
        return self._submit(job)

    def _submit(self, job: Job) -> SubmissionOutcome:
        job_logger = get_job_logger(job.id)
        submission = self.gateway.submit(job.document_path, job.settings)

        if not submission.success:
            job_logger.warning(f"Printer submission failed, job stays pending: {submission.message}")
            return SubmissionOutcome(
                job=job,
                submission=submission,
                message=f"{QUEUED_NOT_SENT_MESSAGE}: {submission.message}",
            )

        if not self.store.update_status(job.id, JobStatus.IN_PROGRESS, device_token=submission.token):
            # Cancelled (or swept) while the spooler command was running
            current = self._reload(job.id)
            job_logger.warning(
                f"Printer accepted job (device token {submission.token}) but it is "
                f"already {current.status.value}; status left unchanged"
            )
            return SubmissionOutcome(
                job=current,
                submission=submission,
                message=f"Job was {current.status.value} before the printer accepted it",
            )

        job_logger.info(f"Printer accepted job (device token {submission.token})")

        return SubmissionOutcome(
            job=self._reload(job.id),
            submission=submission,
            message=submission.message,
        )

    # -------------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------------

    def reconcile(self, job_id: Any, caller_user_id: Any) -> Job:
        """
        Bring a job's stored status in line with the spooler queue.

        A job whose device token is no longer queued is marked completed.
        This cannot tell a printed job from one the printer dropped; both
        count as completed.

        No change is made when the job is terminal, was never accepted by
        the printer, or the queue cannot be read.

        Returns:
            The job after reconciliation

        Raises:
            JobNotFoundError, ForbiddenError
        """
        job = self._get_owned(job_id, caller_user_id)
        job_logger = get_job_logger(job.id)

        if job.is_terminal:
            return job

        if not job.device_token:
            job_logger.debug("Job has not reached the printer yet, nothing to reconcile")
            return job

        listing = self.gateway.query_queue()
        if not listing.available:
            job_logger.warning(f"Cannot reconcile, queue unavailable: {listing.message}")
            return job

        if listing.contains(job.device_token):
            return job

        if self.store.mark_completed(job.id, JobStatus.COMPLETED):
            job_logger.info(f"Device token {job.device_token} left the queue, job completed")
        return self._reload(job.id)

    # -------------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------------

    def cancel(self, job_id: Any, caller_user_id: Any) -> Job:
        """
        Cancel a job and mark it failed.

        In-progress jobs are cancelled at the printer first; a pending job
        never reached the printer and is only marked.

        Raises:
            JobNotFoundError, ForbiddenError
            InvalidTransitionError: If the job is already terminal
            DeviceUnavailableError: If the printer refused the cancel (status unchanged)
        """
        job = self._get_owned(job_id, caller_user_id)
        if job.is_terminal:
            raise InvalidTransitionError(job.id, job.status.value, "cancel")

        job_logger = get_job_logger(job.id)

        if job.status is JobStatus.IN_PROGRESS:
            result = self.gateway.cancel(job.device_token)
            if not result.success:
                job_logger.warning(f"Printer cancel failed: {result.message}")
                raise DeviceUnavailableError(result.message, job_id=job.id)

        self.store.mark_completed(job.id, JobStatus.FAILED)
        job_logger.info("Job cancelled")
        return self._reload(job.id)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, job_id: Any, caller_user_id: Any) -> Job:
        """
        Read one job owned by the caller.

        Raises:
            JobNotFoundError, ForbiddenError
        """
        return self._get_owned(job_id, caller_user_id)

    def list_for_user(self, user_id: Any) -> List[Job]:
        """All of a user's jobs, newest first."""
        if _is_missing(user_id):
            raise MissingDataError(["user_id"])
        return self.store.list_by_user(user_id)

    def _get_owned(self, job_id: Any, caller_user_id: Any) -> Job:
        job = self.store.get_by_id(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        if not job.is_owned_by(caller_user_id):
            logger.warning(f"User {caller_user_id} denied access to job {job_id}")
            raise ForbiddenError(job_id)
        return job

    def _reload(self, job_id: Any) -> Job:
        job = self.store.get_by_id(job_id)
        if job is None:
            # Deleted concurrently (retention sweep)
            raise JobNotFoundError(job_id)
        return job
