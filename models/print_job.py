"""
Print job data models.

Job instances are immutable snapshots of a database row. The job lifecycle
service is the only writer of status fields; the store hands out fresh
snapshots after every write.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .print_settings import PrintSettings


class JobStatus(Enum):
    """
    Status of a print job.

    Lifecycle:
        PENDING -> IN_PROGRESS -> (COMPLETED | FAILED)

    PENDING may also move straight to FAILED when a job that never reached
    the printer is cancelled.
    """

    PENDING = "pending"
    """Job is recorded but has not been accepted by the printer yet."""

    IN_PROGRESS = "in-progress"
    """Job was accepted by the print spooler."""

    COMPLETED = "completed"
    """Job left the spooler queue."""

    FAILED = "failed"
    """Job was cancelled or rejected."""

    @property
    def is_terminal(self) -> bool:
        """True for COMPLETED and FAILED - no further transitions."""
        return self in TERMINAL_STATUSES

    def can_transition_to(self, target: "JobStatus") -> bool:
        """Whether moving from this status to target is allowed."""
        return target in _TRANSITIONS[self]


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})

_TRANSITIONS = {
    JobStatus.PENDING: frozenset({JobStatus.IN_PROGRESS, JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.IN_PROGRESS: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


@dataclass(frozen=True)
class Job:
    """One user's request to print one document with one settings snapshot."""

    id: int
    """Store-assigned unique identifier."""

    user_id: int
    """Owning user. Never changes after creation."""

    document_name: str
    """Original file name shown to the user."""

    document_path: str
    """Where the uploaded document is stored."""

    settings: PrintSettings
    """Normalized print settings."""

    status: JobStatus
    """Current lifecycle status."""

    submitted_at: datetime
    """When the job row was created (UTC)."""

    completed_at: Optional[datetime] = None
    """Set if and only if the status is terminal."""

    device_token: Optional[str] = None
    """Spooler-assigned job id, set once the printer accepted the job."""

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def is_owned_by(self, user_id: Any) -> bool:
        return self.user_id == user_id

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "document_name": self.document_name,
            "document_path": self.document_path,
            **self.settings.to_dict(),
            "status": self.status.value,
            "submitted_at": self.submitted_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "device_token": self.device_token,
        }
