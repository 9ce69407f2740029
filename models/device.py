"""
Printer gateway result models.

Every gateway operation returns one of these instead of raising, because the
print spooler is an unreliable external system. None of them are persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SubmissionFailure(Enum):
    """Why a submission did not reach the printer."""

    DEVICE_NOT_FOUND = "device_not_found"
    PERMISSION_DENIED = "permission_denied"
    TIMEOUT = "timeout"
    INVALID_REQUEST = "invalid_request"
    """Document missing or settings invalid - no command was issued."""
    OTHER = "other"


@dataclass(frozen=True)
class DeviceSubmissionResult:
    """Result of a single submit() call."""

    success: bool
    token: Optional[str]
    """Spooler job id; "unknown" when the command output carried none."""
    message: str
    failure: Optional[SubmissionFailure] = None

    @classmethod
    def accepted(cls, token: str) -> "DeviceSubmissionResult":
        return cls(
            success=True,
            token=token,
            message=f"Job submitted successfully to printer. Job ID: {token}",
        )

    @classmethod
    def rejected(cls, failure: SubmissionFailure, reason: str) -> "DeviceSubmissionResult":
        return cls(
            success=False,
            token=None,
            message=f"Failed to submit job to printer: {reason}",
            failure=failure,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "token": self.token,
            "message": self.message,
            "failure": self.failure.value if self.failure else None,
        }


@dataclass(frozen=True)
class QueueEntry:
    """One line of the spooler queue listing."""

    rank: str
    owner: str
    token: str
    files: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rank": self.rank,
            "owner": self.owner,
            "token": self.token,
            "files": self.files,
        }


@dataclass(frozen=True)
class QueueListing:
    """
    Parsed spooler queue.

    available is False when the queue could not be read at all, so an empty
    list from a failed query is never mistaken for an empty queue.
    """

    jobs: List[QueueEntry] = field(default_factory=list)
    message: str = ""
    available: bool = True

    def contains(self, token: Optional[str]) -> bool:
        """Whether a spooler job id is still queued."""
        if not token:
            return False
        return any(entry.token == token for entry in self.jobs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobs": [entry.to_dict() for entry in self.jobs],
            "message": self.message,
            "available": self.available,
        }


@dataclass(frozen=True)
class CancelResult:
    success: bool
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "message": self.message}


@dataclass(frozen=True)
class PrinterStatus:
    """
    Best-effort printer reachability.

    status is one of: available, idle, processing, not_found,
    not_configured, subsystem_unavailable.
    """

    available: bool
    status: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "available": self.available,
            "status": self.status,
            "message": self.message,
        }


@dataclass(frozen=True)
class PrinterCapabilities:
    options: Dict[str, List[Any]]
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"capabilities": self.options, "message": self.message}
