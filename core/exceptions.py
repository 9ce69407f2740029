"""
Custom exceptions for PrintQueue.

Exception Hierarchy:
    PrintQueueError (base)
    ├── ValidationError            - Bad or missing input (never persisted)
    │   ├── MissingDataError       - Required identifier missing
    │   └── SettingsValidationError - Print settings outside the option table
    ├── JobNotFoundError           - Unknown job id
    ├── ForbiddenError             - Caller does not own the job
    ├── InvalidTransitionError     - Operation not allowed in the job's state
    ├── DeviceUnavailableError     - Printer command failed or timed out
    ├── PersistenceError           - Storage failure (always propagated)
    └── CommandTimeoutError        - Shell command exceeded its timeout

Usage:
    Identity and ownership errors are raised immediately by the job lifecycle.
    Device and cleanup problems are folded into result objects instead, so
    only DeviceUnavailableError surfaces from operations that cannot degrade.
"""

from typing import Any, Dict, List, Optional


class PrintQueueError(Exception):
    """
    Base exception for all PrintQueue errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# INPUT ERRORS - Raised before anything is persisted
# =============================================================================

class ValidationError(PrintQueueError):
    """Invalid input supplied by the caller."""


class MissingDataError(ValidationError):
    """
    One or more required identifiers are missing.

    Raised by the job lifecycle when user id, document name or document
    path is absent. No job row is created.
    """

    def __init__(self, missing_fields: List[str]):
        message = f"Missing required job data: {', '.join(missing_fields)}"
        super().__init__(message, {"missing_fields": missing_fields})
        self.missing_fields = missing_fields


class SettingsValidationError(ValidationError):
    """Print settings contain a value outside the supported option table."""

    def __init__(self, errors: List[str]):
        message = f"Invalid print settings: {', '.join(errors)}"
        super().__init__(message, {"errors": errors})
        self.errors = errors


# =============================================================================
# ACCESS ERRORS - Programming or security errors, never transient
# =============================================================================

class JobNotFoundError(PrintQueueError):
    """No job exists with the requested id."""

    def __init__(self, job_id: Any):
        super().__init__(f"Job {job_id} not found", {"job_id": job_id})
        self.job_id = job_id


class ForbiddenError(PrintQueueError):
    """
    The caller does not own the requested job.

    The message deliberately does not reveal the owner.
    """

    def __init__(self, job_id: Any):
        super().__init__(
            "Access denied. You do not have permission to access this job.",
            {"job_id": job_id},
        )
        self.job_id = job_id


class InvalidTransitionError(PrintQueueError):
    """The requested operation is not allowed from the job's current status."""

    def __init__(self, job_id: Any, current_status: str, operation: str):
        message = f"Cannot {operation} job {job_id} while it is {current_status}"
        details = {
            "job_id": job_id,
            "status": current_status,
            "operation": operation,
        }
        super().__init__(message, details)
        self.job_id = job_id
        self.current_status = current_status
        self.operation = operation


# =============================================================================
# RUNTIME ERRORS - External systems
# =============================================================================

class DeviceUnavailableError(PrintQueueError):
    """
    A printer command failed or timed out.

    The job stays in its prior non-terminal state; the message is meant to
    be shown to the user.
    """

    def __init__(self, message: str, job_id: Any = None):
        details = {
            "resolution": "Check that the printer is connected and the print spooler is running"
        }
        if job_id is not None:
            details["job_id"] = job_id
        super().__init__(message, details)
        self.job_id = job_id


class PersistenceError(PrintQueueError):
    """
    Database read or write failed.

    Always propagated - a failed write must never be treated as success.
    """

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Database {operation} failed: {reason}",
            {"operation": operation},
        )
        self.operation = operation
        self.reason = reason


class CommandTimeoutError(PrintQueueError):
    """A spooler command did not finish within its timeout."""

    def __init__(self, program: str, timeout_seconds: float):
        message = f"Command '{program}' timed out after {timeout_seconds:.1f}s"
        super().__init__(message, {"program": program, "timeout_seconds": timeout_seconds})
        self.program = program
        self.timeout_seconds = timeout_seconds
