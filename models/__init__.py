"""
Data models for PrintQueue.

This module contains immutable dataclasses for:
- PrintSettings: Normalized print configuration (enum-valued)
- Job: Snapshot of a stored print job
- Device results: Submission, queue, cancel and status results

Job and PrintSettings are frozen so snapshots can be handed between
threads without copying.
"""

from .print_settings import ColorMode, PaperSize, PaperType, PrintQuality, PrintSettings
from .print_job import Job, JobStatus, TERMINAL_STATUSES
from .device import (
    CancelResult,
    DeviceSubmissionResult,
    PrinterCapabilities,
    PrinterStatus,
    QueueEntry,
    QueueListing,
    SubmissionFailure,
)

__all__ = [
    # Settings models
    "ColorMode",
    "PaperSize",
    "PaperType",
    "PrintQuality",
    "PrintSettings",
    # Job models
    "Job",
    "JobStatus",
    "TERMINAL_STATUSES",
    # Device models
    "CancelResult",
    "DeviceSubmissionResult",
    "PrinterCapabilities",
    "PrinterStatus",
    "QueueEntry",
    "QueueListing",
    "SubmissionFailure",
]
