"""
Services layer for PrintQueue.

This module contains the business logic services:
- JobStore: Print job persistence
- JobLifecycle: Job state machine, submission and reconciliation
- RetentionSweeper: Daily cleanup of old documents and job rows

Thread Model:
    Main Thread (Flask)
    ├── Request threads (JobLifecycle calls, one unit of work each)
    └── RetentionSweeper thread (daily cleanup loop)
"""

from .job_store import JobStore
from .job_lifecycle import JobLifecycle, SubmissionOutcome
from .retention_sweeper import CleanupSummary, RetentionSweeper, SweepResult

__all__ = [
    "JobStore",
    "JobLifecycle",
    "SubmissionOutcome",
    "RetentionSweeper",
    "SweepResult",
    "CleanupSummary",
]
