"""
Unit tests for the job status state machine.
"""

import pytest

from models.print_job import JobStatus


class TestJobStatus:
    """Tests for JobStatus transitions."""

    @pytest.mark.parametrize("source,target", [
        (JobStatus.PENDING, JobStatus.IN_PROGRESS),
        (JobStatus.PENDING, JobStatus.FAILED),
        (JobStatus.PENDING, JobStatus.COMPLETED),
        (JobStatus.IN_PROGRESS, JobStatus.COMPLETED),
        (JobStatus.IN_PROGRESS, JobStatus.FAILED),
    ])
    def test_allowed(self, source, target):
        assert source.can_transition_to(target)

    @pytest.mark.parametrize("terminal", [JobStatus.COMPLETED, JobStatus.FAILED])
    def test_terminal_statuses_are_final(self, terminal):
        assert terminal.is_terminal
        assert not any(terminal.can_transition_to(target) for target in JobStatus)

    def test_nothing_returns_to_pending(self):
        assert not any(source.can_transition_to(JobStatus.PENDING) for source in JobStatus)

    def test_in_progress_is_not_revisited(self):
        assert not JobStatus.IN_PROGRESS.can_transition_to(JobStatus.IN_PROGRESS)
