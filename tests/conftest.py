"""
Shared fixtures for PrintQueue tests.

The spooler is never contacted: gateways are built on a FakeRunner that
records every command and replays scripted CommandResults.
"""

import pytest

from core.command_runner import CommandResult
from core.database import Database
from core.device_gateway import CupsGateway
from services.job_lifecycle import JobLifecycle
from services.job_store import JobStore


PRINTER = "Ink-Tank-310-series"


class FakeRunner:
    """
    CommandRunner stand-in.

    Responses are looked up by (program, *args) first, then by program.
    A response may be a CommandResult, an exception instance to raise, or a
    callable taking (program, args) that returns one of those.
    Unscripted commands succeed with empty output.
    """

    def __init__(self):
        self.calls = []
        self._responses = {}

    def script(self, program, response, *args):
        key = (program, *args) if args else program
        self._responses[key] = response

    def run(self, program, args=(), timeout=None):
        self.calls.append((program, list(args), timeout))
        response = self._responses.get((program, *args), self._responses.get(program))
        if response is None:
            return CommandResult(stdout="", stderr="", exit_code=0)
        if callable(response):
            response = response(program, list(args))
        if isinstance(response, BaseException):
            raise response
        return response

    def programs(self):
        return [call[0] for call in self.calls]


def ok(stdout=""):
    return CommandResult(stdout=stdout, stderr="", exit_code=0)


def failed(stderr="", exit_code=1, stdout=""):
    return CommandResult(stdout=stdout, stderr=stderr, exit_code=exit_code)


def lp_accepted(token):
    return ok(f"request id is {PRINTER}-{token} (1 file(s))\n")


def lpq_listing(*tokens):
    lines = [
        f"{PRINTER} is ready and printing",
        "Rank    Owner   Job     File(s)                         Total Size",
    ]
    for position, token in enumerate(tokens):
        rank = "active" if position == 0 else f"{position}st"
        lines.append(f"{rank}  pi      {token}     document.pdf                    48213 bytes")
    return ok("\n".join(lines) + "\n")


LPQ_EMPTY = ok(f"{PRINTER} is ready\nno entries\n")


def windows_queue(*jobs):
    """Get-PrintJob | ConvertTo-Csv output for (id, document_name) pairs."""
    lines = ['"Position","UserName","Id","DocumentName"']
    for position, (job_id, document_name) in enumerate(jobs, start=1):
        lines.append(f'"{position}","kiosk","{job_id}","{document_name}"')
    return ok("\r\n".join(lines) + "\r\n")


# Fixtures

@pytest.fixture
def database():
    """Open in-memory database, closed after the test."""
    db = Database("sqlite://")
    db.open()
    yield db
    db.close()


@pytest.fixture
def job_store(database):
    return JobStore(database)


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def gateway(runner):
    return CupsGateway(printer_name=PRINTER, runner=runner)


@pytest.fixture
def lifecycle(job_store, gateway):
    return JobLifecycle(job_store, gateway)


@pytest.fixture
def document(tmp_path):
    """An uploaded document on disk."""
    path = tmp_path / "report.pdf"
    path.write_bytes(b"%PDF-1.4 test document")
    return path
