"""
Shell command interface for the print spooler.

The device gateway is the only caller. A command either completes (with any
exit code) and yields a CommandResult, or exceeds its timeout and raises
CommandTimeoutError. OSError from a missing or non-executable program is left
to propagate so the gateway can classify it.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

from .exceptions import CommandTimeoutError
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Captured output of a finished command."""

    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """stdout and stderr combined, for message matching."""
        return f"{self.stdout}\n{self.stderr}".strip()


class CommandRunner:
    """Runs spooler programs with an argument list (never through a shell)."""

    def __init__(self, default_timeout: float = 5.0):
        self.default_timeout = default_timeout

    def run(
        self,
        program: str,
        args: Sequence[str] = (),
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """
        Run a program and capture its output.

        Args:
            program: Executable name (looked up on PATH)
            args: Argument list
            timeout: Seconds before the command is killed (default_timeout if None)

        Returns:
            CommandResult with decoded stdout/stderr and the exit code

        Raises:
            CommandTimeoutError: If the command did not finish in time
            OSError: If the program cannot be started
        """
        timeout = self.default_timeout if timeout is None else timeout
        argv = [program, *args]
        logger.debug(f"Running command: {' '.join(argv)}")

        try:
            completed = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            logger.warning(f"Command '{program}' timed out after {timeout}s")
            raise CommandTimeoutError(program, timeout) from e

        if completed.returncode != 0:
            logger.debug(
                f"Command '{program}' exited with {completed.returncode}: {completed.stderr.strip()}"
            )

        return CommandResult(
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            exit_code=completed.returncode,
        )
