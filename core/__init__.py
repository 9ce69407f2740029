"""
Core module for PrintQueue.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- database: Database handle and print job schema
- command_runner: Shell command interface for the print spooler
- device_gateway: Spooler-specific printer operations (import directly)
"""

from .exceptions import (
    PrintQueueError,
    ValidationError,
    MissingDataError,
    SettingsValidationError,
    JobNotFoundError,
    ForbiddenError,
    InvalidTransitionError,
    DeviceUnavailableError,
    PersistenceError,
    CommandTimeoutError,
)
from .database import Database
from .command_runner import CommandRunner, CommandResult

__all__ = [
    "PrintQueueError",
    "ValidationError",
    "MissingDataError",
    "SettingsValidationError",
    "JobNotFoundError",
    "ForbiddenError",
    "InvalidTransitionError",
    "DeviceUnavailableError",
    "PersistenceError",
    "CommandTimeoutError",
    "Database",
    "CommandRunner",
    "CommandResult",
]
