"""
Print spooler gateway.

Translates print settings into the spooler's option syntax and issues
submit / queue / cancel / status commands, parsing their text output into
result objects from models.device.

PLATFORM DISPATCH:
    DeviceGateway defines the operation set; each spooler gets one subclass:
        - CupsGateway    - lp, lpq, lpstat, cancel, lpoptions
        - WindowsGateway - print /D: and PowerShell print cmdlets
    create_gateway() picks the variant once at startup from configuration.
    Nothing re-checks the platform per call.

NEVER RAISES:
    Every public operation returns a result object. The spooler is an
    unreliable external system; timeouts and missing programs become
    failure results with a distinct message per cause. Nothing is retried
    here - retry policy belongs to the caller.

Usage:
    gateway = create_gateway("auto", printer_name="Ink-Tank-310-series")

    result = gateway.submit("/uploads/a.pdf", {"paper_size": "A4"})
    if result.success:
        listing = gateway.query_queue()
        still_queued = listing.contains(result.token)
"""

from __future__ import annotations

import csv
import io
import ntpath
import os
import platform
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from .command_runner import CommandResult, CommandRunner
from .exceptions import CommandTimeoutError
from models.device import (
    CancelResult,
    DeviceSubmissionResult,
    PrinterCapabilities,
    PrinterStatus,
    QueueEntry,
    QueueListing,
    SubmissionFailure,
)
from modules.print_settings import get_available_options, validate_settings
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

DEFAULT_PRINTER_NAME = "Ink-Tank-310-series"

UNKNOWN_TOKEN = "unknown"


def _settings_values(settings: Any) -> Mapping[str, Any]:
    """Canonical-key view of a settings mapping or PrintSettings."""
    if hasattr(settings, "to_dict"):
        return settings.to_dict()
    if not isinstance(settings, Mapping):
        return {}
    values = dict(settings)
    for camel, snake in (
        ("paperType", "paper_type"),
        ("printQuality", "print_quality"),
        ("colorMode", "color_mode"),
        ("paperSize", "paper_size"),
    ):
        if snake not in values and camel in values:
            values[snake] = values[camel]
    return values


def _quality_key(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class DeviceGateway(ABC):
    """
    Spooler-independent printer operations.

    Subclasses provide the command syntax; this class owns the validation,
    the failure classification and the never-raise guarantee.

    Attributes:
        printer_name: Spooler destination name
        runner: CommandRunner used for every command
        command_timeout: Timeout for query/cancel/status commands (seconds)
        submit_timeout: Timeout for submit commands (seconds)
    """

    # Option mappings, in emission order: paper size, color mode, quality, paper type
    PAPER_SIZE_OPTIONS: Dict[str, str] = {}
    COLOR_MODE_OPTIONS: Dict[str, str] = {}
    QUALITY_OPTIONS: Dict[int, str] = {}
    PAPER_TYPE_OPTIONS: Dict[str, str] = {}

    def __init__(
        self,
        printer_name: str = DEFAULT_PRINTER_NAME,
        runner: Optional[CommandRunner] = None,
        command_timeout: float = 5.0,
        submit_timeout: float = 30.0,
    ):
        self.printer_name = printer_name
        self.runner = runner or CommandRunner(default_timeout=command_timeout)
        self.command_timeout = command_timeout
        self.submit_timeout = submit_timeout

    # -------------------------------------------------------------------------
    # Options
    # -------------------------------------------------------------------------

    def option_tokens(self, settings: Any) -> List[str]:
        """
        Map each setting to one spooler option token.

        Fields without a mapping are silently omitted.
        """
        values = _settings_values(settings)
        tokens = []

        for options, value in (
            (self.PAPER_SIZE_OPTIONS, values.get("paper_size")),
            (self.COLOR_MODE_OPTIONS, values.get("color_mode")),
            (self.QUALITY_OPTIONS, _quality_key(values.get("print_quality"))),
            (self.PAPER_TYPE_OPTIONS, values.get("paper_type")),
        ):
            try:
                token = options.get(value)
            except TypeError:
                token = None
            if token:
                tokens.append(token)

        return tokens

    def format_options(self, settings: Any) -> str:
        """
        Deterministic option string for a settings record.

        Order is paper size, color mode, quality, paper type. Never raises.
        """
        formatted = " ".join(self.option_tokens(settings))
        logger.debug(f"Formatted printer options: {formatted!r}")
        return formatted

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def submit(self, document_path: str, settings: Any) -> DeviceSubmissionResult:
        """
        Send a document to the printer.

        No command is issued when the document does not exist or the
        settings fail validation.

        Args:
            document_path: File to print
            settings: Settings mapping or PrintSettings

        Returns:
            DeviceSubmissionResult (token "unknown" if the spooler output
            carried no job id)
        """
        if not document_path or not os.path.exists(document_path):
            logger.error(f"Document file not found: {document_path}")
            return DeviceSubmissionResult.rejected(
                SubmissionFailure.INVALID_REQUEST,
                f"Document file not found: {document_path}",
            )

        validation = validate_settings(settings)
        if not validation.valid:
            logger.error(f"Invalid print settings: {validation.errors}")
            return DeviceSubmissionResult.rejected(
                SubmissionFailure.INVALID_REQUEST,
                f"Invalid print settings: {', '.join(validation.errors)}",
            )

        program, args = self._submit_command(str(document_path), settings)
        logger.info(f"Submitting {document_path} to {self.printer_name}")

        try:
            result = self.runner.run(program, args, timeout=self.submit_timeout)
        except CommandTimeoutError:
            return DeviceSubmissionResult.rejected(
                SubmissionFailure.TIMEOUT, "Printer communication timeout"
            )
        except FileNotFoundError:
            return self._rejected_not_found()
        except PermissionError:
            return self._rejected_permission()
        except OSError as e:
            return DeviceSubmissionResult.rejected(
                SubmissionFailure.OTHER, f"Printer submission failed: {e}"
            )

        if not result.ok:
            return self._classify_failure(result)

        token = self._parse_token(result, str(document_path)) or UNKNOWN_TOKEN
        logger.info(f"Job submitted successfully with device token {token}")
        return DeviceSubmissionResult.accepted(token)

    def query_queue(self) -> QueueListing:
        """
        List jobs currently in the spooler queue.

        Returns:
            QueueListing; on any failure an empty listing with available=False
        """
        program, args = self._queue_command()
        try:
            result = self.runner.run(program, args, timeout=self.command_timeout)
        except (CommandTimeoutError, OSError) as e:
            logger.warning(f"Failed to retrieve print queue: {e}")
            return QueueListing(message=f"Failed to retrieve print queue: {e}", available=False)

        if not result.ok:
            reason = result.stderr.strip() or f"exit status {result.exit_code}"
            logger.warning(f"Failed to retrieve print queue: {reason}")
            return QueueListing(message=f"Failed to retrieve print queue: {reason}", available=False)

        try:
            jobs = self._parse_queue(result.stdout)
        except (ValueError, csv.Error) as e:
            logger.warning(f"Could not parse print queue output: {e}")
            return QueueListing(message=f"Failed to parse print queue: {e}", available=False)

        return QueueListing(jobs=jobs, message=f"Print queue has {len(jobs)} job(s)")

    def cancel(self, token: Optional[str]) -> CancelResult:
        """
        Cancel a queued spooler job.

        Returns:
            CancelResult; success reflects the command's exit status
        """
        if not token:
            return CancelResult(success=False, message="Failed to cancel job: Job ID is required")

        program, args = self._cancel_command(str(token))
        try:
            result = self.runner.run(program, args, timeout=self.command_timeout)
        except (CommandTimeoutError, OSError) as e:
            return CancelResult(success=False, message=f"Failed to cancel job: {e}")

        if not result.ok:
            reason = result.stderr.strip() or f"exit status {result.exit_code}"
            return CancelResult(success=False, message=f"Failed to cancel job: {reason}")

        logger.info(f"Cancelled device job {token}")
        return CancelResult(success=True, message=f"Job {token} cancelled successfully")

    def get_capabilities(self) -> PrinterCapabilities:
        """
        Supported option table, annotated with whether the printer answered.

        The table itself is fixed; the probe only confirms reachability.
        """
        program, args = self._capabilities_command()
        try:
            result = self.runner.run(program, args, timeout=self.command_timeout)
            probed = result.ok
        except (CommandTimeoutError, OSError):
            probed = False

        message = (
            "Printer capabilities retrieved successfully" if probed
            else "Using default capabilities"
        )
        return PrinterCapabilities(options=get_available_options(), message=message)

    @abstractmethod
    def get_status(self) -> PrinterStatus:
        """Classify printer reachability. Never raises."""

    # -------------------------------------------------------------------------
    # Spooler syntax (subclasses)
    # -------------------------------------------------------------------------

    @abstractmethod
    def _submit_command(self, document_path: str, settings: Any) -> tuple:
        """(program, args) that prints document_path."""

    @abstractmethod
    def _parse_token(self, result: CommandResult, document_path: str) -> Optional[str]:
        """Spooler job id from a successful submit, or None."""

    @abstractmethod
    def _queue_command(self) -> tuple:
        """(program, args) that lists the queue."""

    @abstractmethod
    def _parse_queue(self, output: str) -> List[QueueEntry]:
        """Queue entries from the listing output."""

    @abstractmethod
    def _cancel_command(self, token: str) -> tuple:
        """(program, args) that cancels a spooler job."""

    @abstractmethod
    def _capabilities_command(self) -> tuple:
        """(program, args) that probes printer options."""

    # -------------------------------------------------------------------------
    # Failure classification
    # -------------------------------------------------------------------------

    NOT_FOUND_MARKERS = ("does not exist", "not found", "unknown destination", "no such file or directory")
    PERMISSION_MARKERS = ("permission denied", "access denied", "forbidden", "not authorized")

    def _rejected_not_found(self) -> DeviceSubmissionResult:
        return DeviceSubmissionResult.rejected(
            SubmissionFailure.DEVICE_NOT_FOUND,
            "Printer not found or print spooler not installed",
        )

    def _rejected_permission(self) -> DeviceSubmissionResult:
        return DeviceSubmissionResult.rejected(
            SubmissionFailure.PERMISSION_DENIED,
            "Permission denied. User may not have access to printer",
        )

    def _classify_failure(self, result: CommandResult) -> DeviceSubmissionResult:
        output = result.output.lower()
        logger.error(f"Printer command failed ({result.exit_code}): {result.output}")

        if any(marker in output for marker in self.PERMISSION_MARKERS):
            return self._rejected_permission()
        if any(marker in output for marker in self.NOT_FOUND_MARKERS):
            return self._rejected_not_found()
        if "timed out" in output or "timeout" in output:
            return DeviceSubmissionResult.rejected(
                SubmissionFailure.TIMEOUT, "Printer communication timeout"
            )

        reason = result.output or f"exit status {result.exit_code}"
        return DeviceSubmissionResult.rejected(
            SubmissionFailure.OTHER, f"Printer submission failed: {reason}"
        )


class CupsGateway(DeviceGateway):
    """CUPS / System V spooler commands (Linux, Raspberry Pi, macOS)."""

    PAPER_SIZE_OPTIONS = {
        "A4": "-o media=A4",
        "Letter": "-o media=Letter",
        "Legal": "-o media=Legal",
    }
    COLOR_MODE_OPTIONS = {
        "Color": "-o ColorModel=RGB",
        "Grayscale": "-o ColorModel=Gray",
    }
    QUALITY_OPTIONS = {
        600: "-o Resolution=600x600dpi",
        1200: "-o Resolution=1200x1200dpi",
    }
    PAPER_TYPE_OPTIONS = {
        "Plain Paper": "-o MediaType=Plain",
        "Glossy": "-o MediaType=Glossy",
    }

    # "request id is Ink-Tank-310-series-123 (1 file(s))"
    REQUEST_ID_PATTERN = re.compile(r"request id is [\w\-]+-(\d+)")
    BYTES_SUFFIX = re.compile(r"\s+\d+\s+bytes$")

    def _submit_command(self, document_path: str, settings: Any) -> tuple:
        args = ["-d", self.printer_name]
        for token in self.option_tokens(settings):
            args.extend(token.split(" ", 1))
        args.append(document_path)
        return "lp", args

    def _parse_token(self, result: CommandResult, document_path: str) -> Optional[str]:
        match = self.REQUEST_ID_PATTERN.search(result.stdout)
        return match.group(1) if match else None

    def _queue_command(self) -> tuple:
        return "lpq", ["-P", self.printer_name]

    def _parse_queue(self, output: str) -> List[QueueEntry]:
        """
        Parse lpq output.

        Example:
            Ink-Tank-310-series is ready and printing
            Rank    Owner   Job     File(s)                         Total Size
            active  pi      123     report.pdf                      48213 bytes
            1st     pi      124     photo.png                       1029 bytes
        """
        jobs = []
        lines = [line for line in output.splitlines() if line.strip()]

        # First line is the printer state
        for line in lines[1:]:
            parts = line.split()
            if len(parts) < 3 or parts[0].lower() == "rank":
                continue
            if not parts[2].isdigit():
                continue
            files = self.BYTES_SUFFIX.sub("", " ".join(parts[3:]))
            jobs.append(QueueEntry(rank=parts[0], owner=parts[1], token=parts[2], files=files))

        return jobs

    def _cancel_command(self, token: str) -> tuple:
        return "cancel", [f"{self.printer_name}-{token}"]

    def _capabilities_command(self) -> tuple:
        return "lpoptions", ["-p", self.printer_name, "-l"]

    def get_status(self) -> PrinterStatus:
        try:
            result = self.runner.run("lpstat", ["-p", "-d"], timeout=self.command_timeout)
        except (CommandTimeoutError, OSError):
            result = None

        if result is not None and result.ok:
            output = result.stdout
            if self.printer_name not in output:
                return PrinterStatus(
                    available=False,
                    status="not_found",
                    message=f"Printer {self.printer_name} not found",
                )
            if "idle" in output:
                return PrinterStatus(
                    available=True,
                    status="idle",
                    message=f"Printer {self.printer_name} is ready",
                )
            if "processing" in output or "now printing" in output:
                return PrinterStatus(
                    available=True,
                    status="processing",
                    message=f"Printer {self.printer_name} is currently processing a job",
                )
            return PrinterStatus(
                available=True,
                status="available",
                message=f"Printer {self.printer_name} is available",
            )

        # lpstat -p -d fails when no default destination is set; tell a
        # running-but-unconfigured CUPS apart from a missing one
        try:
            fallback = self.runner.run("lpstat", ["-p"], timeout=self.command_timeout)
            cups_running = fallback.ok
        except (CommandTimeoutError, OSError):
            cups_running = False

        if cups_running:
            return PrinterStatus(
                available=False,
                status="not_configured",
                message="CUPS is running but printer is not configured",
            )
        return PrinterStatus(
            available=False,
            status="subsystem_unavailable",
            message="CUPS service is not available or not running",
        )


class WindowsGateway(DeviceGateway):
    """
    Windows spooler commands.

    Submission uses the print command, which accepts no print options and
    reports no job id; the token is the Get-PrintJob Id of the newest queued
    job with the same document name, so reconcile and cancel address the
    job the spooler actually holds. Queue, cancel and status go through the
    PowerShell PrintManagement cmdlets.
    """

    POWERSHELL = "powershell"

    def _powershell(self, script: str) -> tuple:
        return self.POWERSHELL, ["-NoProfile", "-NonInteractive", "-Command", script]

    def _quoted_printer(self) -> str:
        return self.printer_name.replace("'", "''")

    def _submit_command(self, document_path: str, settings: Any) -> tuple:
        return "print", [f"/D:{self.printer_name}", document_path]

    def _parse_token(self, result: CommandResult, document_path: str) -> Optional[str]:
        """
        Look the job up in the queue, since print reports no job id.

        Takes the newest queued entry whose document name matches the
        submitted file. None (stored as "unknown") when the queue cannot be
        read or the job has already left it.
        """
        listing = self.query_queue()
        if not listing.available:
            return None

        file_name = ntpath.basename(document_path).lower()
        matches = [
            entry for entry in listing.jobs
            if entry.token.isdigit() and ntpath.basename(entry.files).lower() == file_name
        ]
        if not matches:
            logger.warning(f"Submitted {file_name} but found no matching Windows print job")
            return None

        return max(matches, key=lambda entry: int(entry.token)).token

    def _queue_command(self) -> tuple:
        return self._powershell(
            f"Get-PrintJob -PrinterName '{self._quoted_printer()}' | "
            "Select-Object Position,UserName,Id,DocumentName | "
            "ConvertTo-Csv -NoTypeInformation"
        )

    def _parse_queue(self, output: str) -> List[QueueEntry]:
        jobs = []
        reader = csv.DictReader(io.StringIO(output.strip()))
        for row in reader:
            token = (row.get("Id") or "").strip()
            if not token:
                continue
            jobs.append(QueueEntry(
                rank=(row.get("Position") or "").strip(),
                owner=(row.get("UserName") or "").strip(),
                token=token,
                files=(row.get("DocumentName") or "").strip(),
            ))
        return jobs

    def _cancel_command(self, token: str) -> tuple:
        return self._powershell(
            f"Remove-PrintJob -PrinterName '{self._quoted_printer()}' -ID {int(token)}"
        )

    def cancel(self, token: Optional[str]) -> CancelResult:
        if token and not str(token).isdigit():
            return CancelResult(success=False, message=f"Failed to cancel job: invalid job ID {token}")
        return super().cancel(token)

    def _capabilities_command(self) -> tuple:
        return self._powershell(
            f"Get-PrintConfiguration -PrinterName '{self._quoted_printer()}'"
        )

    def get_status(self) -> PrinterStatus:
        program, args = self._powershell(
            f"(Get-Printer -Name '{self._quoted_printer()}').PrinterStatus"
        )
        try:
            result = self.runner.run(program, args, timeout=self.command_timeout)
        except (CommandTimeoutError, OSError):
            return PrinterStatus(
                available=False,
                status="subsystem_unavailable",
                message="Windows print spooler is not available",
            )

        if result.ok:
            state = result.stdout.strip().lower()
            if state in ("normal", "idle"):
                return PrinterStatus(
                    available=True,
                    status="idle",
                    message=f"Printer {self.printer_name} is ready",
                )
            if state in ("printing", "processing", "busy"):
                return PrinterStatus(
                    available=True,
                    status="processing",
                    message=f"Printer {self.printer_name} is currently processing a job",
                )
            return PrinterStatus(
                available=True,
                status="available",
                message=f"Printer {self.printer_name} is available",
            )

        if "no msft_printer objects found" in result.output.lower():
            return PrinterStatus(
                available=False,
                status="not_found",
                message=f"Printer {self.printer_name} not found",
            )

        program, args = self._powershell("Get-Printer | Select-Object -First 1")
        try:
            listing = self.runner.run(program, args, timeout=self.command_timeout)
            spooler_running = listing.ok
        except (CommandTimeoutError, OSError):
            spooler_running = False

        if spooler_running:
            return PrinterStatus(
                available=False,
                status="not_configured",
                message="Print spooler is running but printer is not configured",
            )
        return PrinterStatus(
            available=False,
            status="subsystem_unavailable",
            message="Windows print spooler is not available",
        )


GATEWAYS = {
    "cups": CupsGateway,
    "windows": WindowsGateway,
}


def create_gateway(
    backend: str = "auto",
    printer_name: str = DEFAULT_PRINTER_NAME,
    runner: Optional[CommandRunner] = None,
    command_timeout: float = 5.0,
    submit_timeout: float = 30.0,
) -> DeviceGateway:
    """
    Build the gateway for the configured spooler.

    Args:
        backend: "cups", "windows" or "auto" (decided from the platform, once)
        printer_name: Spooler destination name
        runner: CommandRunner (a default one is created if None)
        command_timeout: Timeout for query commands
        submit_timeout: Timeout for submit commands

    Raises:
        ValueError: If backend is not recognised
    """
    backend = (backend or "auto").lower()
    if backend == "auto":
        backend = "windows" if platform.system() == "Windows" else "cups"

    gateway_cls = GATEWAYS.get(backend)
    if gateway_cls is None:
        raise ValueError(f"Unsupported printer backend: {backend}")

    logger.info(f"Using {gateway_cls.__name__} for printer {printer_name}")
    return gateway_cls(
        printer_name=printer_name,
        runner=runner,
        command_timeout=command_timeout,
        submit_timeout=submit_timeout,
    )
