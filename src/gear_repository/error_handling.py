"""Error taxonomy and classification for gear repository operations."""

import logging
import time
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Classification of error severity levels."""

    CRITICAL = "critical"  # Node-side agent must stop
    HIGH = "high"  # Operation aborted, platform detail involved
    MEDIUM = "medium"  # Operation aborted, tenant can retry
    LOW = "low"  # Tenant input rejected before any side effect


class GearRepositoryError(Exception):
    """Base class for every error raised by the repository manager.

    ``code`` is stable and safe to hand back to the broker; ``client_message``
    is the text a tenant is allowed to see.
    """

    code: int = 1

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    @property
    def client_message(self) -> str:
        return self.message


class ShellExecutionError(GearRepositoryError):
    """A command in the root or container context exited with the wrong status."""

    def __init__(
        self,
        message: str,
        exit_status: int = 1,
        stdout: str = "",
        stderr: str = "",
    ):
        super().__init__(message, code=exit_status)
        self.exit_status = exit_status
        self.stdout = stdout
        self.stderr = stderr

    def __str__(self) -> str:
        return f"{self.message} (exit status {self.exit_status})"


class UnsupportedTransportError(GearRepositoryError):
    """The source URL does not start with an allowed transport prefix."""

    code = 130

    def __init__(self, url: str, supported: "tuple[str, ...] | list[str]"):
        self.url = url
        self.supported = tuple(supported)
        super().__init__(
            "CLIENT_ERROR: Source Code repository URL type must be one of: "
            + ", ".join(self.supported)
        )


class SourceFetchFailedError(GearRepositoryError):
    """Cloning the tenant supplied URL failed.

    The message never carries the clone output; the underlying
    ``ShellExecutionError`` is kept on ``cause`` for operator logs.
    """

    code = 131

    def __init__(self, url: str, cause: Optional[ShellExecutionError] = None):
        self.url = url
        self.cause = cause
        super().__init__(
            f"CLIENT_ERROR: Source Code repository could not be cloned: '{url}'.  "
            "Please verify the repository is correct and contact support."
        )


class TemplateCloneFailedError(ShellExecutionError):
    """Bare clone of a cartridge template failed; wraps the execution diagnostics."""

    def __init__(self, cause: ShellExecutionError):
        super().__init__(
            "Failed to clone application git repository from template repository",
            cause.exit_status,
            cause.stdout,
            cause.stderr,
        )
        self.cause = cause


class RepositoryNotFoundError(GearRepositoryError):
    """An operation that needs the bare repository ran before it was populated."""

    code = 132

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Application git repository does not exist: {path}")


class GearLockedError(GearRepositoryError):
    """Another operation already holds the per-gear lock."""

    code = 133

    def __init__(self, lock_path: str):
        self.lock_path = lock_path
        super().__init__(f"Another repository operation is in progress ({lock_path})")


class GearEnvironmentError(GearRepositoryError):
    """The gear environment lacks a variable an operation depends on."""

    code = 134

    def __init__(self, variable: str):
        self.variable = variable
        super().__init__(f"{variable} is not set in the gear environment")


class ErrorContext:
    """Context information about an error for reporting decisions."""

    def __init__(
        self,
        error: Exception,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        operation: str = "",
        gear_uuid: Optional[str] = None,
        client_facing: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.error = error
        self.severity = severity
        self.operation = operation
        self.gear_uuid = gear_uuid
        self.client_facing = client_facing
        self.metadata = metadata or {}
        self.error_time = time.time()

    @property
    def exit_code(self) -> int:
        """Process exit code for the CLI, always in 1..255."""
        code = getattr(self.error, "code", 1)
        if not isinstance(code, int) or code <= 0:
            return 1
        return min(code, 255)

    @property
    def message(self) -> str:
        """Text that may be shown to the caller of the failed operation."""
        if isinstance(self.error, GearRepositoryError):
            return self.error.client_message
        return str(self.error)


def is_client_error(error: Exception) -> bool:
    """True for errors caused by tenant input rather than the platform."""
    return isinstance(
        error,
        (UnsupportedTransportError, SourceFetchFailedError, GearLockedError),
    )


def classify_error(
    error: Exception, operation: str = "", gear_uuid: Optional[str] = None
) -> ErrorContext:
    """
    Classify an error and create an appropriate ErrorContext.

    Args:
        error: The exception that occurred
        operation: The repository operation during which it occurred
        gear_uuid: The gear the operation was running for

    Returns:
        ErrorContext with severity and visibility settings
    """
    if isinstance(error, (SystemExit, KeyboardInterrupt, MemoryError)):
        severity = ErrorSeverity.CRITICAL
    elif isinstance(error, UnsupportedTransportError):
        severity = ErrorSeverity.LOW
    elif isinstance(error, (SourceFetchFailedError, GearLockedError)):
        severity = ErrorSeverity.MEDIUM
    elif isinstance(error, (ShellExecutionError, GearEnvironmentError, OSError)):
        severity = ErrorSeverity.HIGH
    else:
        severity = ErrorSeverity.MEDIUM

    context = ErrorContext(
        error=error,
        severity=severity,
        operation=operation,
        gear_uuid=gear_uuid,
        client_facing=is_client_error(error),
    )
    if isinstance(error, ShellExecutionError):
        context.metadata.update(
            exit_status=error.exit_status, stdout=error.stdout, stderr=error.stderr
        )
    return context


def log_error(context: ErrorContext) -> None:
    """Log an error with full operator detail."""
    extra = {"operation": context.operation}
    if context.gear_uuid:
        extra["gear_uuid"] = context.gear_uuid
    if "exit_status" in context.metadata:
        extra["exit_status"] = context.metadata["exit_status"]

    logger.error(
        f"{context.severity.value.upper()} error in {context.operation}: {context.error}",
        extra=extra,
    )
    if context.metadata.get("stderr"):
        logger.error(f"stderr: {context.metadata['stderr']}", extra=extra)
    if context.metadata.get("stdout"):
        logger.debug(f"stdout: {context.metadata['stdout']}", extra=extra)
