"""
Error handling for CORA.

Provides:
- The CoraError exception hierarchy
- ErrorBoundary, a context manager that turns exceptions into ErrorContext
- User-facing and log-facing error formatting
"""

import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    LOW = "low"           # Reported, session continues
    MEDIUM = "medium"     # Current action is abandoned
    HIGH = "high"         # Session cannot start or must be reset
    CRITICAL = "critical" # Process should exit


class ErrorCategory(Enum):
    """Where an error came from."""
    CONFIGURATION = "configuration"
    PROCESS = "process"
    PROTOCOL = "protocol"
    MODEL = "model"
    FILE_SYSTEM = "file_system"
    COMMAND_EXECUTION = "command_execution"
    USER_INPUT = "user_input"
    INTERNAL = "internal"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Everything known about a trapped error."""
    category: ErrorCategory
    severity: ErrorSeverity
    operation: str
    user_message: str
    technical_message: str
    recoverable: bool = True
    suggested_action: Optional[str] = None
    original_exception: Optional[Exception] = None
    traceback_str: Optional[str] = None


class CoraError(Exception):
    """
    Base exception for CORA errors.

    Subclasses set class-level defaults for category, severity,
    recoverability and suggested action; any of them can be overridden per
    instance through keyword arguments.
    """

    category = ErrorCategory.UNKNOWN
    severity = ErrorSeverity.MEDIUM
    recoverable = True
    suggested_action: Optional[str] = None

    def __init__(
        self,
        message: str,
        category: Optional[ErrorCategory] = None,
        severity: Optional[ErrorSeverity] = None,
        user_message: Optional[str] = None,
        recoverable: Optional[bool] = None,
        suggested_action: Optional[str] = None
    ):
        super().__init__(message)
        if category is not None:
            self.category = category
        if severity is not None:
            self.severity = severity
        if recoverable is not None:
            self.recoverable = recoverable
        if suggested_action is not None:
            self.suggested_action = suggested_action
        self.user_message = user_message or message


class ConfigurationError(CoraError):
    """Invalid or missing configuration (unknown dialect, missing key)."""
    category = ErrorCategory.CONFIGURATION
    severity = ErrorSeverity.HIGH
    recoverable = False


class ProcessStartError(CoraError):
    """The operating system could not spawn the shell process."""
    category = ErrorCategory.PROCESS
    severity = ErrorSeverity.HIGH
    recoverable = False


class ShellIOError(CoraError):
    """The shell pipes broke or the shell exited mid-command."""
    category = ErrorCategory.PROCESS
    severity = ErrorSeverity.HIGH
    suggested_action = "Use /reset to start a fresh shell."


class CommandTimeoutError(CoraError):
    """The shell did not print its prompt marker within the configured time."""
    category = ErrorCategory.PROTOCOL
    severity = ErrorSeverity.HIGH
    suggested_action = "The shell was restarted; working directory and variables were reset."


class ConcurrencyError(CoraError):
    """A command was submitted while another one is still running."""
    category = ErrorCategory.INTERNAL
    severity = ErrorSeverity.HIGH
    recoverable = False

    def __init__(self, message: str = "Cannot execute a command while another command is executing", **kwargs):
        super().__init__(message, **kwargs)


class ModelError(CoraError):
    """A round-trip to the language model failed."""
    category = ErrorCategory.MODEL


class FileOperationError(CoraError):
    """A generated file could not be written."""
    category = ErrorCategory.FILE_SYSTEM
    severity = ErrorSeverity.LOW


# Builtin exceptions that get a friendlier description than str(exc):
# (type, category, severity, message, suggested action)
_BUILTIN_ERRORS = (
    (KeyboardInterrupt, ErrorCategory.USER_INPUT, ErrorSeverity.LOW,
     "Operation cancelled by user.", None),
    (BrokenPipeError, ErrorCategory.PROCESS, ErrorSeverity.HIGH,
     "The shell process is no longer running.", "Use /reset to start a fresh shell."),
    (FileNotFoundError, ErrorCategory.FILE_SYSTEM, ErrorSeverity.LOW,
     "File not found: {filename}", "Check the file path and try again."),
    (PermissionError, ErrorCategory.FILE_SYSTEM, ErrorSeverity.MEDIUM,
     "Permission denied. You may not have access to this resource.", None),
    (MemoryError, ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL,
     "Out of memory. The operation was too large.", None),
)


class ErrorBoundary:
    """
    Traps every exception raised in its block, except SystemExit.

    Usage:
        with ErrorBoundary("dispatch_action") as boundary:
            dispatcher.handle(action)

        if boundary.has_error:
            ui.print_error(format_error_for_user(boundary.error_context))
    """

    def __init__(
        self,
        operation: str,
        show_technical_details: bool = False,
        default_category: ErrorCategory = ErrorCategory.UNKNOWN,
        default_severity: ErrorSeverity = ErrorSeverity.MEDIUM
    ):
        """
        Args:
            operation: Name of the wrapped operation, used in reports
            show_technical_details: Whether to capture the traceback
            default_category: Category for exceptions that carry none
            default_severity: Severity for exceptions that carry none
        """
        self.operation = operation
        self.show_technical_details = show_technical_details
        self.default_category = default_category
        self.default_severity = default_severity
        self.error_context: Optional[ErrorContext] = None

    @property
    def has_error(self) -> bool:
        return self.error_context is not None

    def __enter__(self) -> "ErrorBoundary":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None or issubclass(exc_type, SystemExit):
            return False

        self.error_context = self._describe(exc_val, exc_tb)
        return True

    def _describe(self, exc: BaseException, exc_tb) -> ErrorContext:
        context = ErrorContext(
            category=self.default_category,
            severity=self.default_severity,
            operation=self.operation,
            user_message=str(exc),
            technical_message=f"{type(exc).__name__}: {exc}",
            original_exception=exc if isinstance(exc, Exception) else None,
        )

        if isinstance(exc, CoraError):
            context.category = exc.category
            context.severity = exc.severity
            context.user_message = exc.user_message
            context.suggested_action = exc.suggested_action
            context.recoverable = exc.recoverable
        else:
            for exc_class, category, severity, message, suggestion in _BUILTIN_ERRORS:
                if isinstance(exc, exc_class):
                    context.category = category
                    context.severity = severity
                    context.user_message = message.format(
                        filename=getattr(exc, "filename", None) or "unknown"
                    )
                    context.suggested_action = suggestion
                    context.recoverable = severity is not ErrorSeverity.CRITICAL
                    break

        if self.show_technical_details:
            context.traceback_str = "".join(traceback.format_exception(type(exc), exc, exc_tb))

        return context


def format_error_for_user(context: ErrorContext) -> str:
    """Render an error for the terminal: message, suggestion, traceback if captured."""
    lines = [context.user_message]
    if context.suggested_action:
        lines.append(f"Suggestion: {context.suggested_action}")
    if context.traceback_str:
        lines.append(context.traceback_str.rstrip())
    return "\n".join(lines)


def format_error_for_log(context: ErrorContext) -> str:
    lines = [
        f"[{context.severity.value.upper()}] {context.category.value}: {context.operation}",
        f"  Message: {context.technical_message}",
    ]
    if context.traceback_str:
        lines.append(f"  Traceback:\n{context.traceback_str}")
    return "\n".join(lines)
