"""
Error handling for ctxlocal.

Provides:
- Custom exception types
- Error boundary wrapper so one failing scenario never stops the others
- Formatting helpers for the report and the log

Context-bleed mismatches are not errors: scenarios return them as data.
"""

import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    LOW = "low"           # Recorded, run continues
    MEDIUM = "medium"     # Scenario could not produce a verdict
    HIGH = "high"         # Run cannot start (bad configuration)
    CRITICAL = "critical" # Interpreter-level failure


class ErrorCategory(Enum):
    """Categories of errors for better handling."""
    CONFIGURATION = "configuration"
    SCENARIO = "scenario"
    SCHEDULER = "scheduler"
    INTERNAL = "internal"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Context information about an error."""
    category: ErrorCategory
    severity: ErrorSeverity
    operation: str
    user_message: str
    technical_message: str
    suggested_action: Optional[str] = None
    original_exception: Optional[BaseException] = None
    traceback_str: Optional[str] = None


class CtxLocalError(Exception):
    """Base exception for ctxlocal errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        user_message: Optional[str] = None,
        suggested_action: Optional[str] = None
    ):
        super().__init__(message)
        self.category = category
        self.severity = severity
        self.user_message = user_message or message
        self.suggested_action = suggested_action


class ConfigurationError(CtxLocalError):
    """Configuration-related errors."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.CONFIGURATION,
            severity=kwargs.get("severity", ErrorSeverity.HIGH),
            **{k: v for k, v in kwargs.items() if k != "severity"}
        )


class ScenarioError(CtxLocalError):
    """Unknown, duplicate or malformed scenario registrations."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.SCENARIO,
            severity=kwargs.get("severity", ErrorSeverity.MEDIUM),
            **{k: v for k, v in kwargs.items() if k != "severity"}
        )


class ErrorBoundary:
    """
    Error boundary for wrapping operations with graceful error handling.

    Usage:
        with ErrorBoundary("fan_out_isolation") as boundary:
            observations, mismatches = await scenario()

        if boundary.has_error:
            print(boundary.error_context.user_message)

    Only Exception subclasses are captured. KeyboardInterrupt, SystemExit
    and asyncio.CancelledError propagate unchanged.
    """

    def __init__(
        self,
        operation: str,
        show_technical_details: bool = False,
        default_category: ErrorCategory = ErrorCategory.UNKNOWN,
        default_severity: ErrorSeverity = ErrorSeverity.MEDIUM
    ):
        """
        Initialize the error boundary.

        Args:
            operation: Name of the operation being wrapped
            show_technical_details: Whether to include traceback
            default_category: Default error category if not determined
            default_severity: Default error severity if not determined
        """
        self.operation = operation
        self.show_technical_details = show_technical_details
        self.default_category = default_category
        self.default_severity = default_severity
        self.error_context: Optional[ErrorContext] = None

    @property
    def has_error(self) -> bool:
        """Check if an error occurred."""
        return self.error_context is not None

    def __enter__(self) -> "ErrorBoundary":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        """
        Exit the error boundary, catching and processing any exception.

        Returns True to suppress the exception.
        """
        if exc_type is None or not issubclass(exc_type, Exception):
            return False

        self.error_context = self._exception_to_context(exc_val, exc_tb)
        return True

    def _exception_to_context(self, exc: Exception, exc_tb) -> ErrorContext:
        """Convert an exception to an ErrorContext."""
        category = self.default_category
        severity = self.default_severity
        user_message = str(exc) or type(exc).__name__
        suggested_action = None

        if isinstance(exc, CtxLocalError):
            category = exc.category
            severity = exc.severity
            user_message = exc.user_message
            suggested_action = exc.suggested_action

        elif isinstance(exc, TimeoutError):
            category = ErrorCategory.SCHEDULER
            user_message = "Scenario timed out waiting on the event loop."
            suggested_action = "Lower the concurrency or the chain delay."

        elif isinstance(exc, RuntimeError):
            category = ErrorCategory.SCHEDULER
            user_message = f"Event loop error: {exc}"

        elif isinstance(exc, ValueError):
            category = ErrorCategory.INTERNAL
            severity = ErrorSeverity.LOW
            user_message = f"Invalid value: {exc}"

        elif isinstance(exc, MemoryError):
            category = ErrorCategory.INTERNAL
            severity = ErrorSeverity.CRITICAL
            user_message = "Out of memory. The scenario was too large."

        traceback_str = None
        if self.show_technical_details:
            traceback_str = "".join(traceback.format_exception(type(exc), exc, exc_tb))

        return ErrorContext(
            category=category,
            severity=severity,
            operation=self.operation,
            user_message=user_message,
            technical_message=f"{type(exc).__name__}: {exc}",
            suggested_action=suggested_action,
            original_exception=exc,
            traceback_str=traceback_str
        )


def format_error_for_user(context: ErrorContext) -> str:
    """
    Format an error context for display to the user.

    Args:
        context: The error context

    Returns:
        Formatted error message
    """
    lines = [context.user_message]

    if context.suggested_action:
        lines.append(f"Suggestion: {context.suggested_action}")

    return "\n".join(lines)


def format_error_for_log(context: ErrorContext) -> str:
    """
    Format an error context for logging.

    Args:
        context: The error context

    Returns:
        Formatted log message
    """
    lines = [
        f"[{context.severity.value.upper()}] {context.category.value}: {context.operation}",
        f"  Message: {context.technical_message}",
    ]

    if context.traceback_str:
        lines.append(f"  Traceback:\n{context.traceback_str}")

    return "\n".join(lines)
