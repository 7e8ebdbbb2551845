"""
Error Handling System
=====================

Error handling for the theme toggler engine:
- Custom exception hierarchy (one class per failure kind)
- Typed Result values for the controller boundary
- Bounded error history
- Centralized logging
"""

# ============================================================================
# MODULE OVERVIEW
# ============================================================================
# Purpose:
#   error_handling.py
#
# Connected modules (direct imports):
#   none (leaf)
#
# Notes:
#   - Components raise the classes below; only the controller catches,
#     through ErrorHandler.capture().
# ============================================================================

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

logger = logging.getLogger("theme_toggler.errors")


# ============================================================================
# ERROR SEVERITY LEVELS
# ============================================================================

class ErrorSeverity(Enum):
    """Error severity levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


_LOG_LEVELS = {
    ErrorSeverity.DEBUG: logging.DEBUG,
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


# ============================================================================
# CUSTOM EXCEPTION HIERARCHY
# ============================================================================

class ThemeTogglerError(Exception):
    """Base exception for all theme toggler errors"""

    def __init__(
        self,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        user_message: Optional[str] = None,
        context: Optional[dict] = None
    ):
        """
        Initialize theme toggler error

        Args:
            message: Technical error message (for logs)
            severity: Error severity level
            user_message: User-friendly message (for UI)
            context: Additional context (dict)
        """
        super().__init__(message)
        self.message = message
        self.severity = severity
        self.user_message = user_message or message
        self.context = context or {}
        self.timestamp = time.time()

    def to_dict(self) -> dict:
        """Convert error to dictionary"""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "context": self.context,
            "timestamp": self.timestamp
        }


class ConfigurationError(ThemeTogglerError):
    """Configuration-related errors"""
    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.CRITICAL,
            user_message="Configuration error. Please check your settings.",
            **kwargs
        )


class DecodeError(ThemeTogglerError):
    """Stored payload could not be decoded or parsed"""
    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.WARNING,
            user_message="Saved theme could not be read. Using default.",
            **kwargs
        )


class UnknownThemeError(ThemeTogglerError):
    """A theme token outside system/light/dark"""
    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.WARNING,
            user_message="Unknown theme.",
            **kwargs
        )


class TranslationLoadError(ThemeTogglerError):
    """Remote translation table could not be loaded"""
    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.WARNING,
            user_message="Translations unavailable. Using defaults.",
            **kwargs
        )


class BindingConflictError(ThemeTogglerError):
    """UI root already has a bound toggler"""
    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.INFO,
            user_message="Theme toggler already mounted.",
            **kwargs
        )


class StorageError(ThemeTogglerError):
    """Storage backend I/O errors"""
    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.ERROR,
            user_message="Theme preference could not be saved.",
            **kwargs
        )


class BindingError(ThemeTogglerError):
    """UI binding layer failures"""
    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.ERROR,
            user_message="Theme control could not be updated.",
            **kwargs
        )


# ============================================================================
# RESULT VALUES
# ============================================================================

T = TypeVar('T')


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of one guarded step: a value or the error that replaced it"""
    value: Optional[T] = None
    error: Optional[ThemeTogglerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap_or(self, default: T) -> T:
        """Return the value, or *default* if the step failed"""
        return self.value if self.error is None else default

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ThemeTogglerError) -> "Result[T]":
        return cls(error=error)


# ============================================================================
# ERROR CONTEXT
# ============================================================================

@dataclass
class ErrorContext:
    """Context information for errors"""
    operation: str
    component: str
    details: dict

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            "operation": self.operation,
            "component": self.component,
            "details": self.details
        }


# ============================================================================
# ERROR HANDLER
# ============================================================================

class ErrorHandler:
    """Centralized error handling"""

    def __init__(self, log: Optional[logging.Logger] = None, max_history: int = 100):
        """
        Initialize error handler

        Args:
            log: Logger to report to (module logger if None)
            max_history: Number of errors kept in history
        """
        self.logger = log or logger
        self.error_history: list[ThemeTogglerError] = []
        self.max_history = max_history

        # Error callback (for UI notifications)
        self.on_error: Optional[Callable[[ThemeTogglerError], None]] = None

    def handle_error(
        self,
        error: Exception,
        context: Optional[ErrorContext] = None,
        notify_user: bool = True
    ) -> ThemeTogglerError:
        """
        Handle an error

        Args:
            error: Exception that occurred
            context: Error context
            notify_user: Whether to call on_error

        Returns:
            The error as a ThemeTogglerError
        """
        if not isinstance(error, ThemeTogglerError):
            error = ThemeTogglerError(
                message=f"{error.__class__.__name__}: {error}",
                severity=ErrorSeverity.ERROR,
                context=context.to_dict() if context else {}
            )

        self._add_to_history(error)
        self._log_error(error, context)

        if notify_user and self.on_error:
            self.on_error(error)
        return error

    def capture(
        self,
        component: str,
        operation: str,
        func: Callable[..., T],
        *args: Any,
        **kwargs: Any
    ) -> Result[T]:
        """
        Run *func* and turn any exception into a failed Result

        This is the controller boundary: nothing raised inside *func*
        propagates past this call.
        """
        try:
            return Result.success(func(*args, **kwargs))
        except Exception as e:
            context = ErrorContext(
                operation=operation,
                component=component,
                details={"function": getattr(func, "__name__", repr(func))}
            )
            return Result.failure(self.handle_error(e, context, notify_user=False))

    def _log_error(self, error: ThemeTogglerError, context: Optional[ErrorContext]):
        """Log error with full details"""
        log_message = f"{error.severity.value}: {error.message}"

        if context:
            log_message += f" [Component: {context.component}, Operation: {context.operation}]"

        if error.context:
            log_message += f" [Context: {error.context}]"

        self.logger.log(_LOG_LEVELS[error.severity], log_message)

    def _add_to_history(self, error: ThemeTogglerError):
        """Add error to history"""
        self.error_history.append(error)

        # Trim history if too long
        if len(self.error_history) > self.max_history:
            self.error_history = self.error_history[-self.max_history:]

    def get_recent_errors(self, count: int = 10) -> list[ThemeTogglerError]:
        """Get recent errors"""
        return self.error_history[-count:]

    def clear_history(self):
        """Clear error history"""
        self.error_history.clear()
