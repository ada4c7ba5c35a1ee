"""
Standardized exception hierarchy for the progression engine
Provides rich context, consistent logging, and user-friendly error messages
"""

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)


class ErrorSeverity(str, Enum):
    """How loudly a failure must be surfaced"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Broad failure classes used for error reporting"""
    VALIDATION = "validation"
    PERSISTENCE = "persistence"
    PRECONDITION = "precondition"
    NOTIFICATION = "notification"
    FEEDBACK = "feedback"
    INTERNAL = "internal"


_LOG_LEVELS = {
    ErrorSeverity.LOW: logging.INFO,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class ProgressionError(Exception):
    """
    Base exception for all progression engine errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise ProgressionError(
            message="Failed to save progression record",
            user_id="user-1",
            operation="unlock_achievement",
            context={"achievement_id": "first_lesson"}
        )
    """

    category: ErrorCategory = ErrorCategory.INTERNAL
    default_severity: ErrorSeverity = ErrorSeverity.HIGH

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None,
        severity: Optional[ErrorSeverity] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.severity = severity or self.default_severity
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # Avoid conflict with logging's 'message' field
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_category": self.category.value,
            "error_severity": self.severity.value,
            "error_context": self.context,  # Avoid conflict with logging's 'context'
            "timestamp": self.timestamp.isoformat()
        }
        level = _LOG_LEVELS[self.severity]

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.log(level, f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.log(level, f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for callers and error reports"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "category": self.category.value,
            "severity": self.severity.value,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Validation Errors (caller input)
# ==========================================

class ValidationError(ProgressionError):
    """
    Raised when caller input fails validation. No state is changed.

    Example:
        raise ValidationError(
            message="Score must be between 0 and 1",
            field="score",
            value=1.5,
        )
    """

    category = ErrorCategory.VALIDATION
    default_severity = ErrorSeverity.LOW

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        kwargs.setdefault("user_message", f"Invalid {field}: {message}" if field else message)
        context = {"field": field, "value": value}
        context.update(kwargs.pop("context", None) or {})
        super().__init__(
            message=message,
            context=context,
            **kwargs
        )


class InvalidDeltaError(ValidationError):
    """Progress increment is not a positive integer"""

    def __init__(self, message: str = "Progress delta must be a positive integer", value: Optional[Any] = None, **kwargs):
        super().__init__(message=message, field="delta", value=value, **kwargs)


class InvalidXPError(ValidationError):
    """XP amount is negative"""

    def __init__(self, message: str = "XP amount cannot be negative", value: Optional[Any] = None, **kwargs):
        super().__init__(message=message, field="xp", value=value, **kwargs)


class InvalidTimestampError(ValidationError):
    """Activity date precedes the last recorded activity"""

    def __init__(self, message: str, value: Optional[Any] = None, **kwargs):
        super().__init__(message=message, field="activity_date", value=value, **kwargs)


class DuplicateDefinitionError(ValidationError):
    """Achievement id is already registered in the catalog"""

    def __init__(self, achievement_id: str, **kwargs):
        self.achievement_id = achievement_id
        super().__init__(
            message=f"Achievement '{achievement_id}' is already registered",
            field="id",
            value=achievement_id,
            **kwargs
        )


# ==========================================
# Persistence Errors
# ==========================================

class PersistenceError(ProgressionError):
    """
    Identity store or durable storage failed. The failing write was not committed.

    ``committed`` lists results of earlier writes in the same operation that
    did succeed (e.g. achievements unlocked before a later unlock failed).
    """

    category = ErrorCategory.PERSISTENCE
    default_severity = ErrorSeverity.HIGH

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("user_message", "We couldn't save your progress. Please try again.")
        super().__init__(message=message, **kwargs)
        self.committed: list = []


class PersistenceTimeoutError(PersistenceError):
    """Identity store call exceeded its timeout"""

    def __init__(self, message: str = "Identity store call timed out", timeout: Optional[float] = None, **kwargs):
        self.timeout = timeout
        context = {"timeout": timeout}
        context.update(kwargs.pop("context", None) or {})
        super().__init__(message=message, context=context, **kwargs)


# ==========================================
# Precondition Errors
# ==========================================

class PreconditionError(ProgressionError):
    """Operation requires state that is not present (e.g. an active profile)"""

    category = ErrorCategory.PRECONDITION
    default_severity = ErrorSeverity.MEDIUM

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("user_message", "Please sign in to track your progress.")
        super().__init__(message=message, **kwargs)


# ==========================================
# Helper Functions
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> ProgressionError:
    """
    Wrap exceptions raised by storage backends into our exception hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        user_id: User ID if applicable
        context: Additional context

    Returns:
        Appropriate ProgressionError subclass

    Example:
        try:
            await kv.set(key, payload)
        except OSError as e:
            raise wrap_external_exception(e, operation="update_user", user_id="user-1")
    """
    if isinstance(error, ProgressionError):
        return error

    if isinstance(error, asyncio.TimeoutError):
        return PersistenceTimeoutError(
            message=f"{operation} timed out",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )

    if isinstance(error, (OSError, ValueError, KeyError, TypeError)):
        return PersistenceError(
            message=f"{operation} failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )

    # Generic fallback
    return ProgressionError(
        message=f"{operation} failed: {str(error)}",
        user_id=user_id,
        operation=operation,
        context=context,
        cause=error
    )
