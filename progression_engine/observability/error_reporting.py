"""
Structured error reporting

Routes failures to Sentry with category, severity and context attached.
When Sentry is not initialized the SDK calls are no-ops and only the log
line remains.
"""

import logging
from typing import Any, Dict, Optional

import sentry_sdk

from progression_engine.exceptions import ErrorCategory, ErrorSeverity, ProgressionError

logger = logging.getLogger(__name__)

_SENTRY_LEVELS = {
    ErrorSeverity.LOW: "info",
    ErrorSeverity.MEDIUM: "warning",
    ErrorSeverity.HIGH: "error",
    ErrorSeverity.CRITICAL: "fatal",
}


def report_error(
    error: Exception,
    category: Optional[ErrorCategory] = None,
    severity: Optional[ErrorSeverity] = None,
    context: Optional[Dict[str, Any]] = None,
) -> Optional[str]:
    """
    Report an error to the error tracker.

    Category and severity default to the ones carried by ProgressionError
    subclasses; other exceptions are reported as internal/high.

    Args:
        error: The exception to report
        category: Failure class override
        severity: Severity override
        context: Additional structured context

    Returns:
        Sentry event ID, or None if not sent

    Example:
        >>> try:
        ...     await store.increment_stat(user_id, "artworksCreated")
        ... except PersistenceError as e:
        ...     report_error(e, severity=ErrorSeverity.LOW, context={"stat": "artworksCreated"})
    """
    if isinstance(error, ProgressionError):
        category = category or error.category
        severity = severity or error.severity
        details = {**error.to_dict(), "user_id": error.user_id, "operation": error.operation, **error.context}
    else:
        category = category or ErrorCategory.INTERNAL
        severity = severity or ErrorSeverity.HIGH
        details = {"error": type(error).__name__, "message": str(error)}

    if context:
        details.update(context)

    logger.debug(
        f"Reporting {type(error).__name__} category={category.value} severity={severity.value}"
    )

    with sentry_sdk.new_scope() as scope:
        scope.set_tag("error_category", category.value)
        scope.set_tag("error_severity", severity.value)
        scope.set_context("progression", details)
        scope.level = _SENTRY_LEVELS[severity]
        return sentry_sdk.capture_exception(error)
