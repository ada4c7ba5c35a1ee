"""Resilience patterns for identity-store writes

Bounded retries with exponential backoff for transient persistence failures.
"""

from progression_engine.resilience.retry import (
    retry_with_backoff,
    is_retryable_error,
    calculate_backoff,
)

__all__ = [
    "retry_with_backoff",
    "is_retryable_error",
    "calculate_backoff",
]
