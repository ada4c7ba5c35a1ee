"""
Observability module for the progression engine.

This module provides:
- Error reporting with Sentry
- Metrics collection with Prometheus
"""

__all__ = ["sentry_config", "error_reporting", "metrics"]
