"""Retry helpers for infrastructure calls."""

from .exponential_backoff import RetryableError, retry_with_backoff

__all__ = ["RetryableError", "retry_with_backoff"]
