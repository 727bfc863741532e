"""Retry helpers for browser steps."""

from .retries import RetryConfig, retry_async

__all__ = [
    "RetryConfig",
    "retry_async",
]
