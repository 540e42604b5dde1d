"""Retry and backoff scheduling."""

from .scheduler import RetryScheduler

__all__ = ["RetryScheduler"]
