"""Resilience helpers: per-adapter health tracking and retry with backoff."""

from .health import SourceHealth
from .retry import retry_with_backoff

__all__ = [
    "SourceHealth",
    "retry_with_backoff",
]
