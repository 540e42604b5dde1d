"""Rate limit tracking for the PCO API."""

from .schemas import RateLimitHeader, RateLimitSnapshot
from .tracker import RateLimitTracker, parse_rate_limit_detail, parse_retry_after

__all__ = [
    "RateLimitHeader",
    "RateLimitSnapshot",
    "RateLimitTracker",
    "parse_rate_limit_detail",
    "parse_retry_after",
]
