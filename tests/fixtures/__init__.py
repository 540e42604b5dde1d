"""Test fixtures for the PCO client."""

from .json_api_responses import (
    BASE_URL,
    ERROR_NOT_FOUND,
    ERROR_RATE_LIMITED,
    ERROR_SERVER,
    ERROR_UNAUTHORIZED,
    ERROR_VALIDATION,
    RATE_LIMIT_DETAIL,
    make_error_body,
    make_page,
    make_person,
)
from .rate_limit_headers import (
    HEADERS_EXHAUSTED,
    HEADERS_HEALTHY,
    HEADERS_LOWERCASE,
    HEADERS_MALFORMED,
    HEADERS_PARTIAL,
    HEADERS_THROTTLED,
    make_rate_limit_headers,
)

__all__ = [
    # JSON:API bodies
    "BASE_URL",
    "ERROR_NOT_FOUND",
    "ERROR_RATE_LIMITED",
    "ERROR_SERVER",
    "ERROR_UNAUTHORIZED",
    "ERROR_VALIDATION",
    "RATE_LIMIT_DETAIL",
    "make_error_body",
    "make_page",
    "make_person",
    # Rate limit headers
    "HEADERS_EXHAUSTED",
    "HEADERS_HEALTHY",
    "HEADERS_LOWERCASE",
    "HEADERS_MALFORMED",
    "HEADERS_PARTIAL",
    "HEADERS_THROTTLED",
    "make_rate_limit_headers",
]
