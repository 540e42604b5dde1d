"""Resilient access layer for the Planning Center Online API.

Components:
- PcoClient: Facade owning one of each component below
- RequestDispatcher: Authenticated send with classification and retry
- RetryScheduler: Retry eligibility and backoff
- RateLimitTracker: Throttling state from response headers
- Credentials: Static tokens and OAuth with single-flight refresh
- PaginationCursor: links.next traversal, eager and lazy
- BatchExecutor: Bounded-concurrency batches with per-operation results
- EventBus: Client-scoped lifecycle events
"""

from .auth import OAuthCredential, OAuthTokenRefresher, StaticTokenCredential, TokenPair
from .batch import (
    BatchExecutor,
    BatchReport,
    BatchResult,
    CreateOperation,
    DeleteOperation,
    GetOperation,
    UpdateOperation,
)
from .client import PcoClient
from .dispatcher import RequestDispatcher, classify
from .events import EventBus, EventKind
from .exceptions import (
    ApiErrorObject,
    Classification,
    ConfigurationError,
    PaginationError,
    PcoApiError,
    PcoAuthenticationError,
    PcoClientError,
    PcoNetworkError,
    PcoNotFoundError,
    PcoRateLimitError,
    PcoRetryableError,
    PcoServerError,
    PcoValidationError,
    TokenRefreshError,
)
from .metrics import PerformanceMetrics
from .pagination import Page, PaginationCursor, PaginationResult
from .rate_limit import RateLimitSnapshot, RateLimitTracker
from .requests import ApiResponse, RequestDescriptor
from .retry import RetryScheduler

__all__ = [
    # Client
    "PcoClient",
    "RequestDispatcher",
    "RequestDescriptor",
    "ApiResponse",
    "classify",
    # Auth
    "OAuthCredential",
    "OAuthTokenRefresher",
    "StaticTokenCredential",
    "TokenPair",
    # Resilience
    "RateLimitSnapshot",
    "RateLimitTracker",
    "RetryScheduler",
    "PerformanceMetrics",
    # Pagination
    "Page",
    "PaginationCursor",
    "PaginationResult",
    # Batch
    "BatchExecutor",
    "BatchReport",
    "BatchResult",
    "CreateOperation",
    "DeleteOperation",
    "GetOperation",
    "UpdateOperation",
    # Events
    "EventBus",
    "EventKind",
    # Exceptions
    "ApiErrorObject",
    "Classification",
    "ConfigurationError",
    "PaginationError",
    "PcoApiError",
    "PcoAuthenticationError",
    "PcoClientError",
    "PcoNetworkError",
    "PcoNotFoundError",
    "PcoRateLimitError",
    "PcoRetryableError",
    "PcoServerError",
    "PcoValidationError",
    "TokenRefreshError",
]
