"""Async PCO API client.

This module provides the facade collaborators use: one client owns one
HTTP connection pool, credential, rate limit tracker, event bus and
metrics sink, and wires them into the dispatcher, pagination cursors and
batch executor.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any

import httpx

from pco_client.config import ClientConfig
from pco_client.logging import get_logger

from .auth import Credential, credential_from_config
from .batch import BatchExecutor, BatchOperation, BatchReport, OperationCallback
from .dispatcher import RequestDispatcher, Sleep
from .events import EventBus, EventHandler, EventKind
from .metrics import PerformanceMetrics
from .pagination import Page, PaginationCursor, PaginationResult, ProgressCallback
from .rate_limit import RateLimitSnapshot, RateLimitTracker
from .requests import ApiResponse, RequestDescriptor
from .retry import RetryScheduler

logger = get_logger(__name__)

_HANDLER_BINDINGS = (
    ("on_error", EventKind.ERROR),
    ("on_auth_failure", EventKind.AUTH_FAILURE),
    ("on_request_start", EventKind.REQUEST_START),
    ("on_request_complete", EventKind.REQUEST_COMPLETE),
    ("on_rate_limit", EventKind.RATE_LIMIT),
)


class PcoClient:
    """Async Planning Center Online API client.

    Usage:
        async with PcoClient(ClientConfig.from_settings()) as client:
            response = await client.get("/people/1")
            result = await client.get_all_pages("/people")
            print(result.total_count)

    Or without context manager:
        client = PcoClient(config)
        await client.get("/people")
        await client.close()
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        credential: Credential | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            config: Client configuration. If not provided, built from
                environment settings.
            transport: Optional httpx transport (e.g. httpx.MockTransport)
            credential: Overrides the credential described by config.auth
            sleep: Awaitable sleep for backoff, throttling and page delays

        Raises:
            ConfigurationError: If no config is given and the environment
                has no credentials.
        """
        self._config = config or ClientConfig.from_settings()
        self._sleep = sleep

        self._http = httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=self._config.timeout,
            transport=transport,
        )
        self._credential = credential or credential_from_config(
            self._config.auth,
            client=self._http,
            timeout=self._config.timeout,
        )
        self._events = EventBus()
        self._tracker = RateLimitTracker(self._config.rate_limit)
        self._metrics = PerformanceMetrics()
        self._dispatcher = RequestDispatcher(
            self._http,
            self._credential,
            retry=RetryScheduler(self._config.retry),
            tracker=self._tracker,
            events=self._events,
            metrics=self._metrics,
            rate_limit_config=self._config.rate_limit,
            timeout=self._config.timeout,
            headers=self._config.headers,
            sleep=sleep,
        )
        self._batch = BatchExecutor(self._dispatcher, self._config.batch)
        self._bind_configured_handlers()

    def _bind_configured_handlers(self) -> None:
        handlers = self._config.events
        for attr, kind in _HANDLER_BINDINGS:
            handler = getattr(handlers, attr)
            if handler is not None:
                self._events.on(kind, handler)

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------
    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def dispatcher(self) -> RequestDispatcher:
        return self._dispatcher

    @property
    def credential(self) -> Credential:
        return self._credential

    @property
    def events(self) -> EventBus:
        """The client's event bus."""
        return self._events

    @property
    def rate_limit(self) -> RateLimitSnapshot:
        """Latest observed rate limit state."""
        return self._tracker.snapshot

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._events.drain()
        await self._http.aclose()

    async def __aenter__(self) -> PcoClient:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------
    def on(self, kind: EventKind | str, handler: EventHandler) -> None:
        self._events.on(kind, handler)

    def off(self, kind: EventKind | str, handler: EventHandler) -> bool:
        return self._events.off(kind, handler)

    def remove_all_listeners(self, kind: EventKind | str | None = None) -> None:
        self._events.remove_all_listeners(kind)

    def listener_count(self, kind: EventKind | str) -> int:
        return self._events.listener_count(kind)

    def event_types(self) -> list[EventKind]:
        return self._events.event_types()

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------
    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        body: Any = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> ApiResponse:
        """Send one request through the dispatcher.

        Raises:
            PcoApiError: If the request fails fatally or exhausts its retries
        """
        descriptor = RequestDescriptor(
            method=method,
            endpoint=endpoint,
            params=dict(params or {}),
            body=body,
            headers=dict(headers or {}),
            timeout=timeout,
        )
        return await self._dispatcher.execute(descriptor)

    async def get(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> ApiResponse:
        return await self.request("GET", endpoint, params=params, **kwargs)

    async def post(self, endpoint: str, body: Any = None, **kwargs: Any) -> ApiResponse:
        return await self.request("POST", endpoint, body=body, **kwargs)

    async def patch(self, endpoint: str, body: Any = None, **kwargs: Any) -> ApiResponse:
        return await self.request("PATCH", endpoint, body=body, **kwargs)

    async def delete(self, endpoint: str, **kwargs: Any) -> ApiResponse:
        return await self.request("DELETE", endpoint, **kwargs)

    # -------------------------------------------------------------------------
    # Pagination
    # -------------------------------------------------------------------------
    def paginate(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        *,
        per_page: int | None = None,
        max_pages: int | None = None,
        on_progress: ProgressCallback | None = None,
        headers: dict[str, str] | None = None,
    ) -> PaginationCursor:
        """Create a cursor over a collection (no request is sent yet)."""
        template = RequestDescriptor(
            method="GET",
            endpoint=endpoint,
            params=dict(params or {}),
            headers=dict(headers or {}),
        )
        return PaginationCursor(
            self._dispatcher,
            template,
            config=self._config.pagination,
            per_page=per_page,
            max_pages=max_pages,
            on_progress=on_progress,
            sleep=self._sleep,
        )

    async def get_all_pages(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        *,
        per_page: int | None = None,
        max_pages: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> PaginationResult:
        """Fetch every page of a collection."""
        cursor = self.paginate(
            endpoint,
            params,
            per_page=per_page,
            max_pages=max_pages,
            on_progress=on_progress,
        )
        return await cursor.collect()

    async def get_page(
        self,
        endpoint: str,
        page: int = 1,
        per_page: int | None = None,
        params: dict[str, Any] | None = None,
    ) -> Page:
        """Fetch a single 1-based page using offset pagination."""
        if page < 1:
            raise ValueError("page must be at least 1")
        size = per_page or self._config.pagination.per_page
        query = {**(params or {}), "per_page": size, "offset": (page - 1) * size}
        response = await self.get(endpoint, query)
        return Page(
            number=page,
            items=response.resources,
            meta=response.meta,
            links=response.links,
        )

    # -------------------------------------------------------------------------
    # Batch
    # -------------------------------------------------------------------------
    async def batch(
        self,
        operations: Sequence[BatchOperation | dict[str, Any]],
        *,
        max_concurrency: int | None = None,
        on_operation_complete: OperationCallback | None = None,
    ) -> BatchReport:
        """Execute independent operations with bounded concurrency."""
        return await self._batch.execute(
            operations,
            max_concurrency=max_concurrency,
            on_operation_complete=on_operation_complete,
        )

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------
    def get_performance_metrics(self) -> dict[str, dict[str, Any]]:
        """Timing and error rate per ``"METHOD endpoint"``."""
        return self._metrics.get_metrics()

    def get_rate_limit_info(self) -> dict[str, Any]:
        """Tracked rate limit state as a plain dictionary."""
        return self._tracker.to_dict()
