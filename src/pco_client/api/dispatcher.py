"""Request dispatch with authentication, retry and rate limit handling.

The dispatcher is the only component that talks to the network. For each
logical request it:
- injects the credential's Authorization header
- sends the attempt through a shared httpx.AsyncClient
- feeds every response's headers to the rate limit tracker
- classifies the outcome and retries, refreshes or fails
- publishes lifecycle events on the client's bus
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from pco_client.config import RateLimitConfig
from pco_client.logging import bind_request

from .auth import Credential
from .events import (
    AuthFailureEvent,
    AuthRefreshEvent,
    ErrorEvent,
    EventBus,
    RateLimitEvent,
    RequestCompleteEvent,
    RequestStartEvent,
)
from .exceptions import (
    Classification,
    PcoApiError,
    PcoAuthenticationError,
    PcoNetworkError,
    TokenRefreshError,
    parse_error_objects,
)
from .metrics import PerformanceMetrics
from .rate_limit import RateLimitTracker, parse_rate_limit_detail, parse_retry_after
from .rate_limit.schemas import RateLimitHeader
from .requests import ApiResponse, RequestDescriptor
from .retry import RetryScheduler

Sleep = Callable[[float], Awaitable[Any]]

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


def classify(status: int, *, can_refresh: bool = False) -> Classification:
    """Map an HTTP status to an outcome class.

    401 is only AUTH_EXPIRED when the credential can refresh; otherwise it
    is a plain client fault.
    """
    if 200 <= status < 300:
        return Classification.SUCCESS
    if status == 401 and can_refresh:
        return Classification.AUTH_EXPIRED
    if status == 429:
        return Classification.RATE_LIMITED
    if status >= 500:
        return Classification.SERVER_FAULT
    return Classification.CLIENT_FAULT


class RequestDispatcher:
    """Executes request descriptors against the PCO API.

    Usage:
        async with httpx.AsyncClient(base_url=DEFAULT_BASE_URL) as http:
            dispatcher = RequestDispatcher(http, StaticTokenCredential("id:secret"))
            response = await dispatcher.execute(RequestDescriptor("GET", "/people"))
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        credential: Credential,
        *,
        retry: RetryScheduler | None = None,
        tracker: RateLimitTracker | None = None,
        events: EventBus | None = None,
        metrics: PerformanceMetrics | None = None,
        rate_limit_config: RateLimitConfig | None = None,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            http_client: Shared async HTTP client (carries the base URL)
            credential: Source of the Authorization header
            retry: Retry scheduler (default RetryConfig when None)
            tracker: Rate limit tracker shared with the client
            events: Event bus to publish on
            metrics: Performance metrics sink
            rate_limit_config: Enables preemptive throttling when set so
            timeout: Default per-attempt timeout in seconds
            headers: Static headers sent with every request
            sleep: Awaitable sleep used for backoff and throttling
        """
        self._http = http_client
        self._credential = credential
        self._retry = retry or RetryScheduler()
        self._tracker = tracker or RateLimitTracker()
        self._events = events or EventBus()
        self._metrics = metrics or PerformanceMetrics()
        self._rate_limit_config = rate_limit_config or self._tracker.config
        self._timeout = timeout
        self._headers = dict(headers or {})
        self._sleep = sleep

    @property
    def credential(self) -> Credential:
        return self._credential

    @property
    def tracker(self) -> RateLimitTracker:
        return self._tracker

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def metrics(self) -> PerformanceMetrics:
        return self._metrics

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------
    async def execute(self, descriptor: RequestDescriptor) -> ApiResponse:
        """Run one logical request to completion.

        Returns:
            The successful response

        Raises:
            PcoApiError: The request failed fatally or exhausted its retries
        """
        log = bind_request(descriptor.method, descriptor.endpoint, descriptor.request_id)
        started = time.perf_counter()
        sends = 0
        free_sends = 0  # resends after a token refresh do not count as retries
        refreshed = False

        while True:
            sends += 1
            attempt = sends - free_sends

            await self._throttle(descriptor)

            version = self._credential.version
            headers = self._build_headers(descriptor)
            self._events.emit(
                RequestStartEvent(
                    method=descriptor.method,
                    endpoint=descriptor.endpoint,
                    request_id=descriptor.request_id,
                    attempt=sends,
                )
            )
            log.debug("Sending (attempt {})", sends)

            try:
                response = await self._http.request(
                    descriptor.method,
                    descriptor.endpoint,
                    params=descriptor.params or None,
                    json=descriptor.body,
                    headers=headers,
                    timeout=descriptor.timeout or self._timeout,
                )
            except httpx.TransportError as e:
                error = PcoNetworkError.from_transport_error(
                    e,
                    rate_limit=self._tracker.snapshot,
                    request_id=descriptor.request_id,
                )
                if self._retry.should_retry(attempt, error.classification):
                    delay = self._retry.wait_for(attempt)
                    log.warning(
                        "Network failure (attempt {}), retrying in {:.2f}s: {}",
                        attempt,
                        delay,
                        e,
                    )
                    await self._sleep(delay)
                    continue
                raise self._fail(descriptor, error, started, sends)

            snapshot = self._tracker.update_from_headers(response.headers)
            classification = classify(
                response.status_code,
                can_refresh=self._credential.supports_refresh and not refreshed,
            )

            if classification is Classification.SUCCESS:
                return self._succeed(descriptor, response, started, sends)

            if classification is Classification.AUTH_EXPIRED:
                refreshed = True
                try:
                    started_flight = await self._credential.refresh(version)
                except TokenRefreshError as e:
                    error = PcoAuthenticationError(
                        str(e),
                        status=response.status_code,
                        status_text=response.reason_phrase,
                        errors=parse_error_objects(response),
                        rate_limit=snapshot,
                        request_id=descriptor.request_id,
                        classification=Classification.AUTH_EXPIRED,
                    )
                    self._emit_auth_failure(descriptor, error)
                    raise self._fail(descriptor, error, started, sends) from e

                if started_flight:
                    self._events.emit(
                        AuthRefreshEvent(
                            request_id=descriptor.request_id,
                            version=self._credential.version,
                        )
                    )
                log.debug("Resending with refreshed credentials")
                free_sends += 1
                continue

            error = PcoApiError.from_response(
                response,
                classification=classification,
                rate_limit=snapshot,
                request_id=descriptor.request_id,
            )

            retry_after: float | None = None
            if classification is Classification.RATE_LIMITED:
                retry_after = parse_retry_after(response.headers.get(RateLimitHeader.RETRY_AFTER))
                self._emit_rate_limit(descriptor, error, retry_after)

            if self._retry.should_retry(attempt, classification):
                delay = self._retry.wait_for(attempt, retry_after)
                log.warning(
                    "{} {} (attempt {}), retrying in {:.2f}s",
                    response.status_code,
                    classification.value,
                    attempt,
                    delay,
                )
                await self._sleep(delay)
                continue

            if response.status_code == 401:
                self._emit_auth_failure(descriptor, error)
            raise self._fail(descriptor, error, started, sends)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------
    def _build_headers(self, descriptor: RequestDescriptor) -> dict[str, str]:
        headers = {**DEFAULT_HEADERS, **self._headers, **descriptor.headers}
        headers["Authorization"] = self._credential.authorization_header()
        return headers

    async def _throttle(self, descriptor: RequestDescriptor) -> None:
        if not self._rate_limit_config.preemptive_throttling:
            return
        delay = self._tracker.recommended_delay()
        if delay > 0:
            bind_request(descriptor.method, descriptor.endpoint, descriptor.request_id).info(
                "Rate limit window exhausted, waiting {:.2f}s", delay
            )
            await self._sleep(delay)

    def _succeed(
        self,
        descriptor: RequestDescriptor,
        response: httpx.Response,
        started: float,
        sends: int,
    ) -> ApiResponse:
        duration = time.perf_counter() - started
        self._metrics.record(descriptor.operation, duration, success=True)
        self._events.emit(
            RequestCompleteEvent(
                method=descriptor.method,
                endpoint=descriptor.endpoint,
                request_id=descriptor.request_id,
                status=response.status_code,
                duration=duration,
                attempts=sends,
            )
        )
        return ApiResponse(
            status=response.status_code,
            data=_parse_body(descriptor, response),
            headers=response.headers,
            request_id=descriptor.request_id,
            duration=duration,
            attempts=sends,
        )

    def _fail(
        self,
        descriptor: RequestDescriptor,
        error: PcoApiError,
        started: float,
        sends: int,
    ) -> PcoApiError:
        duration = time.perf_counter() - started
        self._metrics.record(descriptor.operation, duration, success=False)
        self._events.emit(
            RequestCompleteEvent(
                method=descriptor.method,
                endpoint=descriptor.endpoint,
                request_id=descriptor.request_id,
                status=error.status,
                duration=duration,
                attempts=sends,
            )
        )
        self._events.emit(
            ErrorEvent(
                error=error,
                method=descriptor.method,
                endpoint=descriptor.endpoint,
                request_id=descriptor.request_id,
            )
        )
        bind_request(descriptor.method, descriptor.endpoint, descriptor.request_id).error(
            "Request failed after {} attempt(s): {} ({})",
            sends,
            error,
            error.classification.value,
        )
        return error

    def _emit_rate_limit(
        self,
        descriptor: RequestDescriptor,
        error: PcoApiError,
        retry_after: float | None,
    ) -> None:
        snapshot = self._tracker.snapshot
        count, limit, period = snapshot.count, snapshot.limit, snapshot.period
        if limit is None:
            for item in error.errors:
                parsed = parse_rate_limit_detail(str(item.detail or ""))
                if parsed is not None:
                    count, limit, period = parsed
                    break
        self._events.emit(
            RateLimitEvent(
                endpoint=descriptor.endpoint,
                request_id=descriptor.request_id,
                limit=limit,
                count=count,
                period=period,
                retry_after=retry_after,
            )
        )

    def _emit_auth_failure(self, descriptor: RequestDescriptor, error: PcoApiError) -> None:
        self._events.emit(
            AuthFailureEvent(
                error=error,
                endpoint=descriptor.endpoint,
                request_id=descriptor.request_id,
            )
        )


def _parse_body(descriptor: RequestDescriptor, response: httpx.Response) -> Any:
    if response.status_code == 204 or descriptor.method == "DELETE" or not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
