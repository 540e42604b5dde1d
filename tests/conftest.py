"""Pytest configuration and shared fixtures.

Usage Guide:
- For wire-level tests: build a client with `make_client(handler)`, where
  handler is a ResponseQueue or any httpx.MockTransport handler
- For backoff assertions: inspect `sleep.delays` (no real sleeping happens)
- For JSON:API bodies and rate limit headers: import from tests.fixtures
"""

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from pco_client.api import PcoClient
from pco_client.config import (
    ClientConfig,
    OAuthAuth,
    PaginationConfig,
    PersonalAccessTokenAuth,
    RetryConfig,
)
from pco_client.logging import reset_logging

PAT = "app_id_123:secret_456"


# -----------------------------------------------------------------------------
# Test Doubles
# -----------------------------------------------------------------------------
class RecordingSleep:
    """Awaitable stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class ResponseQueue:
    """MockTransport handler that replays scripted responses in order.

    Each entry is an httpx.Response, an exception to raise, or a callable
    taking the request. The last entry repeats once the queue is drained.
    """

    def __init__(self, *responses: Any) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self._responses) > 1:
            item = self._responses.pop(0)
        else:
            item = self._responses[0]
        if isinstance(item, Exception):
            raise item
        if callable(item) and not isinstance(item, httpx.Response):
            return item(request)
        return item

    @property
    def call_count(self) -> int:
        return len(self.requests)


# -----------------------------------------------------------------------------
# Configuration Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def pat_config() -> ClientConfig:
    """Client config with a personal access token and default retry policy."""
    return ClientConfig(auth=PersonalAccessTokenAuth(personal_access_token=PAT))


@pytest.fixture
def oauth_config() -> ClientConfig:
    """Client config with an OAuth pair and no hooks."""
    return ClientConfig(
        auth=OAuthAuth(access_token="access-1", refresh_token="refresh-1"),
    )


@pytest.fixture
def fast_config() -> ClientConfig:
    """PAT config with no inter-page delay and short backoff."""
    return ClientConfig(
        auth=PersonalAccessTokenAuth(personal_access_token=PAT),
        retry=RetryConfig(max_retries=3, base_delay_ms=100, max_delay_ms=1000),
        pagination=PaginationConfig(page_delay_ms=0),
    )


# -----------------------------------------------------------------------------
# Client Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
async def make_client(pat_config, sleep):
    """Factory building PcoClients over httpx.MockTransport.

    Clients are closed after the test.
    """
    clients: list[PcoClient] = []

    def _make(
        handler: Callable[[httpx.Request], httpx.Response],
        config: ClientConfig | None = None,
        **kwargs: Any,
    ) -> PcoClient:
        client = PcoClient(
            config or pat_config,
            transport=httpx.MockTransport(handler),
            sleep=sleep,
            **kwargs,
        )
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.close()


@pytest.fixture(autouse=True)
def _reset_logging():
    """Keep loguru sinks from leaking between tests."""
    yield
    reset_logging()


def json_response(
    status: int,
    body: Any = None,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    """Build an httpx.Response with a JSON body (empty when body is None)."""
    if body is None:
        return httpx.Response(status, headers=headers)
    return httpx.Response(status, json=body, headers=headers)
