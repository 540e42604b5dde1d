"""Credentials that authorize PCO requests.

A credential produces the ``Authorization`` header for each attempt.
OAuth credentials can also refresh themselves after a 401; concurrent
callers share a single refresh flight.
"""

from __future__ import annotations

import asyncio
import base64
import inspect
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

import httpx

from pco_client.api.exceptions import TokenRefreshError
from pco_client.config import AuthConfig, OAuthAuth
from pco_client.logging import get_logger

from .refresh import OAuthTokenRefresher, TokenPair, TokenRefresher

logger = get_logger(__name__)


@runtime_checkable
class Credential(Protocol):
    """What the dispatcher needs from a credential."""

    @property
    def supports_refresh(self) -> bool: ...

    @property
    def version(self) -> int: ...

    def authorization_header(self) -> str: ...

    async def refresh(self, observed_version: int) -> bool: ...


async def _call_hook(hook: Callable[[Any], Any] | None, arg: Any, name: str) -> None:
    """Call a user hook, awaiting it if needed. Failures are logged."""
    if hook is None:
        return
    try:
        result = hook(arg)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.error("{} hook failed: {}", name, e)


class StaticTokenCredential:
    """A fixed token that is never refreshed.

    PCO personal access tokens (``app_id:secret``) are sent as HTTP Basic;
    any other token is sent as a Bearer token.
    """

    supports_refresh = False
    version = 0

    def __init__(self, token: str) -> None:
        if not token:
            raise ValueError("token must not be empty")
        if ":" in token:
            encoded = base64.b64encode(token.encode()).decode()
            self._header = f"Basic {encoded}"
        else:
            self._header = f"Bearer {token}"

    def authorization_header(self) -> str:
        return self._header

    async def refresh(self, observed_version: int) -> bool:
        raise TokenRefreshError("Static credentials cannot be refreshed")


class OAuthCredential:
    """OAuth access/refresh pair with single-flight refresh.

    The pair is replaced as a whole and ``version`` is bumped on every
    successful refresh. A caller passes the version it sent with; if the
    version has already moved on, the refresh is skipped and the caller
    simply resends.

    Usage:
        credential = OAuthCredential(
            "access", "refresh", refresher=OAuthTokenRefresher(),
            on_refresh=save_tokens,
        )
        version = credential.version
        ...  # request got a 401
        await credential.refresh(version)
    """

    supports_refresh = True

    def __init__(
        self,
        access_token: str,
        refresh_token: str,
        *,
        refresher: TokenRefresher,
        on_refresh: Callable[[TokenPair], Any] | None = None,
        on_refresh_failure: Callable[[Exception], Any] | None = None,
    ) -> None:
        self._pair = TokenPair(access_token=access_token, refresh_token=refresh_token)
        self._version = 0
        self._refresher = refresher
        self._on_refresh = on_refresh
        self._on_refresh_failure = on_refresh_failure
        self._flight: asyncio.Task[TokenPair] | None = None

    @property
    def tokens(self) -> TokenPair:
        """Current token pair."""
        return self._pair

    @property
    def version(self) -> int:
        """Number of successful refreshes so far."""
        return self._version

    @property
    def is_refreshing(self) -> bool:
        """Whether a refresh flight is in progress."""
        return self._flight is not None

    def authorization_header(self) -> str:
        return f"Bearer {self._pair.access_token}"

    async def refresh(self, observed_version: int) -> bool:
        """Refresh the pair unless someone already did.

        Args:
            observed_version: ``version`` at the time the failed request
                was built

        Returns:
            True if this call started the refresh flight

        Raises:
            TokenRefreshError: If the flight failed (raised to every waiter)
        """
        if self._version != observed_version:
            return False

        started = self._flight is None
        if self._flight is None:
            self._flight = asyncio.create_task(self._run_refresh())
            self._flight.add_done_callback(_consume_result)

        # Shielded so one cancelled waiter does not abort the shared flight
        await asyncio.shield(self._flight)
        return started

    async def _run_refresh(self) -> TokenPair:
        logger.info("Refreshing OAuth access token")
        try:
            try:
                pair = await self._refresher(self._pair.refresh_token)
            except Exception as e:
                logger.warning("OAuth token refresh failed: {}", e)
                await _call_hook(self._on_refresh_failure, e, "on_refresh_failure")
                if isinstance(e, TokenRefreshError):
                    raise
                raise TokenRefreshError(f"Token refresh failed: {e}", cause=e) from e

            self._pair = pair
            self._version += 1
            logger.info("OAuth access token refreshed (version {})", self._version)
            await _call_hook(self._on_refresh, pair, "on_refresh")
            return pair
        finally:
            self._flight = None


def _consume_result(task: asyncio.Task[Any]) -> None:
    # Mark the exception retrieved; waiters re-raise it through shield
    if not task.cancelled():
        task.exception()


def credential_from_config(
    auth: AuthConfig,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = 30.0,
) -> StaticTokenCredential | OAuthCredential:
    """Build the credential described by a client's ``auth`` section."""
    if isinstance(auth, OAuthAuth):
        refresher = OAuthTokenRefresher(
            auth.token_url,
            auth.client_id,
            auth.client_secret,
            client=client,
            timeout=timeout,
        )
        return OAuthCredential(
            auth.access_token,
            auth.refresh_token,
            refresher=refresher,
            on_refresh=auth.on_refresh,
            on_refresh_failure=auth.on_refresh_failure,
        )
    return StaticTokenCredential(auth.personal_access_token)
