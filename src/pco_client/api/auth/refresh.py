"""OAuth refresh-token grant for the PCO API."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

import httpx
from pydantic import BaseModel, ConfigDict, Field

from pco_client.api.exceptions import TokenRefreshError
from pco_client.config import DEFAULT_TOKEN_URL
from pco_client.logging import get_logger

logger = get_logger(__name__)


class TokenPair(BaseModel):
    """An OAuth access/refresh token pair."""

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(min_length=1)
    refresh_token: str = Field(min_length=1)
    expires_in: int | None = Field(default=None, ge=0, description="Lifetime in seconds")
    obtained_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def expires_at(self) -> datetime | None:
        """When the access token expires, if the server said."""
        if self.expires_in is None:
            return None
        return self.obtained_at + timedelta(seconds=self.expires_in)


# Takes the current refresh token, returns the new pair.
TokenRefresher = Callable[[str], Awaitable[TokenPair]]


class OAuthTokenRefresher:
    """Exchanges a refresh token for a new pair at PCO's token endpoint.

    Usage:
        refresher = OAuthTokenRefresher(client_id="...", client_secret="...")
        pair = await refresher("current-refresh-token")
    """

    def __init__(
        self,
        token_url: str = DEFAULT_TOKEN_URL,
        client_id: str | None = None,
        client_secret: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the refresher.

        Args:
            token_url: OAuth token endpoint
            client_id: OAuth application id (sent when set)
            client_secret: OAuth application secret (sent when set)
            client: Shared httpx client; a short-lived one is used when None
            timeout: Request timeout in seconds
        """
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._client = client
        self._timeout = timeout

    def _form(self, refresh_token: str) -> dict[str, str]:
        form = {"grant_type": "refresh_token", "refresh_token": refresh_token}
        if self._client_id:
            form["client_id"] = self._client_id
        if self._client_secret:
            form["client_secret"] = self._client_secret
        return form

    async def __call__(self, refresh_token: str) -> TokenPair:
        """Perform the grant.

        Raises:
            TokenRefreshError: On transport failure, non-2xx status, or a
                response without an access token
        """
        form = self._form(refresh_token)
        headers = {"Accept": "application/json"}

        try:
            if self._client is not None:
                response = await self._client.post(
                    self._token_url, data=form, headers=headers, timeout=self._timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._token_url, data=form, headers=headers)
        except httpx.HTTPError as e:
            raise TokenRefreshError(f"Token endpoint unreachable: {e}", cause=e) from e

        if not response.is_success:
            raise TokenRefreshError(
                f"Token refresh failed: {response.status_code} {response.reason_phrase}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TokenRefreshError("Token endpoint returned invalid JSON", cause=e) from e

        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not access_token:
            raise TokenRefreshError("Token endpoint response has no access_token")

        logger.debug("Token endpoint issued a new access token")
        return TokenPair(
            access_token=access_token,
            refresh_token=payload.get("refresh_token") or refresh_token,
            expires_in=payload.get("expires_in"),
        )
