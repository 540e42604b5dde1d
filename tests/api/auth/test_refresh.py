"""Unit tests for the OAuth refresh-token grant."""

from urllib.parse import parse_qs

import httpx
import pytest

from pco_client.api.auth import OAuthTokenRefresher
from pco_client.api.exceptions import TokenRefreshError
from pco_client.config import DEFAULT_TOKEN_URL


def _refresher(handler, **kwargs) -> tuple[OAuthTokenRefresher, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OAuthTokenRefresher(client=client, **kwargs), client


class TestOAuthTokenRefresher:
    """Tests for OAuthTokenRefresher."""

    @pytest.mark.asyncio
    async def test_posts_refresh_grant(self) -> None:
        """The grant is form-encoded with client credentials when set."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "access_token": "new-access",
                    "refresh_token": "new-refresh",
                    "expires_in": 7200,
                },
            )

        refresher, client = _refresher(handler, client_id="cid", client_secret="csecret")
        async with client:
            pair = await refresher("old-refresh")

        assert str(seen[0].url) == DEFAULT_TOKEN_URL
        assert seen[0].method == "POST"
        form = parse_qs(seen[0].content.decode())
        assert form == {
            "grant_type": ["refresh_token"],
            "refresh_token": ["old-refresh"],
            "client_id": ["cid"],
            "client_secret": ["csecret"],
        }
        assert pair.access_token == "new-access"
        assert pair.refresh_token == "new-refresh"
        assert pair.expires_at is not None

    @pytest.mark.asyncio
    async def test_keeps_refresh_token_when_absent(self) -> None:
        """A response without refresh_token keeps the old one."""
        refresher, client = _refresher(
            lambda request: httpx.Response(200, json={"access_token": "new-access"})
        )
        async with client:
            pair = await refresher("old-refresh")

        assert pair.refresh_token == "old-refresh"
        assert pair.expires_at is None

    @pytest.mark.asyncio
    async def test_omits_unset_client_credentials(self) -> None:
        """client_id/client_secret are only sent when configured."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"access_token": "a"})

        refresher, client = _refresher(handler)
        async with client:
            await refresher("r")

        form = parse_qs(seen[0].content.decode())
        assert set(form) == {"grant_type", "refresh_token"}

    @pytest.mark.asyncio
    async def test_error_status(self) -> None:
        """A non-2xx response raises TokenRefreshError."""
        refresher, client = _refresher(
            lambda request: httpx.Response(400, json={"error": "invalid_grant"})
        )
        async with client:
            with pytest.raises(TokenRefreshError, match="400"):
                await refresher("r")

    @pytest.mark.asyncio
    async def test_missing_access_token(self) -> None:
        """A 200 without access_token raises TokenRefreshError."""
        refresher, client = _refresher(lambda request: httpx.Response(200, json={}))
        async with client:
            with pytest.raises(TokenRefreshError):
                await refresher("r")

    @pytest.mark.asyncio
    async def test_transport_failure(self) -> None:
        """Connection errors are wrapped with their cause."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        refresher, client = _refresher(handler)
        async with client:
            with pytest.raises(TokenRefreshError) as exc_info:
                await refresher("r")

        assert isinstance(exc_info.value.cause, httpx.ConnectError)
