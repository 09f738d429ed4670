"""
Unit tests for GoogleOAuthProvider.
"""

from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from inkwell.core.exceptions.types import OAuthException
from inkwell.core.services.oauth.google import GoogleOAuthProvider


def _provider(handler) -> GoogleOAuthProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GoogleOAuthProvider(client, client_id="g-id", client_secret="g-secret")


class TestAuthorizationUrl:
    def test_params(self):
        url = _provider(lambda r: httpx.Response(200)).get_authorization_url(
            "http://cb", "s1"
        )

        params = parse_qs(urlparse(url).query)
        assert params["response_type"] == ["code"]
        assert params["scope"] == ["openid email profile"]
        assert params["state"] == ["s1"]
        assert params["prompt"] == ["select_account"]


class TestExchangeCode:
    @pytest.mark.asyncio
    async def test_success(self):
        def handler(request: httpx.Request) -> httpx.Response:
            form = parse_qs(request.content.decode())
            assert form["grant_type"] == ["authorization_code"]
            return httpx.Response(
                200,
                json={
                    "access_token": "ya29",
                    "token_type": "Bearer",
                    "expires_in": 3599,
                    "id_token": "jwt",
                },
            )

        tokens = await _provider(handler).exchange_code_for_tokens("code", "http://cb")

        assert tokens.access_token == "ya29"
        assert tokens.expires_in == 3599
        assert tokens.id_token == "jwt"

    @pytest.mark.asyncio
    async def test_failure(self):
        provider = _provider(lambda r: httpx.Response(400, json={"error": "invalid_grant"}))

        with pytest.raises(OAuthException):
            await provider.exchange_code_for_tokens("code", "http://cb")


class TestUserInfo:
    @pytest.mark.asyncio
    async def test_success(self):
        provider = _provider(
            lambda r: httpx.Response(
                200,
                json={
                    "sub": "1234",
                    "email": "jane@example.com",
                    "email_verified": True,
                    "name": "Jane Doe",
                    "picture": "https://p/1234",
                },
            )
        )

        info = await provider.get_user_info("ya29")

        assert info.provider == "google"
        assert info.provider_user_id == "1234"
        assert info.email == "jane@example.com"
        assert info.email_verified is True
        assert info.name == "Jane Doe"

    @pytest.mark.asyncio
    async def test_retries_network_errors(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) < 3:
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(200, json={"sub": "1", "email": "a@b.co"})

        with patch(
            "inkwell.core.services.oauth.google.asyncio.sleep", new_callable=AsyncMock
        ):
            info = await _provider(handler).get_user_info("ya29")

        assert len(attempts) == 3
        assert info.provider_user_id == "1"

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        with patch(
            "inkwell.core.services.oauth.google.asyncio.sleep", new_callable=AsyncMock
        ):
            with pytest.raises(OAuthException) as exc_info:
                await _provider(handler).get_user_info("ya29")

        assert "network error" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_http_error_is_not_retried(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            return httpx.Response(401)

        with pytest.raises(OAuthException):
            await _provider(handler).get_user_info("ya29")

        assert len(attempts) == 1
