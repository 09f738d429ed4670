"""
Unit tests for GitHubOAuthProvider.
"""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from inkwell.core.exceptions.types import OAuthException
from inkwell.core.services.oauth.github import GitHubOAuthProvider

USER = {"id": 42, "login": "janedoe", "name": None, "email": None, "avatar_url": "https://a/42"}


def _provider(handler) -> GitHubOAuthProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GitHubOAuthProvider(client, client_id="gh-id", client_secret="gh-secret")


def _router(routes: dict):
    def handler(request: httpx.Request) -> httpx.Response:
        route = routes[f"{request.url.scheme}://{request.url.host}{request.url.path}"]
        return route(request) if callable(route) else route

    return handler


class TestAuthorizationUrl:
    def test_contains_client_and_state(self):
        url = _provider(lambda r: httpx.Response(200)).get_authorization_url(
            "http://testserver/auth/github/callback", "state123"
        )

        parsed = urlparse(url)
        params = parse_qs(parsed.query)
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == (
            "https://github.com/login/oauth/authorize"
        )
        assert params["client_id"] == ["gh-id"]
        assert params["state"] == ["state123"]
        assert params["scope"] == ["read:user user:email"]
        assert params["redirect_uri"] == ["http://testserver/auth/github/callback"]


class TestExchangeCode:
    @pytest.mark.asyncio
    async def test_success(self):
        def token(request: httpx.Request) -> httpx.Response:
            form = parse_qs(request.content.decode())
            assert form["code"] == ["abc"]
            assert form["client_secret"] == ["gh-secret"]
            return httpx.Response(
                200, json={"access_token": "gho_1", "token_type": "bearer", "scope": "read:user"}
            )

        provider = _provider(_router({GitHubOAuthProvider._TOKEN_URL: token}))
        tokens = await provider.exchange_code_for_tokens("abc", "http://cb")

        assert tokens.access_token == "gho_1"
        assert tokens.scope == "read:user"

    @pytest.mark.asyncio
    async def test_error_in_200_body(self):
        provider = _provider(
            lambda r: httpx.Response(
                200,
                json={"error": "bad_verification_code", "error_description": "The code is incorrect"},
            )
        )

        with pytest.raises(OAuthException) as exc_info:
            await provider.exchange_code_for_tokens("abc", "http://cb")

        assert "The code is incorrect" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_http_error(self):
        provider = _provider(lambda r: httpx.Response(500, text="oops"))

        with pytest.raises(OAuthException):
            await provider.exchange_code_for_tokens("abc", "http://cb")

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        with pytest.raises(OAuthException) as exc_info:
            await _provider(handler).exchange_code_for_tokens("abc", "http://cb")

        assert "network error" in exc_info.value.message


class TestUserInfo:
    @pytest.mark.asyncio
    async def test_uses_primary_verified_email(self):
        provider = _provider(
            _router(
                {
                    GitHubOAuthProvider._USER_URL: httpx.Response(200, json=USER),
                    GitHubOAuthProvider._EMAILS_URL: httpx.Response(
                        200,
                        json=[
                            {"email": "old@example.com", "primary": False, "verified": True},
                            {"email": "jane@example.com", "primary": True, "verified": True},
                        ],
                    ),
                }
            )
        )

        info = await provider.get_user_info("gho_1")

        assert info.provider == "github"
        assert info.provider_user_id == "42"
        assert info.email == "jane@example.com"
        assert info.email_verified is True
        assert info.name == "janedoe"
        assert info.picture == "https://a/42"

    @pytest.mark.asyncio
    async def test_public_email_is_kept(self):
        provider = _provider(
            _router(
                {
                    GitHubOAuthProvider._USER_URL: httpx.Response(
                        200, json={**USER, "email": "public@example.com", "name": "Jane"}
                    ),
                    GitHubOAuthProvider._EMAILS_URL: httpx.Response(403),
                }
            )
        )

        info = await provider.get_user_info("gho_1")

        assert info.email == "public@example.com"
        assert info.email_verified is False
        assert info.name == "Jane"

    @pytest.mark.asyncio
    async def test_no_email_available(self):
        provider = _provider(
            _router(
                {
                    GitHubOAuthProvider._USER_URL: httpx.Response(200, json=USER),
                    GitHubOAuthProvider._EMAILS_URL: httpx.Response(200, json=[]),
                }
            )
        )

        info = await provider.get_user_info("gho_1")

        assert info.email == ""

    @pytest.mark.asyncio
    async def test_user_endpoint_failure(self):
        provider = _provider(lambda r: httpx.Response(401))

        with pytest.raises(OAuthException):
            await provider.get_user_info("bad")
