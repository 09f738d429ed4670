"""
Unit tests for OAuthStrategy.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from inkwell.core.exceptions.types import InvalidStateException, OAuthException
from inkwell.core.schemas.auth import AuthUserSession
from inkwell.core.services.auth.oauth import OAuthStrategy
from inkwell.core.services.auth.outcome import Failure, Interrupt, Success
from inkwell.core.services.auth.strategy import OAUTH_STATE_KEY
from inkwell.core.services.cookie_session import CookieSession
from inkwell.core.services.oauth.base import OAuthTokens, OAuthUserInfo


def _pair(set_cookie: str) -> str:
    return set_cookie.split(";", 1)[0]


@pytest.fixture
def provider():
    provider = MagicMock()
    provider.provider_name = "github"
    provider.get_authorization_url = MagicMock(
        side_effect=lambda redirect_uri, state: f"https://github.test/authorize?state={state}"
    )
    provider.exchange_code_for_tokens = AsyncMock(
        return_value=OAuthTokens(access_token="gho_1", token_type="bearer")
    )
    provider.get_user_info = AsyncMock(
        return_value=OAuthUserInfo(
            provider="github", provider_user_id="42", email="jane@example.com"
        )
    )
    return provider


@pytest.fixture
def verify():
    return AsyncMock(return_value=AuthUserSession(user_id="u1", session_id="s1"))


@pytest.fixture
def strategy(provider, services, verify):
    return OAuthStrategy(
        provider,
        services.cookies,
        redirect_uri="http://testserver/auth/github/callback",
        verify=verify,
    )


def _state_cookie(services, state: str) -> str:
    return _pair(services.cookies.commit_session(CookieSession({OAUTH_STATE_KEY: state})))


class TestOAuthStrategy:
    def test_name_comes_from_provider(self, strategy):
        assert strategy.name == "github"

    @pytest.mark.asyncio
    async def test_start_redirects_with_state(self, strategy, services, make_request):
        outcome = await strategy.authenticate(make_request(method="GET"))

        assert isinstance(outcome, Interrupt)
        state = services.cookies.get_session(_pair(outcome.set_cookies[0])).get(
            OAUTH_STATE_KEY
        )
        assert len(state) == 64
        assert outcome.redirect_to == f"https://github.test/authorize?state={state}"

    @pytest.mark.asyncio
    async def test_callback_success(self, strategy, services, provider, verify, make_request):
        outcome = await strategy.authenticate(
            make_request(
                method="GET",
                cookie=_state_cookie(services, "abc"),
                query={"code": "xyz", "state": "abc"},
            )
        )

        assert isinstance(outcome, Success)
        assert outcome.principal.user_id == "u1"
        provider.exchange_code_for_tokens.assert_awaited_once_with(
            "xyz", "http://testserver/auth/github/callback"
        )
        provider.get_user_info.assert_awaited_once_with("gho_1")
        params = verify.await_args.args[0]
        assert params.provider == "github"
        assert params.profile.email == "jane@example.com"

    @pytest.mark.asyncio
    async def test_state_mismatch(self, strategy, services, provider, make_request):
        outcome = await strategy.authenticate(
            make_request(
                method="GET",
                cookie=_state_cookie(services, "abc"),
                query={"code": "xyz", "state": "evil"},
            )
        )

        assert isinstance(outcome, Failure)
        assert isinstance(outcome.error, InvalidStateException)
        provider.exchange_code_for_tokens.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_stored_state(self, strategy, make_request):
        outcome = await strategy.authenticate(
            make_request(method="GET", query={"code": "xyz", "state": "abc"})
        )

        assert isinstance(outcome, Failure)
        assert isinstance(outcome.error, InvalidStateException)

    @pytest.mark.asyncio
    async def test_provider_error_param(self, strategy, make_request):
        outcome = await strategy.authenticate(
            make_request(
                method="GET",
                query={"error": "access_denied", "error_description": "User denied"},
            )
        )

        assert isinstance(outcome, Failure)
        assert isinstance(outcome.error, OAuthException)
        assert outcome.error.message == "User denied"

    @pytest.mark.asyncio
    async def test_exchange_failure(self, strategy, services, provider, make_request):
        provider.exchange_code_for_tokens.side_effect = OAuthException("exchange failed")

        outcome = await strategy.authenticate(
            make_request(
                method="GET",
                cookie=_state_cookie(services, "abc"),
                query={"code": "xyz", "state": "abc"},
            )
        )

        assert isinstance(outcome, Failure)
        assert outcome.error.message == "exchange failed"
