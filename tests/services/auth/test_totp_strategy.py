"""
Unit tests for TOTPStrategy.

The strategy is exercised through the wired services so the verify callback
creates real users and sessions in the in-memory stores.
"""

from unittest.mock import AsyncMock

import pytest

from inkwell.core.enums import VerificationType
from inkwell.core.exceptions.types import (
    AlreadyAuthenticatedException,
    CodeExpiredException,
    CooldownException,
    EmailDeliveryException,
    EmailRequiredException,
    InvalidCodeException,
    InvalidEmailException,
)
from inkwell.core.services.auth.outcome import Failure, Interrupt, Success
from inkwell.core.services.auth.strategy import AUTH_EMAIL_KEY, AUTH_USER_KEY
from inkwell.core.services.cookie_session import CookieSession


def _pair(set_cookie: str) -> str:
    return set_cookie.split(";", 1)[0]


@pytest.fixture
def strategy(services):
    return services.authenticator.get("totp")


@pytest.fixture
def pending_cookie(services):
    """Cookie header of a visitor who already requested a code."""

    def _cookie(email: str = "jane@example.com") -> str:
        return _pair(
            services.cookies.commit_session(CookieSession({AUTH_EMAIL_KEY: email}))
        )

    return _cookie


class TestSendCode:
    @pytest.mark.asyncio
    async def test_sends_code_and_redirects_to_verify(
        self, strategy, services, outbox, make_request
    ):
        outcome = await strategy.authenticate(
            make_request(form={"email": "  Jane@Example.com "})
        )

        assert isinstance(outcome, Interrupt)
        assert outcome.redirect_to == "/auth/verify"
        assert len(outbox.sent) == 1
        assert outbox.sent[0].email == "jane@example.com"

        session = services.cookies.get_session(_pair(outcome.set_cookies[0]))
        assert session.get(AUTH_EMAIL_KEY) == "jane@example.com"

    @pytest.mark.asyncio
    async def test_missing_email(self, strategy, make_request):
        outcome = await strategy.authenticate(make_request(form={"email": "   "}))

        assert isinstance(outcome, Failure)
        assert isinstance(outcome.error, EmailRequiredException)

    @pytest.mark.asyncio
    async def test_invalid_email(self, strategy, outbox, make_request):
        outcome = await strategy.authenticate(make_request(form={"email": "nope"}))

        assert isinstance(outcome, Failure)
        assert isinstance(outcome.error, InvalidEmailException)
        assert outbox.sent == []

    @pytest.mark.asyncio
    async def test_second_request_hits_cooldown(self, strategy, make_request):
        await strategy.authenticate(make_request(form={"email": "jane@example.com"}))
        outcome = await strategy.authenticate(
            make_request(form={"email": "jane@example.com"})
        )

        assert isinstance(outcome, Failure)
        assert isinstance(outcome.error, CooldownException)

    @pytest.mark.asyncio
    async def test_delivery_failure_is_a_failure(self, strategy, make_request):
        strategy.send_code = AsyncMock(side_effect=EmailDeliveryException())

        outcome = await strategy.authenticate(
            make_request(form={"email": "jane@example.com"})
        )

        assert isinstance(outcome, Failure)
        assert isinstance(outcome.error, EmailDeliveryException)

    @pytest.mark.asyncio
    async def test_resend_uses_pending_email(
        self, strategy, outbox, clock, make_request, pending_cookie
    ):
        outcome = await strategy.authenticate(
            make_request(cookie=pending_cookie(), form={"intent": "resend"})
        )

        assert isinstance(outcome, Interrupt)
        assert outcome.redirect_to == "/auth/verify"
        assert outbox.sent[-1].email == "jane@example.com"
        assert len(outcome.set_cookies) == 1
        assert outcome.set_cookies[0].startswith("__toast=")

    @pytest.mark.asyncio
    async def test_already_authenticated(self, strategy, services, make_request):
        cookie = _pair(
            services.cookies.commit_session(
                CookieSession({AUTH_USER_KEY: {"userId": "u1", "sessionId": "s1"}})
            )
        )

        outcome = await strategy.authenticate(
            make_request(cookie=cookie, form={"email": "jane@example.com"})
        )

        assert isinstance(outcome, Failure)
        assert isinstance(outcome.error, AlreadyAuthenticatedException)


class TestVerifyCode:
    @pytest.mark.asyncio
    async def test_correct_code_creates_user_and_session(
        self, strategy, services, users, make_request, pending_cookie
    ):
        code = await services.verification.generate(
            VerificationType.EMAIL, "jane@example.com"
        )

        outcome = await strategy.authenticate(
            make_request(cookie=pending_cookie(), form={"code": code})
        )

        assert isinstance(outcome, Success)
        principal = outcome.principal
        assert users.users[principal.user_id].email == "jane@example.com"
        record = await services.sessions.get(principal.user_id, principal.session_id)
        assert record.user_agent == "pytest-agent"
        assert record.ip_address == "10.0.0.1"

    @pytest.mark.asyncio
    async def test_wrong_code(self, strategy, services, make_request, pending_cookie):
        await services.verification.generate(VerificationType.EMAIL, "jane@example.com")

        outcome = await strategy.authenticate(
            make_request(cookie=pending_cookie(), form={"code": "000000"})
        )

        assert isinstance(outcome, Failure)
        assert isinstance(outcome.error, InvalidCodeException)

    @pytest.mark.asyncio
    async def test_expired_code(self, strategy, services, clock, make_request, pending_cookie):
        code = await services.verification.generate(
            VerificationType.EMAIL, "jane@example.com"
        )
        clock.advance(services.settings.TOTP_PERIOD)

        outcome = await strategy.authenticate(
            make_request(cookie=pending_cookie(), form={"code": code})
        )

        assert isinstance(outcome, Failure)
        assert isinstance(outcome.error, CodeExpiredException)

    @pytest.mark.asyncio
    async def test_code_without_pending_email_needs_email(self, strategy, make_request):
        outcome = await strategy.authenticate(make_request(form={"code": "ABC123"}))

        assert isinstance(outcome, Failure)
        assert isinstance(outcome.error, EmailRequiredException)
