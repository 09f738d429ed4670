"""
Email one-time code strategy.

The flow spans two form posts:

1. ``email`` is posted. A code is generated and sent, the email is kept in
   the signed cookie under ``auth:email`` and the client is sent to the
   verify page.
2. ``code`` is posted. It is checked against the pending email and, on a
   match, the verify callback resolves the user and opens a session.

Posting ``intent=resend`` from the verify page sends a fresh code for the
pending email without touching the cookie session.
"""

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Mapping

from inkwell.core.config import auth_logger, settings
from inkwell.core.enums import LoginIntent, ToastType, VerificationType
from inkwell.core.exceptions.types import (
    AlreadyAuthenticatedException,
    EmailRequiredException,
    InvalidCodeException,
    InvalidEmailException,
)
from inkwell.core.services.auth.outcome import (
    AuthOutcome,
    AuthRequest,
    Failure,
    Interrupt,
    SendCodeParams,
    Success,
)
from inkwell.core.services.auth.strategy import (
    AUTH_EMAIL_KEY,
    AUTH_USER_KEY,
    AuthStrategy,
    VerifyFunction,
)
from inkwell.core.services.cookie_session import CookieSessionStorage
from inkwell.core.services.toast import ToastManager
from inkwell.core.services.verification import VerificationStore
from inkwell.core.utils import normalize_email


__all__ = ["TOTPStrategy", "TOTPVerifyParams", "SendCode", "ValidateEmail"]

SendCode = Callable[[SendCodeParams], Awaitable[None]]
ValidateEmail = Callable[[str], Awaitable[bool]]


@dataclass
class TOTPVerifyParams:
    email: str
    request: AuthRequest
    form: Mapping[str, str] = field(default_factory=dict)


def _non_empty(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class TOTPStrategy(AuthStrategy[TOTPVerifyParams]):
    """
    Args:
        cookies: Auth cookie storage holding the pending email.
        verification: Code store.
        send_code: Delivers a generated code.
        validate_email: Accepts or rejects an email before a code is sent.
        toasts: Flash notices for the resend confirmation.
        verify: Resolves the user and opens a session once the code matches.
        verify_redirect: Page where the user enters the code.
    """

    name = "totp"

    def __init__(
        self,
        cookies: CookieSessionStorage,
        verification: VerificationStore,
        send_code: SendCode,
        validate_email: ValidateEmail,
        toasts: ToastManager,
        verify: VerifyFunction[TOTPVerifyParams],
        verify_redirect: str = settings.AUTH_VERIFY_REDIRECT,
    ):
        super().__init__(verify)
        self.cookies = cookies
        self.verification = verification
        self.send_code = send_code
        self.validate_email = validate_email
        self.toasts = toasts
        self.verify_redirect = verify_redirect

    async def _authenticate(self, request: AuthRequest) -> AuthOutcome:
        session = self.cookies.get_session(request.cookie)

        if session.has(AUTH_USER_KEY):
            return Failure(AlreadyAuthenticatedException())

        form_email = _non_empty(request.form.get("email"))
        form_code = _non_empty(request.form.get("code"))
        intent = _non_empty(request.form.get("intent"))
        pending_email = _non_empty(session.get(AUTH_EMAIL_KEY))

        if pending_email and form_code:
            valid = await self.verification.verify(
                VerificationType.EMAIL, pending_email, form_code
            )
            if not valid:
                return Failure(InvalidCodeException())

            principal = await self.verify(
                TOTPVerifyParams(email=pending_email, request=request, form=request.form)
            )
            auth_logger.info(f"TOTP login succeeded for user={principal.user_id}")
            return Success(principal)

        target = form_email or pending_email
        if not target:
            return Failure(EmailRequiredException())

        email = normalize_email(target)
        if not await self.validate_email(email):
            return Failure(InvalidEmailException())

        code = await self.verification.generate(VerificationType.EMAIL, email)
        await self.send_code(
            SendCodeParams(email=email, code=code, request=request, form=request.form)
        )

        if intent == LoginIntent.RESEND.value:
            return self.toasts.redirect_with_toast(
                self.verify_redirect,
                title="Verification code sent",
                type=ToastType.SUCCESS,
            )

        session.set(AUTH_EMAIL_KEY, email)
        return Interrupt(self.verify_redirect).with_cookies(
            self.cookies.commit_session(session)
        )
