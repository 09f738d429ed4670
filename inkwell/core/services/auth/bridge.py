"""
Glue between authentication outcomes, the signed cookie and stored sessions.

The cookie carries only ``{userId, sessionId}`` under ``auth-user``. A
cookie is trusted only while the matching ``SessionStore`` record is live
and the user is active, so revoking a session or blocking a user takes
effect on the next request.
"""

import asyncio

from pydantic import ValidationError

from inkwell.core.config import auth_logger, settings
from inkwell.core.enums import ToastType
from inkwell.core.exceptions.types import AppException
from inkwell.core.schemas.auth import AuthUserSession, ValidSession
from inkwell.core.services.auth.authenticator import Authenticator
from inkwell.core.services.auth.outcome import (
    AuthRequest,
    Failure,
    Interrupt,
    InterruptException,
    Success,
)
from inkwell.core.services.auth.strategy import (
    AUTH_EMAIL_KEY,
    AUTH_USER_KEY,
    OAUTH_STATE_KEY,
)
from inkwell.core.services.cookie_session import CookieSession, CookieSessionStorage
from inkwell.core.services.session_store import SessionStore
from inkwell.core.services.toast import ToastManager
from inkwell.core.services.users import UserDirectory


__all__ = ["SessionBridge"]


class SessionBridge:
    """
    Args:
        authenticator: Strategy registry used by ``sign_in``.
        cookies: Auth cookie storage.
        sessions: Server-side session store.
        users: User directory used to check the user is still active.
        toasts: Flash notices for error redirects.
        success_redirect: Where logged-in users land.
        login_redirect: Where anonymous users are sent.
    """

    def __init__(
        self,
        authenticator: Authenticator,
        cookies: CookieSessionStorage,
        sessions: SessionStore,
        users: UserDirectory,
        toasts: ToastManager,
        success_redirect: str = settings.AUTH_SUCCESS_REDIRECT,
        login_redirect: str = settings.AUTH_LOGIN_REDIRECT,
    ):
        self.authenticator = authenticator
        self.cookies = cookies
        self.sessions = sessions
        self.users = users
        self.toasts = toasts
        self.success_redirect = success_redirect
        self.login_redirect = login_redirect

    def get_session_from_cookie(
        self, request: AuthRequest
    ) -> tuple[CookieSession, AuthUserSession | None]:
        session = self.cookies.get_session(request.cookie)
        payload = session.get(AUTH_USER_KEY)
        if payload is None:
            return session, None
        try:
            return session, AuthUserSession.model_validate(payload)
        except ValidationError:
            auth_logger.warning("Ignoring malformed auth-user cookie payload")
            return session, None

    async def validate_session(
        self, principal: AuthUserSession | None
    ) -> ValidSession | None:
        """Return the session and user if both are still valid."""
        if principal is None or not principal.user_id or not principal.session_id:
            return None

        user, record = await asyncio.gather(
            self.users.find_user_by_id(principal.user_id),
            self.sessions.get(principal.user_id, principal.session_id),
        )
        if user is None or not user.is_active or record is None:
            return None
        return ValidSession(session=record, user=user)

    async def query_session(
        self, request: AuthRequest
    ) -> tuple[CookieSession, AuthUserSession | None, ValidSession | None]:
        session, principal = self.get_session_from_cookie(request)
        return session, principal, await self.validate_session(principal)

    async def require_authenticated(self, request: AuthRequest) -> ValidSession:
        """
        Return the valid session or abort with a redirect to the login page.

        Raises:
            InterruptException: Clearing the cookie when no valid session exists.
        """
        session, _, valid = await self.query_session(request)
        if valid is None:
            raise InterruptException(
                Interrupt(self.login_redirect).with_cookies(
                    self.cookies.destroy_session(session)
                )
            )
        return valid

    async def require_anonymous(self, request: AuthRequest) -> None:
        """
        Abort logged-in visitors to the success page.

        A cookie naming a session that is no longer valid is cleared so it
        cannot block the TOTP flow.

        Raises:
            InterruptException: If the visitor is logged in or carries a stale cookie.
        """
        session, principal, valid = await self.query_session(request)
        if valid is not None:
            raise InterruptException(Interrupt(self.success_redirect))
        if principal is not None:
            auth_logger.info(f"Clearing stale auth cookie for user={principal.user_id}")
            raise InterruptException(
                Interrupt(self.login_redirect).with_cookies(
                    self.cookies.destroy_session(session)
                )
            )

    async def logout(self, request: AuthRequest) -> Interrupt:
        session, principal = self.get_session_from_cookie(request)
        if principal is not None:
            await self.sessions.delete(principal.user_id, principal.session_id)
            auth_logger.info(f"User logged out: user={principal.user_id}")
        return Interrupt(self.login_redirect).with_cookies(
            self.cookies.destroy_session(session)
        )

    def commit_auth_success(
        self, principal: AuthUserSession, request: AuthRequest
    ) -> Interrupt:
        session = self.cookies.get_session(request.cookie)
        session.unset(AUTH_EMAIL_KEY)
        session.unset(OAUTH_STATE_KEY)
        session.set(AUTH_USER_KEY, principal.model_dump(by_alias=True))
        return Interrupt(self.success_redirect).with_cookies(
            self.cookies.commit_session(session)
        )

    def handle_auth_error(
        self, provider: str, error: AppException, redirect_to: str | None = None
    ) -> Interrupt:
        auth_logger.error(
            f"Login failed via {provider}: {type(error).__name__}: {error.message}"
        )
        return self.toasts.redirect_with_toast(
            redirect_to or self.login_redirect,
            title=error.message,
            type=ToastType.ERROR,
        )

    async def sign_in(
        self, provider: str, request: AuthRequest, error_redirect: str | None = None
    ) -> Interrupt:
        """Run ``provider`` and turn its outcome into the redirect to serve."""
        outcome = await self.authenticator.authenticate(provider, request)
        if isinstance(outcome, Success):
            return self.commit_auth_success(outcome.principal, request)
        if isinstance(outcome, Failure):
            return self.handle_auth_error(provider, outcome.error, error_redirect)
        return outcome
