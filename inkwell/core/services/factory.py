"""
Per-request service assembly.

Long-lived clients (key-value store, user directory, HTTP client) live on
``app.state``. Everything built on top of them is cheap and assembled per
request here, so no service holds request-scoped state between requests.
"""

import time
from dataclasses import dataclass

import httpx

from inkwell.core.config import Settings
from inkwell.core.enums import AuthProvider
from inkwell.core.schemas.auth import AuthUserSession
from inkwell.core.services.auth.authenticator import Authenticator
from inkwell.core.services.auth.bridge import SessionBridge
from inkwell.core.services.auth.oauth import OAuthStrategy, OAuthVerifyParams
from inkwell.core.services.auth.outcome import AuthRequest
from inkwell.core.services.auth.totp import (
    SendCode,
    TOTPStrategy,
    TOTPVerifyParams,
    ValidateEmail,
)
from inkwell.core.services.cookie_session import CookieSessionStorage
from inkwell.core.services.email import (
    AuthCodeMailer,
    EmailValidator,
    ResendEmailProvider,
)
from inkwell.core.services.kv import KVStore
from inkwell.core.services.oauth import GitHubOAuthProvider, GoogleOAuthProvider
from inkwell.core.services.rate_limit import RateLimiter
from inkwell.core.services.session_store import SessionStore
from inkwell.core.services.toast import ToastManager
from inkwell.core.services.users import AuthProfile, UserDirectory, handle_user_auth
from inkwell.core.services.verification import VerificationStore
from inkwell.core.utils import Clock


__all__ = ["Services", "build_auth_cookies", "create_services"]


@dataclass
class Services:
    settings: Settings
    kv: KVStore
    users: UserDirectory
    verification: VerificationStore
    sessions: SessionStore
    cookies: CookieSessionStorage
    toasts: ToastManager
    authenticator: Authenticator
    bridge: SessionBridge
    rate_limiter: RateLimiter


def build_auth_cookies(settings: Settings) -> CookieSessionStorage:
    return CookieSessionStorage(
        name=settings.SESSION_COOKIE_NAME,
        secrets=[settings.SESSION_SECRET_KEY],
        max_age=settings.SESSION_MAX_AGE,
        same_site=settings.SESSION_SAME_SITE_COOKIE_POLICY,
        secure=settings.is_production,
    )


def _build_toasts(settings: Settings) -> ToastManager:
    return ToastManager(
        CookieSessionStorage(
            name=settings.TOAST_COOKIE_NAME,
            secrets=[settings.TOAST_SECRET_KEY],
            same_site="lax",
            secure=settings.is_production,
            salt="toast",
        )
    )


async def _open_session(
    sessions: SessionStore, user_id: str, request: AuthRequest
) -> AuthUserSession:
    session_id = await sessions.create(
        user_id,
        user_agent=request.user_agent,
        ip_address=request.ip_address,
        country=request.country,
    )
    return AuthUserSession(user_id=user_id, session_id=session_id)


def create_services(
    settings: Settings,
    kv: KVStore,
    users: UserDirectory,
    http_client: httpx.AsyncClient | None = None,
    send_code: SendCode | None = None,
    validate_email: ValidateEmail | None = None,
    clock: Clock = time.time,
) -> Services:
    """
    Wire every auth service for one request.

    Args:
        settings: Application settings.
        kv: Shared key-value store.
        users: User directory.
        http_client: Shared HTTP client for OAuth, Resend and MX lookups.
        send_code: Overrides code delivery (defaults to ``AuthCodeMailer``).
        validate_email: Overrides email validation (defaults to ``EmailValidator``).
        clock: Time source for the stores.
    """
    cookies = build_auth_cookies(settings)
    toasts = _build_toasts(settings)
    verification = VerificationStore(
        kv,
        period=settings.TOTP_PERIOD,
        send_cooldown=settings.TOTP_SEND_COOLDOWN,
        max_attempts=settings.TOTP_MAX_ATTEMPTS,
        digits=settings.TOTP_DIGITS,
        algorithm=settings.TOTP_ALGORITHM,
        char_set=settings.TOTP_CHARSET,
        clock=clock,
    )
    sessions = SessionStore(kv, max_age=settings.SESSION_MAX_AGE, clock=clock)
    rate_limiter = RateLimiter(
        kv,
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        window=settings.RATE_LIMIT_WINDOW,
        clock=clock,
    )

    if send_code is None:
        provider = (
            ResendEmailProvider(
                http_client,
                api_key=settings.RESEND_API_KEY,
                sender_name=settings.EMAIL_SENDER_NAME,
                sender_address=settings.EMAIL_SENDER_ADDRESS,
                base_url=settings.RESEND_BASE_URL,
            )
            if http_client is not None
            else None
        )
        send_code = AuthCodeMailer(
            provider,
            app_name=settings.APP_NAME,
            code_period=settings.TOTP_PERIOD,
            development=settings.is_development,
        ).send_code

    if validate_email is None:
        validate_email = EmailValidator(
            http_client,
            check_mx=settings.is_production,
            lookup_url=settings.EMAIL_MX_LOOKUP_URL,
        ).validate

    async def verify_totp_login(params: TOTPVerifyParams) -> AuthUserSession:
        user_id = await handle_user_auth(
            users, AuthProfile(email=params.email, provider=AuthProvider.TOTP)
        )
        return await _open_session(sessions, user_id, params.request)

    async def verify_oauth_login(params: OAuthVerifyParams) -> AuthUserSession:
        user_id = await handle_user_auth(
            users,
            AuthProfile(
                email=params.profile.email,
                provider=AuthProvider(params.provider),
                display_name=params.profile.name,
                avatar_url=params.profile.picture,
                provider_account_id=params.profile.provider_user_id,
            ),
        )
        return await _open_session(sessions, user_id, params.request)

    authenticator = Authenticator()
    authenticator.use(
        TOTPStrategy(
            cookies=cookies,
            verification=verification,
            send_code=send_code,
            validate_email=validate_email,
            toasts=toasts,
            verify=verify_totp_login,
            verify_redirect=settings.AUTH_VERIFY_REDIRECT,
        )
    )

    if http_client is not None:
        app_url = settings.APP_URL.rstrip("/")
        authenticator.use(
            OAuthStrategy(
                GitHubOAuthProvider(
                    http_client, settings.GITHUB_CLIENT_ID, settings.GITHUB_CLIENT_SECRET
                ),
                cookies,
                redirect_uri=f"{app_url}/auth/github/callback",
                verify=verify_oauth_login,
            )
        )
        authenticator.use(
            OAuthStrategy(
                GoogleOAuthProvider(
                    http_client, settings.GOOGLE_CLIENT_ID, settings.GOOGLE_CLIENT_SECRET
                ),
                cookies,
                redirect_uri=f"{app_url}/auth/google/callback",
                verify=verify_oauth_login,
            )
        )

    bridge = SessionBridge(
        authenticator=authenticator,
        cookies=cookies,
        sessions=sessions,
        users=users,
        toasts=toasts,
        success_redirect=settings.AUTH_SUCCESS_REDIRECT,
        login_redirect=settings.AUTH_LOGIN_REDIRECT,
    )

    return Services(
        settings=settings,
        kv=kv,
        users=users,
        verification=verification,
        sessions=sessions,
        cookies=cookies,
        toasts=toasts,
        authenticator=authenticator,
        bridge=bridge,
        rate_limiter=rate_limiter,
    )
