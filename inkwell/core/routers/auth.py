"""
Authentication router for email code and OAuth login.

This module provides endpoints for:
- Email one-time code login (request code, verify, resend)
- OAuth authentication (GitHub, Google)
- Logout

Every state change answers with a ``303`` redirect. Cookies for the auth
session and flash notices travel on that redirect.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from inkwell.core.dependencies import (
    AuthRequestDep,
    PendingToast,
    ServicesDep,
    login_rate_limit,
    require_anonymous,
)
from inkwell.core.enums import OAuthProviderName
from inkwell.core.schemas.auth import LoginPageResponse, PendingVerificationResponse
from inkwell.core.services.auth.outcome import Interrupt, InterruptException
from inkwell.core.services.auth.strategy import AUTH_EMAIL_KEY


router = APIRouter()


# =============================================================================
# Email Code Endpoints
# =============================================================================


@router.get(
    "/login",
    response_model=LoginPageResponse,
    summary="Login page state",
    dependencies=[Depends(require_anonymous)],
)
async def login_page(toast: PendingToast) -> LoginPageResponse:
    """Return the pending flash notice for the login page, if any."""
    return LoginPageResponse(toast=toast)


@router.post(
    "/login",
    response_class=RedirectResponse,
    status_code=303,
    summary="Request a login code",
    description="""
## Request a Login Code

Submit an `email` form field. A one-time code is sent to the address and the
client is redirected to `/auth/verify`. The pending email is kept in the
signed auth cookie.

Failures (invalid email, send cooldown) redirect back to `/auth/login` with
an error toast. Requests are rate limited per client IP.
""",
    dependencies=[Depends(login_rate_limit), Depends(require_anonymous)],
)
async def login(services: ServicesDep, auth_request: AuthRequestDep) -> RedirectResponse:
    interrupt = await services.bridge.sign_in(
        "totp", auth_request, error_redirect=services.settings.AUTH_LOGIN_REDIRECT
    )
    return interrupt.to_response()


@router.get(
    "/verify",
    response_model=PendingVerificationResponse,
    summary="Verification page state",
    dependencies=[Depends(require_anonymous)],
)
async def verify_page(
    services: ServicesDep, auth_request: AuthRequestDep, toast: PendingToast
) -> PendingVerificationResponse:
    """
    Return the email awaiting a code.

    Raises:
        InterruptException: Redirect to the login page when no code was requested.
    """
    session = services.cookies.get_session(auth_request.cookie)
    email = session.get(AUTH_EMAIL_KEY)
    if not isinstance(email, str) or not email:
        raise InterruptException(Interrupt(services.settings.AUTH_LOGIN_REDIRECT))
    return PendingVerificationResponse(email=email, toast=toast)


@router.post(
    "/verify",
    response_class=RedirectResponse,
    status_code=303,
    summary="Verify a login code",
    description="""
## Verify a Login Code

Submit a `code` form field for the pending email. On a match the user is
signed in and redirected to `/home`.

Submit `intent=resend` (without a code) to send a fresh code to the pending
email.
""",
    dependencies=[Depends(login_rate_limit), Depends(require_anonymous)],
)
async def verify(services: ServicesDep, auth_request: AuthRequestDep) -> RedirectResponse:
    interrupt = await services.bridge.sign_in(
        "totp", auth_request, error_redirect=services.settings.AUTH_VERIFY_REDIRECT
    )
    return interrupt.to_response()


# =============================================================================
# Logout
# =============================================================================


@router.post("/logout", response_class=RedirectResponse, status_code=303, summary="Logout")
@router.get("/logout", response_class=RedirectResponse, status_code=303, include_in_schema=False)
async def logout(services: ServicesDep, auth_request: AuthRequestDep) -> RedirectResponse:
    """Delete the current session record and clear the auth cookie."""
    interrupt = await services.bridge.logout(auth_request)
    return interrupt.to_response()


# =============================================================================
# OAuth Endpoints
# =============================================================================


@router.get(
    "/{provider}",
    response_class=RedirectResponse,
    status_code=303,
    summary="Start OAuth flow",
    description="""
## Start OAuth Authentication

Redirects to the provider's consent screen. A random `state` is stored in the
signed auth cookie and checked on the callback.

| Provider | Path Value |
|----------|------------|
| GitHub | `github` |
| Google | `google` |
""",
    dependencies=[Depends(require_anonymous)],
)
async def oauth_start(
    provider: OAuthProviderName, services: ServicesDep, auth_request: AuthRequestDep
) -> RedirectResponse:
    interrupt = await services.bridge.sign_in(provider.value, auth_request)
    return interrupt.to_response()


@router.get(
    "/{provider}/callback",
    response_class=RedirectResponse,
    status_code=303,
    summary="OAuth callback",
    dependencies=[Depends(require_anonymous)],
)
async def oauth_callback(
    provider: OAuthProviderName, services: ServicesDep, auth_request: AuthRequestDep
) -> RedirectResponse:
    """Complete the OAuth flow and sign the user in."""
    interrupt = await services.bridge.sign_in(provider.value, auth_request)
    return interrupt.to_response()


__all__ = ["router"]
