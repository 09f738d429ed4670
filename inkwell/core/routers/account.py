"""
Account router for signed-in users.

This module provides endpoints for:
- Home page state
- Listing the user's active sessions
- Signing out one session or every other session
- Deleting the account
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import RedirectResponse

from inkwell.core.config import auth_logger
from inkwell.core.dependencies import (
    AuthRequestDep,
    CurrentSession,
    PendingToast,
    ServicesDep,
)
from inkwell.core.enums import ToastType
from inkwell.core.exceptions.types import SessionNotFoundException
from inkwell.core.schemas.auth import (
    AccountResponse,
    HomeResponse,
    SessionRecord,
    SessionView,
)
from inkwell.core.utils import get_device_info, is_mobile_user_agent, normalize_email


router = APIRouter()

ACCOUNT_PATH = "/account"


def _from_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def _to_view(record: SessionRecord, current_session_id: str) -> SessionView:
    return SessionView(
        id=record.session_id,
        device=get_device_info(record.user_agent),
        is_mobile=is_mobile_user_agent(record.user_agent),
        ip_address=record.ip_address,
        country=record.country,
        created_at=_from_ms(record.created_at),
        expires_at=_from_ms(record.expires_at),
        is_current=record.session_id == current_session_id,
    )


@router.get("/home", response_model=HomeResponse, summary="Home page state")
async def home(current: CurrentSession, toast: PendingToast) -> HomeResponse:
    return HomeResponse(
        user=current.user, session_id=current.session.session_id, toast=toast
    )


# =============================================================================
# Sessions
# =============================================================================


@router.get(ACCOUNT_PATH, response_model=AccountResponse, summary="Account overview")
async def account(
    services: ServicesDep, current: CurrentSession, toast: PendingToast
) -> AccountResponse:
    """
    Return the user's profile and live sessions, newest first.

    The session that made this request is flagged with ``is_current``.
    """
    records = await services.sessions.list_by_user(current.user.id)
    return AccountResponse(
        user=current.user,
        sessions=[_to_view(r, current.session.session_id) for r in records],
        toast=toast,
    )


@router.post(
    f"{ACCOUNT_PATH}/sessions/{{session_id}}/revoke",
    response_class=RedirectResponse,
    status_code=303,
    summary="Sign out a session",
)
async def revoke_session(
    session_id: str, services: ServicesDep, current: CurrentSession
) -> RedirectResponse:
    """
    Sign out one of the user's other sessions.

    Raises:
        SessionNotFoundException: If the session does not exist or has expired.
    """
    if session_id == current.session.session_id:
        return services.toasts.redirect_with_toast(
            ACCOUNT_PATH,
            title="Use logout to sign out of this device",
            type=ToastType.ERROR,
        ).to_response()

    record = await services.sessions.get(current.user.id, session_id)
    if record is None:
        raise SessionNotFoundException()

    await services.sessions.delete(current.user.id, session_id)
    return services.toasts.redirect_with_toast(
        ACCOUNT_PATH, title="Session signed out", type=ToastType.SUCCESS
    ).to_response()


@router.post(
    f"{ACCOUNT_PATH}/sessions/revoke-others",
    response_class=RedirectResponse,
    status_code=303,
    summary="Sign out every other session",
)
async def revoke_other_sessions(
    services: ServicesDep, current: CurrentSession
) -> RedirectResponse:
    await services.sessions.delete_others_by_user(
        current.user.id, current.session.session_id
    )
    return services.toasts.redirect_with_toast(
        ACCOUNT_PATH,
        title="Signed out of all other sessions",
        type=ToastType.SUCCESS,
    ).to_response()


# =============================================================================
# Account Deletion
# =============================================================================


@router.post(
    f"{ACCOUNT_PATH}/delete",
    response_class=RedirectResponse,
    status_code=303,
    summary="Delete account",
    description="""
## Delete Account

Submit an `email` form field matching the account email to confirm. Every
session is signed out, the user and linked provider accounts are deleted and
the auth cookie is cleared.
""",
)
async def delete_account(
    services: ServicesDep, current: CurrentSession, auth_request: AuthRequestDep
) -> RedirectResponse:
    confirmation = normalize_email(auth_request.form.get("email", ""))
    if confirmation != normalize_email(current.user.email):
        return services.toasts.redirect_with_toast(
            ACCOUNT_PATH,
            title="Email does not match your account",
            type=ToastType.ERROR,
        ).to_response()

    await services.sessions.delete_all_by_user(current.user.id)
    await services.users.delete_user(current.user.id)
    auth_logger.info(f"Account deleted: user={current.user.id}")

    cookie_session = services.cookies.get_session(auth_request.cookie)
    return (
        services.toasts.redirect_with_toast(
            services.settings.AUTH_LOGIN_REDIRECT,
            title="Your account has been deleted",
            type=ToastType.SUCCESS,
        )
        .with_cookies(services.cookies.destroy_session(cookie_session))
        .to_response()
    )


__all__ = ["router"]
