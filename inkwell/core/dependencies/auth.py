"""
Authentication dependencies for FastAPI endpoints.

- Building the framework-neutral ``AuthRequest`` from a Starlette request
- Requiring a valid cookie session (``CurrentSession``)
- Keeping logged-in users away from the login pages
- IP rate limiting for the login form

Example usage:
    from inkwell.core.dependencies.auth import CurrentSession

    @router.get("/home")
    async def home(current: CurrentSession):
        return {"user_id": current.user.id}
"""

from typing import Annotated

from fastapi import Depends, Request, Response

from inkwell.core.dependencies.services import ServicesDep
from inkwell.core.schemas.auth import Toast, ValidSession
from inkwell.core.services.auth.outcome import AuthRequest
from inkwell.core.services.rate_limit import RateLimiter, rate_limit_by_ip


async def get_auth_request(request: Request) -> AuthRequest:
    return await AuthRequest.from_request(request)


AuthRequestDep = Annotated[AuthRequest, Depends(get_auth_request)]


async def require_user(services: ServicesDep, auth_request: AuthRequestDep) -> ValidSession:
    """
    Resolve the logged-in user and their live session.

    Raises:
        InterruptException: Redirect to the login page, clearing the cookie,
            when the cookie is missing, the session was revoked or expired,
            or the user is no longer active.
    """
    return await services.bridge.require_authenticated(auth_request)


CurrentSession = Annotated[ValidSession, Depends(require_user)]


async def require_anonymous(services: ServicesDep, auth_request: AuthRequestDep) -> None:
    """Redirect visitors who already hold a valid session."""
    await services.bridge.require_anonymous(auth_request)


async def consume_toast(
    services: ServicesDep, auth_request: AuthRequestDep, response: Response
) -> Toast | None:
    """Read the pending flash notice and clear its cookie on this response."""
    toast, clear_cookie = services.toasts.get_toast(auth_request.cookie)
    if clear_cookie:
        response.headers.append("set-cookie", clear_cookie)
    return toast


PendingToast = Annotated[Toast | None, Depends(consume_toast)]


async def get_rate_limiter(services: ServicesDep) -> RateLimiter:
    return services.rate_limiter


login_rate_limit = rate_limit_by_ip(get_rate_limiter)


__all__ = [
    "AuthRequestDep",
    "CurrentSession",
    "PendingToast",
    "consume_toast",
    "get_auth_request",
    "get_rate_limiter",
    "login_rate_limit",
    "require_anonymous",
    "require_user",
]
