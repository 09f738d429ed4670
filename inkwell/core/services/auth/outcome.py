"""
Result types shared by strategies, the authenticator and the session bridge.

An authentication attempt ends in exactly one of three ways:

- ``Success``: the strategy resolved a principal (``AuthUserSession``).
- ``Interrupt``: the flow must continue somewhere else. The caller serves a
  redirect carrying the attached ``Set-Cookie`` headers. This is navigation,
  not an error.
- ``Failure``: the attempt failed with a typed ``AppException``.

Guards that cannot return an outcome (FastAPI dependencies) raise
``InterruptException`` instead. The exception handler converts it into the
same redirect response.
"""

from dataclasses import dataclass, field
from typing import Mapping, Union

from fastapi import Request, status
from fastapi.responses import RedirectResponse

from inkwell.core.exceptions.types import AppException
from inkwell.core.schemas.auth import AuthUserSession
from inkwell.core.utils import get_client_ip


__all__ = [
    "AuthOutcome",
    "AuthRequest",
    "Failure",
    "Interrupt",
    "InterruptException",
    "SendCodeParams",
    "Success",
]


@dataclass(frozen=True)
class Interrupt:
    """A redirect used as control flow, with the cookies it must set."""

    redirect_to: str
    set_cookies: tuple[str, ...] = ()
    status_code: int = status.HTTP_303_SEE_OTHER

    def with_cookies(self, *cookies: str | None) -> "Interrupt":
        """Return a copy with extra ``Set-Cookie`` values appended."""
        extra = tuple(cookie for cookie in cookies if cookie)
        return Interrupt(
            redirect_to=self.redirect_to,
            set_cookies=self.set_cookies + extra,
            status_code=self.status_code,
        )

    def to_response(self) -> RedirectResponse:
        response = RedirectResponse(self.redirect_to, status_code=self.status_code)
        for cookie in self.set_cookies:
            response.headers.append("set-cookie", cookie)
        return response


@dataclass(frozen=True)
class Success:
    principal: AuthUserSession


@dataclass(frozen=True)
class Failure:
    error: AppException


AuthOutcome = Union[Success, Interrupt, Failure]


class InterruptException(Exception):
    """Raised by guards to abort the request with a redirect."""

    def __init__(self, interrupt: Interrupt):
        self.interrupt = interrupt
        super().__init__(f"Redirect to {interrupt.redirect_to}")


@dataclass
class AuthRequest:
    """
    Framework-neutral view of an inbound request.

    Strategies and the session bridge only need headers, form fields and query
    parameters. Building them from a Starlette ``Request`` once per call keeps
    the auth core testable without an ASGI app.

    Attributes:
        url: Full request URL.
        method: HTTP method.
        headers: Request headers with lower-cased names.
        form: Submitted string form fields (file uploads are dropped).
        query: Query string parameters.
        client_host: Peer address reported by the server, if any.
    """

    url: str = "http://localhost/"
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    form: Mapping[str, str] = field(default_factory=dict)
    query: Mapping[str, str] = field(default_factory=dict)
    client_host: str | None = None

    @property
    def cookie(self) -> str | None:
        return self.headers.get("cookie")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent") or "Unknown"

    @property
    def country(self) -> str:
        return self.headers.get("cf-ipcountry") or "Unknown"

    @property
    def ip_address(self) -> str:
        return get_client_ip(self.headers, self.client_host)

    @classmethod
    async def from_request(cls, request: Request) -> "AuthRequest":
        form: dict[str, str] = {}
        content_type = request.headers.get("content-type", "")
        if request.method in ("POST", "PUT", "PATCH") and (
            "form" in content_type
        ):
            form_data = await request.form()
            form = {k: v for k, v in form_data.items() if isinstance(v, str)}

        return cls(
            url=str(request.url),
            method=request.method,
            headers={k.lower(): v for k, v in request.headers.items()},
            form=form,
            query=dict(request.query_params),
            client_host=request.client.host if request.client else None,
        )


@dataclass(frozen=True)
class SendCodeParams:
    """Everything a code sender may need to deliver a login code."""

    email: str
    code: str
    request: AuthRequest
    form: Mapping[str, str] = field(default_factory=dict)
