"""
Signed cookie sessions.

The whole session payload is a JSON dict signed with itsdangerous and stored
in a single cookie. Tampered, expired or foreign-secret cookies are treated
as an empty session rather than an error.

Secrets are a list to allow rotation: the last secret signs, every secret
is accepted when reading.

Example:
    >>> storage = CookieSessionStorage(name="__auth-session", secrets=["s3cr3t"])
    >>> session = storage.get_session(request.headers.get("cookie"))
    >>> session.set("auth:email", "user@example.com")
    >>> response.headers.append("set-cookie", storage.commit_session(session))
"""

from http.cookies import SimpleCookie
from typing import Any, Literal, Sequence

from itsdangerous import BadSignature, URLSafeTimedSerializer
from starlette.requests import cookie_parser

from inkwell.core.config import session_logger


__all__ = ["CookieSession", "CookieSessionStorage", "parse_cookie_header"]

_EPOCH = "Thu, 01 Jan 1970 00:00:00 GMT"


def parse_cookie_header(cookie_header: str | None) -> dict[str, str]:
    if not cookie_header:
        return {}
    return cookie_parser(cookie_header)


class CookieSession:
    """Mutable view of one decoded cookie payload."""

    def __init__(self, data: dict[str, Any] | None = None):
        self._data: dict[str, Any] = dict(data or {})

    @property
    def data(self) -> dict[str, Any]:
        return dict(self._data)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def unset(self, key: str) -> None:
        self._data.pop(key, None)

    def has(self, key: str) -> bool:
        return key in self._data

    def __bool__(self) -> bool:
        return bool(self._data)


class CookieSessionStorage:
    """
    Reads and writes ``CookieSession`` objects to a signed cookie.

    Args:
        name: Cookie name.
        secrets: Signing secrets, newest last.
        max_age: Cookie lifetime in seconds. Also bounds signature age.
        same_site: SameSite policy.
        secure: Whether to mark the cookie Secure.
        path: Cookie path.
        salt: Namespaces signatures so two storages sharing a secret
            cannot read each other's cookies.
    """

    def __init__(
        self,
        name: str,
        secrets: Sequence[str],
        max_age: int | None = None,
        same_site: Literal["lax", "strict", "none"] = "lax",
        secure: bool = False,
        path: str = "/",
        salt: str = "cookie-session",
    ):
        if not secrets:
            raise ValueError("CookieSessionStorage requires at least one secret")
        self.name = name
        self.max_age = max_age
        self.same_site = same_site
        self.secure = secure
        self.path = path
        self._serializer = URLSafeTimedSerializer(
            secret_key=list(secrets), salt=salt
        )

    def get_session(self, cookie_header: str | None = None) -> CookieSession:
        """Decode the session from a raw ``Cookie`` header."""
        raw = parse_cookie_header(cookie_header).get(self.name)
        if not raw:
            return CookieSession()

        try:
            data = self._serializer.loads(raw, max_age=self.max_age)
        except BadSignature:
            session_logger.debug(f"Rejected cookie {self.name}: bad or expired signature")
            return CookieSession()

        if not isinstance(data, dict):
            return CookieSession()
        return CookieSession(data)

    def _serialize(self, value: str, max_age: int | None, expires: str | None) -> str:
        jar: SimpleCookie = SimpleCookie()
        jar[self.name] = value
        morsel = jar[self.name]
        morsel["path"] = self.path
        if max_age is not None:
            morsel["max-age"] = max_age
        if expires is not None:
            morsel["expires"] = expires
        morsel["httponly"] = True
        morsel["samesite"] = self.same_site.capitalize()
        if self.secure:
            morsel["secure"] = True
        return morsel.OutputString()

    def commit_session(self, session: CookieSession) -> str:
        """Return the ``Set-Cookie`` value persisting ``session``."""
        return self._serialize(
            self._serializer.dumps(session.data), self.max_age, None
        )

    def destroy_session(self, session: CookieSession | None = None) -> str:
        """Return a ``Set-Cookie`` value that clears the cookie."""
        if session is not None:
            for key in list(session.data):
                session.unset(key)
        return self._serialize("", 0, _EPOCH)
