"""
Strategy base class and the cookie keys strategies share.

A strategy implements one way of proving identity. ``authenticate`` never
raises for expected outcomes: redirects come back as ``Interrupt`` values
and typed application errors as ``Failure`` values.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Generic, TypeVar

from inkwell.core.config import auth_logger
from inkwell.core.exceptions.types import AppException
from inkwell.core.schemas.auth import AuthUserSession
from inkwell.core.services.auth.outcome import (
    AuthOutcome,
    AuthRequest,
    Failure,
    InterruptException,
)


__all__ = [
    "AUTH_EMAIL_KEY",
    "AUTH_USER_KEY",
    "OAUTH_STATE_KEY",
    "AuthStrategy",
    "VerifyFunction",
]

AUTH_USER_KEY = "auth-user"
AUTH_EMAIL_KEY = "auth:email"
OAUTH_STATE_KEY = "oauth2:state"

P = TypeVar("P")

VerifyFunction = Callable[[P], Awaitable[AuthUserSession]]


class AuthStrategy(ABC, Generic[P]):
    """
    Base class for authentication strategies.

    Args:
        verify: Called once identity is proven. Resolves the user and opens
            a session, returning the principal.
    """

    name: str

    def __init__(self, verify: VerifyFunction[P]):
        self.verify = verify

    @abstractmethod
    async def _authenticate(self, request: AuthRequest) -> AuthOutcome:
        """Run the flow. May raise ``InterruptException`` or ``AppException``."""
        pass

    async def authenticate(self, request: AuthRequest) -> AuthOutcome:
        try:
            return await self._authenticate(request)
        except InterruptException as e:
            return e.interrupt
        except AppException as e:
            auth_logger.info(
                f"Strategy {self.name} failed: {type(e).__name__}: {e.message}"
            )
            return Failure(e)
