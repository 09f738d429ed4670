"""
Shared pieces for OAuth2 identity providers.

Every provider turns the authorization-code dance into three calls:
build the consent URL, trade the returned code for an access token, and
read the signed-in account's profile. ``OAuthStrategy`` drives those calls
and never talks to a provider's endpoints itself.
"""

import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx


__all__ = [
    "BaseOAuthProvider",
    "OAuthTokens",
    "OAuthUserInfo",
    "generate_state",
]


def generate_state(length: int = 32) -> str:
    """Random hex token tying a callback to the browser that started the login."""
    return secrets.token_hex(length)


@dataclass
class OAuthTokens:
    """Token endpoint response, reduced to the fields providers agree on."""

    access_token: str
    token_type: str
    expires_in: int | None = None
    refresh_token: str | None = None
    scope: str | None = None
    id_token: str | None = None


@dataclass
class OAuthUserInfo:
    """
    Provider profile in the shape the user directory expects.

    ``email`` is an empty string when the provider would not disclose one;
    sign-in then fails with a missing-email error. ``raw_data`` keeps the
    untouched payload for logging and debugging.
    """

    provider: str
    provider_user_id: str
    email: str
    email_verified: bool = False
    name: str | None = None
    picture: str | None = None
    raw_data: dict[str, Any] = field(default_factory=dict)


class BaseOAuthProvider(ABC):
    """
    One configured OAuth application at one provider.

    The ``httpx.AsyncClient`` is borrowed from the application lifespan and
    is never closed here.
    """

    provider_name: str

    def __init__(self, client: httpx.AsyncClient, client_id: str, client_secret: str):
        self._client = client
        self._client_id = client_id
        self._client_secret = client_secret

    @abstractmethod
    def get_authorization_url(self, redirect_uri: str, state: str) -> str:
        """Consent page URL the browser is sent to."""

    @abstractmethod
    async def exchange_code_for_tokens(
        self, code: str, redirect_uri: str
    ) -> OAuthTokens:
        """Trade a callback ``code`` for tokens; raises ``OAuthException``."""

    @abstractmethod
    async def get_user_info(self, access_token: str) -> OAuthUserInfo:
        """Fetch and normalize the profile; raises ``OAuthException``."""
