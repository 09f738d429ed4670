"""
GitHub as a sign-in provider.

GitHub hides the address of users who keep their email private, so the
profile lookup falls back to ``/user/emails`` (granted by ``user:email``).
"""

from typing import Any
from urllib.parse import urlencode

import httpx

from inkwell.core.config import auth_logger
from inkwell.core.exceptions.types import OAuthException
from inkwell.core.services.oauth.base import (
    BaseOAuthProvider,
    OAuthTokens,
    OAuthUserInfo,
)


__all__ = ["GitHubOAuthProvider"]


class GitHubOAuthProvider(BaseOAuthProvider):
    provider_name: str = "github"

    _AUTHORIZATION_URL: str = "https://github.com/login/oauth/authorize"
    _TOKEN_URL: str = "https://github.com/login/oauth/access_token"
    _USER_URL: str = "https://api.github.com/user"
    _EMAILS_URL: str = "https://api.github.com/user/emails"

    _SCOPES: list[str] = ["read:user", "user:email"]
    _API_VERSION: str = "2022-11-28"

    def get_authorization_url(self, redirect_uri: str, state: str) -> str:
        query = urlencode(
            {
                "client_id": self._client_id,
                "redirect_uri": redirect_uri,
                "scope": " ".join(self._SCOPES),
                "state": state,
            }
        )
        return f"{self._AUTHORIZATION_URL}?{query}"

    async def exchange_code_for_tokens(
        self, code: str, redirect_uri: str
    ) -> OAuthTokens:
        """
        Trade the callback code for an access token.

        GitHub answers a bad or reused code with HTTP 200 and an ``error``
        field, so the body is checked as well as the status.
        """
        try:
            response = await self._client.post(
                self._TOKEN_URL,
                data={
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "code": code,
                    "redirect_uri": redirect_uri,
                },
                headers={"Accept": "application/json"},
            )
        except httpx.RequestError as e:
            auth_logger.error(f"GitHub token request could not be sent: {e}")
            raise OAuthException(
                message="GitHub sign-in failed: network error"
            ) from e

        if response.status_code != 200:
            auth_logger.error(
                f"GitHub token endpoint returned {response.status_code}: {response.text}"
            )
            raise OAuthException(message="GitHub sign-in failed")

        body = response.json()
        if "error" in body:
            reason = body.get("error_description") or body["error"]
            auth_logger.warning(f"GitHub rejected the authorization code: {reason}")
            raise OAuthException(message=f"GitHub sign-in failed: {reason}")

        return OAuthTokens(
            access_token=body["access_token"],
            token_type=body.get("token_type", "bearer"),
            scope=body.get("scope"),
        )

    def _headers(self, access_token: str) -> dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {access_token}",
            "X-GitHub-Api-Version": self._API_VERSION,
        }

    async def _list_emails(self, access_token: str) -> list[dict[str, Any]]:
        # Best effort: a missing scope or outage leaves only the public email.
        try:
            response = await self._client.get(
                self._EMAILS_URL, headers=self._headers(access_token)
            )
        except httpx.RequestError as e:
            auth_logger.warning(f"GitHub email list unavailable: {e}")
            return []

        if response.status_code != 200:
            auth_logger.warning(
                f"GitHub email list returned {response.status_code}"
            )
            return []
        return response.json()

    @staticmethod
    def _pick_email(
        public_email: str | None, emails: list[dict[str, Any]]
    ) -> tuple[str, bool]:
        """Choose the address to sign in with and whether GitHub verified it."""
        if public_email:
            verified = any(
                e.get("email") == public_email and e.get("verified") for e in emails
            )
            return public_email, verified

        if not emails:
            return "", False

        # primary+verified, then any verified, then whatever is first
        best = max(
            emails,
            key=lambda e: (bool(e.get("verified")), bool(e.get("primary"))),
        )
        return best["email"], bool(best.get("verified"))

    async def get_user_info(self, access_token: str) -> OAuthUserInfo:
        try:
            response = await self._client.get(
                self._USER_URL, headers=self._headers(access_token)
            )
        except httpx.RequestError as e:
            auth_logger.error(f"GitHub profile request could not be sent: {e}")
            raise OAuthException(
                message="Could not load your GitHub profile: network error"
            ) from e

        if response.status_code != 200:
            auth_logger.error(f"GitHub profile returned {response.status_code}")
            raise OAuthException(message="Could not load your GitHub profile")

        profile = response.json()
        email, verified = self._pick_email(
            profile.get("email"), await self._list_emails(access_token)
        )
        auth_logger.info(f"GitHub profile loaded for account {profile.get('id')}")

        return OAuthUserInfo(
            provider=self.provider_name,
            provider_user_id=str(profile["id"]),
            email=email,
            email_verified=verified,
            name=profile.get("name") or profile.get("login"),
            picture=profile.get("avatar_url"),
            raw_data=profile,
        )
