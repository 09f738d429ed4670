"""
Google as a sign-in provider, using the OpenID Connect userinfo endpoint.
"""

import asyncio
from urllib.parse import urlencode

import httpx

from inkwell.core.config import auth_logger
from inkwell.core.exceptions.types import OAuthException
from inkwell.core.services.oauth.base import (
    BaseOAuthProvider,
    OAuthTokens,
    OAuthUserInfo,
)


__all__ = ["GoogleOAuthProvider"]


class GoogleOAuthProvider(BaseOAuthProvider):
    provider_name: str = "google"

    _AUTHORIZATION_URL: str = "https://accounts.google.com/o/oauth2/v2/auth"
    _TOKEN_URL: str = "https://oauth2.googleapis.com/token"
    _USERINFO_URL: str = "https://www.googleapis.com/oauth2/v3/userinfo"

    _SCOPES: list[str] = ["openid", "email", "profile"]
    _USERINFO_ATTEMPTS: int = 3
    _RETRY_DELAY: float = 0.5

    def get_authorization_url(self, redirect_uri: str, state: str) -> str:
        query = urlencode(
            {
                "client_id": self._client_id,
                "redirect_uri": redirect_uri,
                "response_type": "code",
                "scope": " ".join(self._SCOPES),
                "state": state,
                "access_type": "online",
                "prompt": "select_account",
            }
        )
        return f"{self._AUTHORIZATION_URL}?{query}"

    async def exchange_code_for_tokens(
        self, code: str, redirect_uri: str
    ) -> OAuthTokens:
        form = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": self._client_id,
            "client_secret": self._client_secret,
        }
        try:
            response = await self._client.post(self._TOKEN_URL, data=form)
        except httpx.RequestError as e:
            auth_logger.error(f"Google token request could not be sent: {e}")
            raise OAuthException(
                message="Google sign-in failed: network error"
            ) from e

        if response.status_code != 200:
            auth_logger.error(
                f"Google token endpoint returned {response.status_code}: {response.text}"
            )
            raise OAuthException(message="Google sign-in failed")

        body = response.json()
        return OAuthTokens(
            access_token=body["access_token"],
            token_type=body.get("token_type", "Bearer"),
            expires_in=body.get("expires_in"),
            refresh_token=body.get("refresh_token"),
            scope=body.get("scope"),
            id_token=body.get("id_token"),
        )

    async def get_user_info(self, access_token: str) -> OAuthUserInfo:
        """
        Load the OpenID profile for ``access_token``.

        Connection failures are retried with a short fixed pause; an HTTP
        error status is final.
        """
        failure: httpx.RequestError | None = None

        for attempt in range(1, self._USERINFO_ATTEMPTS + 1):
            if attempt > 1:
                await asyncio.sleep(self._RETRY_DELAY)
            try:
                response = await self._client.get(
                    self._USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
            except httpx.RequestError as e:
                failure = e
                auth_logger.warning(
                    f"Google profile request failed "
                    f"({attempt}/{self._USERINFO_ATTEMPTS}): {e!r}"
                )
                continue

            if response.status_code != 200:
                auth_logger.error(f"Google profile returned {response.status_code}")
                raise OAuthException(message="Could not load your Google profile")

            claims = response.json()
            auth_logger.info(f"Google profile loaded for subject {claims.get('sub')}")
            return OAuthUserInfo(
                provider=self.provider_name,
                provider_user_id=claims["sub"],
                email=claims.get("email", ""),
                email_verified=bool(claims.get("email_verified", False)),
                name=claims.get("name"),
                picture=claims.get("picture"),
                raw_data=claims,
            )

        raise OAuthException(
            message="Could not load your Google profile: network error"
        ) from failure
