"""
OAuth 2.0 authorization code strategy.

Without a ``code`` query parameter the strategy starts the flow: it stores a
random state in the cookie session and redirects to the provider. On the
callback it checks the returned state, exchanges the code, fetches the
profile and hands it to the verify callback.
"""

import hmac
from dataclasses import dataclass

from inkwell.core.config import auth_logger
from inkwell.core.exceptions.types import InvalidStateException, OAuthException
from inkwell.core.services.auth.outcome import (
    AuthOutcome,
    AuthRequest,
    Interrupt,
    Success,
)
from inkwell.core.services.auth.strategy import (
    OAUTH_STATE_KEY,
    AuthStrategy,
    VerifyFunction,
)
from inkwell.core.services.cookie_session import CookieSessionStorage
from inkwell.core.services.oauth.base import (
    BaseOAuthProvider,
    OAuthTokens,
    OAuthUserInfo,
    generate_state,
)


__all__ = ["OAuthStrategy", "OAuthVerifyParams"]


@dataclass
class OAuthVerifyParams:
    provider: str
    tokens: OAuthTokens
    profile: OAuthUserInfo
    request: AuthRequest


class OAuthStrategy(AuthStrategy[OAuthVerifyParams]):
    """
    Args:
        provider: The OAuth provider client.
        cookies: Auth cookie storage holding the state.
        redirect_uri: Callback URL registered with the provider.
        verify: Resolves the user and opens a session.
    """

    def __init__(
        self,
        provider: BaseOAuthProvider,
        cookies: CookieSessionStorage,
        redirect_uri: str,
        verify: VerifyFunction[OAuthVerifyParams],
    ):
        super().__init__(verify)
        self.name = provider.provider_name
        self.provider = provider
        self.cookies = cookies
        self.redirect_uri = redirect_uri

    async def _authenticate(self, request: AuthRequest) -> AuthOutcome:
        session = self.cookies.get_session(request.cookie)

        if error := request.query.get("error"):
            description = request.query.get("error_description") or error
            auth_logger.warning(f"{self.name} authorization denied: {description}")
            raise OAuthException(description)

        code = request.query.get("code")
        if not code:
            state = generate_state()
            session.set(OAUTH_STATE_KEY, state)
            auth_logger.debug(f"Starting {self.name} authorization")
            return Interrupt(
                self.provider.get_authorization_url(self.redirect_uri, state)
            ).with_cookies(self.cookies.commit_session(session))

        stored_state = session.get(OAUTH_STATE_KEY)
        returned_state = request.query.get("state")
        if (
            not isinstance(stored_state, str)
            or not returned_state
            or not hmac.compare_digest(stored_state, returned_state)
        ):
            auth_logger.warning(f"{self.name} callback state mismatch")
            raise InvalidStateException()

        tokens = await self.provider.exchange_code_for_tokens(code, self.redirect_uri)
        profile = await self.provider.get_user_info(tokens.access_token)

        principal = await self.verify(
            OAuthVerifyParams(
                provider=self.name, tokens=tokens, profile=profile, request=request
            )
        )
        auth_logger.info(f"{self.name} login succeeded for user={principal.user_id}")
        return Success(principal)
