from inkwell.core.services.oauth.base import (
    BaseOAuthProvider,
    OAuthTokens,
    OAuthUserInfo,
    generate_state,
)
from inkwell.core.services.oauth.github import GitHubOAuthProvider
from inkwell.core.services.oauth.google import GoogleOAuthProvider

__all__ = [
    "BaseOAuthProvider",
    "GitHubOAuthProvider",
    "GoogleOAuthProvider",
    "OAuthTokens",
    "OAuthUserInfo",
    "generate_state",
]
