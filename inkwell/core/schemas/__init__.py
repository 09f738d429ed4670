from inkwell.core.schemas.auth import (
    AccountResponse,
    AuthUserSession,
    CamelModel,
    HomeResponse,
    LoginPageResponse,
    PendingVerificationResponse,
    SessionRecord,
    SessionView,
    Toast,
    TOTPConfig,
    UserProfile,
    ValidSession,
    VerificationRecord,
)

__all__ = [
    "AccountResponse",
    "AuthUserSession",
    "CamelModel",
    "HomeResponse",
    "LoginPageResponse",
    "PendingVerificationResponse",
    "SessionRecord",
    "SessionView",
    "Toast",
    "TOTPConfig",
    "UserProfile",
    "ValidSession",
    "VerificationRecord",
]
