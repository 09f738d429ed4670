from enum import Enum


class VerificationType(str, Enum):
    """Channel a verification code is bound to."""

    EMAIL = "email"
    PHONE = "phone"


class AuthProvider(str, Enum):
    """Authentication providers known to the application."""

    TOTP = "totp"
    GITHUB = "github"
    GOOGLE = "google"


class UserStatus(str, Enum):
    """Lifecycle status of a user account."""

    ACTIVE = "active"
    DELETED = "deleted"
    BLOCKED = "blocked"


class ToastType(str, Enum):
    MESSAGE = "message"
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class LoginIntent(str, Enum):
    """Value of the ``intent`` form field on the login and verify forms."""

    VERIFY = "verify"
    RESEND = "resend"


class OAuthProviderName(str, Enum):
    """Providers accepted in the ``/auth/{provider}`` path."""

    GITHUB = "github"
    GOOGLE = "google"
