from fastapi import status


class AppException(Exception):
    """Root of every error the handlers translate into an HTTP response."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        self.message = message
        self.status_code = status_code or status.HTTP_500_INTERNAL_SERVER_ERROR
        self.details = details
        super().__init__(message)


class StoreBackendException(AppException):
    """Exception raised when the key-value backend fails (network or serialization)."""

    def __init__(self, message: str = "Key-value store is unavailable."):
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)


class DatabaseException(AppException):
    """The user directory database failed."""

    def __init__(self, message: str = "A database error occurred."):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class BadRequestException(AppException):
    """Client input was rejected."""

    def __init__(self, message: str = "Bad request."):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class NotFoundException(AppException):
    """A requested record does not exist."""

    def __init__(self, message: str = "Resource not found."):
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class AuthenticationException(AppException):
    """Sign-in could not be completed."""

    def __init__(self, message: str = "Authentication failed."):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class AlreadyAuthenticatedException(AuthenticationException):
    """Exception raised when a login flow starts while a session is present."""

    def __init__(self, message: str = "User already logged in"):
        super().__init__(message)
        self.status_code = status.HTTP_409_CONFLICT


class UserInactiveException(AuthenticationException):
    """Exception raised when the resolved user is deleted or blocked."""

    def __init__(self, message: str = "User is not active"):
        super().__init__(message)
        self.status_code = status.HTTP_403_FORBIDDEN


class SessionNotFoundException(NotFoundException):
    """Exception raised when a session record does not exist."""

    def __init__(self, message: str = "Session not found."):
        super().__init__(message)


class EmailRequiredException(BadRequestException):
    def __init__(self, message: str = "Email is required"):
        super().__init__(message)


class InvalidEmailException(BadRequestException):
    def __init__(self, message: str = "Invalid email address"):
        super().__init__(message)


class InvalidCodeException(BadRequestException):
    """Exception raised when a submitted verification code does not match."""

    def __init__(self, message: str = "Invalid code"):
        super().__init__(message)


class CodeExpiredException(BadRequestException):
    """Exception raised when no usable verification record exists."""

    def __init__(self, message: str = "Code has expired, please request a new code"):
        super().__init__(message)


class CooldownException(AppException):
    """Exception raised when a code is requested again inside the send cooldown."""

    def __init__(self, seconds_remaining: int, message: str | None = None):
        super().__init__(
            message
            or f"Please wait {seconds_remaining} seconds before sending again",
            status.HTTP_429_TOO_MANY_REQUESTS,
            {"seconds_remaining": seconds_remaining},
        )
        self.seconds_remaining = seconds_remaining


class UnknownStrategyException(BadRequestException):
    """Exception raised when no strategy is registered under a name."""

    def __init__(self, name: str):
        super().__init__(f"Strategy {name} not found.")
        self.name = name


class OAuthException(AppException):
    """A provider round trip failed or was refused."""

    def __init__(self, message: str = "OAuth authentication failed."):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class InvalidStateException(OAuthException):
    """Callback state is missing or differs from the stored one."""

    def __init__(self, message: str = "Invalid state parameter."):
        super().__init__(message)


class EmailDeliveryException(AppException):
    """Exception raised when the email provider rejects or fails a send."""

    def __init__(self, message: str = "Unexpected error sending email"):
        super().__init__(message, status.HTTP_502_BAD_GATEWAY)


class RateLimitExceededException(AppException):
    """Too many requests from one client in the current window."""

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please try again later.",
        retry_after: int | None = None,
    ):
        super().__init__(message, status.HTTP_429_TOO_MANY_REQUESTS)
        self.retry_after = retry_after


__all__ = [
    "AppException",
    "StoreBackendException",
    "DatabaseException",
    "BadRequestException",
    "NotFoundException",
    "AuthenticationException",
    "AlreadyAuthenticatedException",
    "UserInactiveException",
    "SessionNotFoundException",
    "EmailRequiredException",
    "InvalidEmailException",
    "InvalidCodeException",
    "CodeExpiredException",
    "CooldownException",
    "UnknownStrategyException",
    "OAuthException",
    "InvalidStateException",
    "EmailDeliveryException",
    "RateLimitExceededException",
]
