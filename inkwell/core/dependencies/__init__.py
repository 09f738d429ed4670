"""
Shared dependencies for FastAPI endpoints.

"""

from inkwell.core.dependencies.auth import (
    AuthRequestDep,
    CurrentSession,
    PendingToast,
    consume_toast,
    get_auth_request,
    get_rate_limiter,
    login_rate_limit,
    require_anonymous,
    require_user,
)
from inkwell.core.dependencies.services import ServicesDep, get_services

__all__ = [
    "consume_toast",
    "get_auth_request",
    "get_rate_limiter",
    "get_services",
    "require_anonymous",
    "require_user",
    "login_rate_limit",
    # Type aliases
    "AuthRequestDep",
    "CurrentSession",
    "PendingToast",
    "ServicesDep",
]
