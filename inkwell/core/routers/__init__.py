"""
Routers for the application.

This module exports the FastAPI routers included by ``create_app``.
"""

from inkwell.core.routers.account import router as account_router
from inkwell.core.routers.auth import router as auth_router

__all__ = ["account_router", "auth_router"]
