"""
Rate limiting service backed by the key-value store.

Counters are stored as ``{"remaining": int, "reset": ms}`` under
``rate_limit:{identifier}``. The window is fixed: it starts on the first
request and the counter refills once ``reset`` has passed.

Backend failures never block traffic. The check is allowed and the error
is logged.
"""

import json
import math
import time
from dataclasses import dataclass
from typing import Annotated, Callable

from fastapi import Depends, Request

from inkwell.core.config import rate_limit_logger, settings
from inkwell.core.exceptions.types import (
    RateLimitExceededException,
    StoreBackendException,
)
from inkwell.core.services.kv import KVStore
from inkwell.core.utils import Clock, format_wait_time, get_client_ip, now_ms


__all__ = [
    "RateLimitResult",
    "RateLimiter",
    "format_rate_limit_key",
    "rate_limit_by_ip",
]


@dataclass
class RateLimitResult:
    """
    Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed.
        remaining: Number of remaining requests in the current window.
        limit: The maximum number of requests allowed.
        reset_at: Epoch milliseconds when the window resets.
        retry_after: Seconds until the client can retry (only if not allowed).
    """

    allowed: bool
    remaining: int
    limit: int
    reset_at: int
    retry_after: int | None = None


def format_rate_limit_key(key_type: str, identifier: str) -> str:
    """
    Format a rate limit key with consistent structure.

    Example:
        >>> format_rate_limit_key("ip", "192.168.1.1")
        'rate_limit:ip:192.168.1.1'
    """
    return f"{RateLimiter.PREFIX}:{key_type}:{identifier}"


class RateLimiter:
    """
    Fixed-window limiter.

    Args:
        kv: Backing key-value store.
        max_requests: Requests allowed per window.
        window: Window length in seconds.
        clock: Time source returning epoch seconds.

    Example:
        >>> limiter = RateLimiter(kv, max_requests=10, window=60)
        >>> result = await limiter.check("rate_limit:ip:1.2.3.4")
        >>> if not result.allowed:
        ...     raise RateLimitExceededException(retry_after=result.retry_after)
    """

    PREFIX = "rate_limit"

    def __init__(
        self,
        kv: KVStore,
        max_requests: int = settings.RATE_LIMIT_MAX_REQUESTS,
        window: int = settings.RATE_LIMIT_WINDOW,
        clock: Clock = time.time,
    ):
        self.kv = kv
        self.max_requests = max_requests
        self.window = window
        self.clock = clock

    async def _start_window(self, key: str, now: int) -> RateLimitResult:
        reset_at = now + self.window * 1000
        remaining = self.max_requests - 1
        await self.kv.put(
            key,
            json.dumps({"remaining": remaining, "reset": reset_at}),
            expiration_ttl=self.window,
        )
        rate_limit_logger.debug(f"New rate limit window for key: {key}")
        return RateLimitResult(
            allowed=True,
            remaining=remaining,
            limit=self.max_requests,
            reset_at=reset_at,
        )

    async def check(self, key: str) -> RateLimitResult:
        """
        Count one request against ``key``.

        Returns:
            RateLimitResult with the check outcome.
        """
        now = now_ms(self.clock)

        try:
            current = await self.kv.get_json(key)

            if not isinstance(current, dict) or now >= int(current.get("reset", 0)):
                return await self._start_window(key, now)

            reset_at = int(current["reset"])
            remaining = int(current.get("remaining", 0))

            if remaining <= 0:
                retry_after = max(1, math.ceil((reset_at - now) / 1000))
                rate_limit_logger.warning(
                    f"Rate limit exceeded for key: {key}, retry after: {retry_after}s"
                )
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    limit=self.max_requests,
                    reset_at=reset_at,
                    retry_after=retry_after,
                )

            remaining -= 1
            ttl = max(1, math.ceil((reset_at - now) / 1000))
            await self.kv.put(
                key,
                json.dumps({"remaining": remaining, "reset": reset_at}),
                expiration_ttl=ttl,
            )
            rate_limit_logger.debug(
                f"Rate limit check passed for key: {key}, remaining: {remaining}"
            )
            return RateLimitResult(
                allowed=True,
                remaining=remaining,
                limit=self.max_requests,
                reset_at=reset_at,
            )

        except StoreBackendException as e:
            rate_limit_logger.error(
                f"Rate limit store error for key: {key}, allowing request: {e}"
            )
            return RateLimitResult(
                allowed=True,
                remaining=self.max_requests,
                limit=self.max_requests,
                reset_at=now + self.window * 1000,
            )

    async def reset(self, key: str) -> None:
        await self.kv.delete(key)
        rate_limit_logger.debug(f"Rate limit reset for key: {key}")


def rate_limit_by_ip(get_limiter: Callable[..., RateLimiter]) -> Callable:
    """
    Create a FastAPI dependency for IP-based rate limiting.

    Args:
        get_limiter: FastAPI dependency resolving the limiter for the request.

    Returns:
        A FastAPI dependency function raising ``RateLimitExceededException``.

    Example:
        >>> @router.post("/auth/login")
        >>> async def login(
        ...     rate_limit: RateLimitResult = Depends(rate_limit_by_ip(get_rate_limiter))
        ... ):
        ...     ...
    """

    async def dependency(
        request: Request,
        limiter: Annotated[RateLimiter, Depends(get_limiter)],
    ) -> RateLimitResult:
        client_ip = get_client_ip(
            request.headers, request.client.host if request.client else None
        )
        key = format_rate_limit_key("ip", client_ip)

        result = await limiter.check(key)

        if not result.allowed:
            wait = format_wait_time(result.retry_after or limiter.window)
            raise RateLimitExceededException(
                message=f"Too many requests. Please try again in {wait}",
                retry_after=result.retry_after,
            )

        return result

    return dependency
