"""
Unit tests for the rate limiting service.

This module covers the fixed-window limiter over the key-value store and the
IP rate limit dependency.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from inkwell.core.exceptions.handlers import register_exception_handlers
from inkwell.core.exceptions.types import StoreBackendException
from inkwell.core.services.rate_limit import (
    RateLimiter,
    RateLimitResult,
    format_rate_limit_key,
    rate_limit_by_ip,
)


@pytest.fixture
def limiter(kv, clock):
    return RateLimiter(kv, max_requests=3, window=60, clock=clock)


# ============================================================================
# Tests for RateLimiter
# ============================================================================


class TestRateLimiter:
    @pytest.mark.asyncio
    async def test_first_request_opens_window(self, limiter, clock):
        result = await limiter.check("k")

        assert result == RateLimitResult(
            allowed=True,
            remaining=2,
            limit=3,
            reset_at=int(clock() * 1000) + 60_000,
        )

    @pytest.mark.asyncio
    async def test_denies_request_over_limit(self, limiter, clock):
        for expected_remaining in (2, 1, 0):
            result = await limiter.check("k")
            assert result.allowed is True
            assert result.remaining == expected_remaining

        clock.advance(15)
        result = await limiter.check("k")

        assert result.allowed is False
        assert result.remaining == 0
        assert result.retry_after == 45

    @pytest.mark.asyncio
    async def test_window_is_fixed(self, limiter, clock):
        first = await limiter.check("k")
        clock.advance(30)
        second = await limiter.check("k")

        assert second.reset_at == first.reset_at

    @pytest.mark.asyncio
    async def test_window_refills_after_reset(self, limiter, clock):
        for _ in range(4):
            await limiter.check("k")

        clock.advance(60)
        result = await limiter.check("k")

        assert result.allowed is True
        assert result.remaining == 2

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, limiter):
        for _ in range(4):
            await limiter.check("a")

        assert (await limiter.check("b")).allowed is True

    @pytest.mark.asyncio
    async def test_reset(self, limiter):
        for _ in range(4):
            await limiter.check("k")

        await limiter.reset("k")

        assert (await limiter.check("k")).allowed is True

    @pytest.mark.asyncio
    async def test_fails_open_on_backend_error(self, limiter, kv):
        kv.get = AsyncMock(side_effect=StoreBackendException())

        result = await limiter.check("k")

        assert result.allowed is True
        assert result.remaining == 3


class TestFormatRateLimitKey:
    def test_format(self):
        assert format_rate_limit_key("ip", "1.2.3.4") == "rate_limit:ip:1.2.3.4"


# ============================================================================
# Tests for rate_limit_by_ip
# ============================================================================


class TestRateLimitByIp:
    @pytest.fixture
    def limited_app(self, limiter):
        app = FastAPI()
        register_exception_handlers(app)

        def get_limiter() -> RateLimiter:
            return limiter

        @app.post("/limited", dependencies=[Depends(rate_limit_by_ip(get_limiter))])
        async def limited():
            return {"ok": True}

        return app

    @pytest.mark.asyncio
    async def test_returns_429_with_retry_after(self, limited_app):
        async with AsyncClient(
            transport=ASGITransport(app=limited_app), base_url="http://testserver"
        ) as client:
            for _ in range(3):
                response = await client.post("/limited")
                assert response.status_code == 200

            response = await client.post("/limited")

        assert response.status_code == 429
        assert response.headers["retry-after"] == "60"
        assert response.json()["detail"] == "Too many requests. Please try again in 1 minutes"

    @pytest.mark.asyncio
    async def test_limits_per_forwarded_ip(self, limited_app):
        async with AsyncClient(
            transport=ASGITransport(app=limited_app), base_url="http://testserver"
        ) as client:
            for _ in range(3):
                await client.post("/limited", headers={"x-forwarded-for": "1.1.1.1"})

            blocked = await client.post(
                "/limited", headers={"x-forwarded-for": "1.1.1.1"}
            )
            other = await client.post(
                "/limited", headers={"x-forwarded-for": "2.2.2.2"}
            )

        assert blocked.status_code == 429
        assert other.status_code == 200
