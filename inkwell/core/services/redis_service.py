"""
Process-wide Redis connection.

Only the connection lives here; reads and writes go through
``RedisKVStore``.
"""

from __future__ import annotations

from redis.asyncio import Redis

from inkwell.core.config import redis_logger, settings


class RedisService:
    """
    Class-level holder for the one async Redis client of the process.

    Example:
        >>> await RedisService.init("redis://localhost:6379/0")
        >>> store = RedisKVStore(RedisService.get_client())
        >>> await RedisService.aclose()
    """

    _client: Redis | None = None
    _url: str = settings.REDIS_URL

    @classmethod
    async def init(cls, url: str | None = None) -> None:
        """Connect to ``url`` (default ``REDIS_URL``), replacing any open client."""
        cls._url = url or cls._url
        await cls.aclose()

        try:
            cls._client = Redis.from_url(
                cls._url, encoding="utf-8", decode_responses=True
            )
        except Exception as e:
            redis_logger.error(f"Could not create Redis client for {cls._url}: {e}")
            raise
        redis_logger.info(f"Redis client ready at {cls._url}")

    @classmethod
    async def aclose(cls) -> None:
        if cls._client is None:
            return

        client, cls._client = cls._client, None
        try:
            await client.aclose()
        except Exception as e:
            # Shutdown continues regardless
            redis_logger.warning(f"Redis client did not close cleanly: {e}")
        else:
            redis_logger.info("Redis client closed")

    @classmethod
    def get_client(cls) -> Redis:
        if cls._client is None:
            raise RuntimeError("RedisService.init() must run before get_client()")
        return cls._client

    @classmethod
    async def ping(cls) -> bool:
        """Liveness probe used by ``/health``; never raises."""
        if cls._client is None:
            return False
        try:
            return bool(await cls._client.ping())  # type: ignore[misc]
        except Exception as e:
            redis_logger.error(f"Redis ping failed: {e}")
            return False


__all__ = ["RedisService"]
