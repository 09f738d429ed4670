"""
Key-value storage backends.

Every store in the auth core (verification codes, sessions, rate limit
counters) persists through the ``KVStore`` interface. Two backends exist:

- ``MemoryKVStore``: a process-local dictionary with lazy TTL expiry. Used
  in development and tests, where the clock can be injected.
- ``RedisKVStore``: a thin wrapper over ``redis.asyncio`` for deployments.

Backend failures (network errors, undecodable JSON) are raised as
``StoreBackendException`` so callers handle a single error type.
"""

import json
import time
from abc import ABC, abstractmethod
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from inkwell.core.config import kv_logger
from inkwell.core.exceptions.types import StoreBackendException
from inkwell.core.utils import Clock


__all__ = ["KVStore", "MemoryKVStore", "RedisKVStore"]


class KVStore(ABC):
    """
    Abstract async key-value store with per-key expiry.

    Values are strings. ``get_json`` decodes a stored JSON document.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """
        Return the value stored under ``key``, or None if absent or expired.

        Raises:
            StoreBackendException: If the backend cannot be reached.
        """
        pass

    async def get_json(self, key: str) -> Any | None:
        """
        Return the JSON-decoded value stored under ``key``.

        Raises:
            StoreBackendException: If the backend fails or the value is not JSON.
        """
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            kv_logger.error(f"Stored value for key {key} is not valid JSON: {e}")
            raise StoreBackendException(f"Corrupt value stored under {key}") from e

    @abstractmethod
    async def put(
        self, key: str, value: str, expiration_ttl: int | None = None
    ) -> None:
        """
        Store ``value`` under ``key``.

        Args:
            key: The key to write.
            value: The string value.
            expiration_ttl: Seconds until the key expires. None keeps it forever.
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    async def list(self, prefix: str) -> list[str]:
        """Return the names of all live keys starting with ``prefix``."""
        pass


class MemoryKVStore(KVStore):
    """
    In-memory backend storing ``(value, expires_at)`` pairs.

    Expired entries are dropped lazily when read or listed.

    Note:
        Data is lost on application restart and is not shared between
        processes. Use ``RedisKVStore`` for multi-instance deployments.
    """

    def __init__(self, clock: Clock = time.time):
        self._clock = clock
        self._store: dict[str, tuple[str, float | None]] = {}

    def _is_expired(self, expires_at: float | None) -> bool:
        return expires_at is not None and self._clock() >= expires_at

    async def get(self, key: str) -> str | None:
        entry = self._store.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if self._is_expired(expires_at):
            del self._store[key]
            kv_logger.debug(f"Key expired: {key}")
            return None
        return value

    async def put(
        self, key: str, value: str, expiration_ttl: int | None = None
    ) -> None:
        expires_at = (
            self._clock() + expiration_ttl if expiration_ttl is not None else None
        )
        self._store[key] = (value, expires_at)

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def list(self, prefix: str) -> list[str]:
        keys = []
        for key, (_, expires_at) in list(self._store.items()):
            if not key.startswith(prefix):
                continue
            if self._is_expired(expires_at):
                del self._store[key]
                continue
            keys.append(key)
        return sorted(keys)

    def clear(self) -> None:
        self._store.clear()


def _escape_glob(prefix: str) -> str:
    """Escape Redis glob metacharacters so a prefix matches literally."""
    return "".join(f"\\{c}" if c in "*?[]\\" else c for c in prefix)


class RedisKVStore(KVStore):
    """
    Redis backend.

    Args:
        client: An async Redis client created with ``decode_responses=True``.
    """

    def __init__(self, client: Redis):
        self._client = client

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(key)
        except RedisError as e:
            kv_logger.error(f"Redis GET failed for key {key}: {e}")
            raise StoreBackendException() from e

    async def put(
        self, key: str, value: str, expiration_ttl: int | None = None
    ) -> None:
        try:
            if expiration_ttl is not None:
                await self._client.set(key, value, ex=max(1, int(expiration_ttl)))
            else:
                await self._client.set(key, value)
        except RedisError as e:
            kv_logger.error(f"Redis SET failed for key {key}: {e}")
            raise StoreBackendException() from e

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except RedisError as e:
            kv_logger.error(f"Redis DELETE failed for key {key}: {e}")
            raise StoreBackendException() from e

    async def list(self, prefix: str) -> list[str]:
        try:
            return [
                key
                async for key in self._client.scan_iter(
                    match=f"{_escape_glob(prefix)}*", count=100
                )
            ]
        except RedisError as e:
            kv_logger.error(f"Redis SCAN failed for prefix {prefix}: {e}")
            raise StoreBackendException() from e
