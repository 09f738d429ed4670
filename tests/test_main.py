"""
Tests for the application factory, root and health endpoints.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from inkwell.core.config import settings
from inkwell.core.services.kv import MemoryKVStore, RedisKVStore
from inkwell.main import init_kv_store


class TestRoot:
    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == f"Welcome to {settings.APP_NAME}"
        assert body["documentations"]["swagger"] == "http://testserver/docs"


class TestHealth:
    @pytest.mark.asyncio
    async def test_healthy(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["checks"] == {"database": "ok", "kv": "ok"}

    @pytest.mark.asyncio
    async def test_head(self, client):
        response = await client.head("/health")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_kv_failure_is_503(self, client, kv):
        kv.get = AsyncMock(side_effect=ConnectionError("down"))

        response = await client.get("/health")

        assert response.status_code == 503
        assert response.json() == {"detail": "One or more health checks failed."}


class TestInitKVStore:
    @pytest.mark.asyncio
    async def test_memory_backend(self):
        config = settings.model_copy(update={"KV_BACKEND": "memory"})
        assert isinstance(await init_kv_store(config), MemoryKVStore)

    @pytest.mark.asyncio
    async def test_redis_backend(self):
        config = settings.model_copy(
            update={"KV_BACKEND": "redis", "REDIS_URL": "redis://cache:6379/0"}
        )
        client = MagicMock()

        with (
            patch("inkwell.main.RedisService.init", new_callable=AsyncMock) as init,
            patch("inkwell.main.RedisService.get_client", return_value=client),
        ):
            store = await init_kv_store(config)

        init.assert_awaited_once_with("redis://cache:6379/0")
        assert isinstance(store, RedisKVStore)
