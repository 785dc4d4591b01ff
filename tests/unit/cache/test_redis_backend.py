# tests/unit/cache/test_redis_backend.py - v2
"""Tests for cache/redis_backend.py - mocked async Redis client."""

from __future__ import annotations

import pytest

from medevidence.cache.redis_backend import RedisCacheBackend


def _backend_with(client) -> RedisCacheBackend:
    backend = RedisCacheBackend.__new__(RedisCacheBackend)
    backend._client = client
    return backend


class TestRedisCacheBackend:
    def test_import_error_without_redis(self):
        """Clear ImportError when redis is not available."""
        import sys
        saved = {k: sys.modules.get(k) for k in ("redis", "redis.asyncio")}
        sys.modules["redis"] = None  # type: ignore[assignment]
        sys.modules["redis.asyncio"] = None  # type: ignore[assignment]
        try:
            with pytest.raises(ImportError, match="redis"):
                RedisCacheBackend(redis_url="redis://localhost")
        finally:
            for name, mod in saved.items():
                if mod is not None:
                    sys.modules[name] = mod
                else:
                    sys.modules.pop(name, None)

    def test_from_url_builds_client(self):
        backend = RedisCacheBackend(redis_url="redis://localhost:6379/0", socket_timeout_s=1.5)
        pool_kwargs = backend._client.connection_pool.connection_kwargs
        assert pool_kwargs["socket_timeout"] == 1.5
        assert backend.backend_name == "redis"

    @pytest.mark.asyncio
    async def test_set_uses_ttl(self, mock_redis_client):
        backend = _backend_with(mock_redis_client)
        await backend.set("evidence:abc:pubmed", "{}", ttl_seconds=86400)
        mock_redis_client.set.assert_awaited_once_with("evidence:abc:pubmed", "{}", ex=86400)
        assert mock_redis_client.ttls["evidence:abc:pubmed"] == 86400

    @pytest.mark.asyncio
    async def test_put_and_get(self, mock_redis_client):
        backend = _backend_with(mock_redis_client)
        await backend.set("k", "value", ttl_seconds=10)
        assert await backend.get("k") == "value"
        assert await backend.get("missing") is None

    @pytest.mark.asyncio
    async def test_ping_and_close(self, mock_redis_client):
        backend = _backend_with(mock_redis_client)
        assert await backend.ping() is True
        await backend.close()
        mock_redis_client.aclose.assert_awaited_once()
