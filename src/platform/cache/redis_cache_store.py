"""
Redis-backed CacheStore (shared across processes).

Key format: {REDIS_KEY_PREFIX}{logical key}
Value: orjson bytes, expiry delegated to redis (SET ... EX ttl).

Listing and prefix deletion use SCAN MATCH, never KEYS, so a large keyspace
does not block the server.
"""

from typing import Any, AsyncIterator

import orjson
from redis.asyncio import ConnectionPool, Redis

from src.platform.cache.i_cache_store import ICacheStore
from src.platform.config.core_setting import Settings, settings as default_settings


_GLOB_SPECIAL = ('\\', '*', '?', '[', ']')
_DELETE_BATCH = 500


def _escape_glob(text: str) -> str:
    for char in _GLOB_SPECIAL:
        text = text.replace(char, f'\\{char}')
    return text


def build_redis_client(settings: Settings = default_settings) -> Redis:
    """Create a pooled async client; connections open lazily on first command"""
    password = settings.REDIS_PASSWORD.get_secret_value()
    pool = ConnectionPool.from_url(
        settings.REDIS_URL,
        password=password or None,
        decode_responses=settings.REDIS_DECODE_RESPONSES,
        max_connections=settings.REDIS_POOL_MAX_CONNECTIONS,
        socket_timeout=settings.REDIS_POOL_SOCKET_TIMEOUT,
        socket_connect_timeout=settings.REDIS_POOL_SOCKET_CONNECT_TIMEOUT,
    )
    return Redis.from_pool(pool)


class RedisCacheStore(ICacheStore):
    """Values must be orjson-serializable (memoized operations pass an encoder)"""

    def __init__(self, *, client: Redis, namespace: str | None = None) -> None:
        self.client = client
        self.namespace = default_settings.REDIS_KEY_PREFIX if namespace is None else namespace

    def _key(self, key: str) -> str:
        return f'{self.namespace}{key}'

    def _logical(self, raw_key: bytes | str) -> str:
        key = raw_key.decode() if isinstance(raw_key, bytes) else raw_key
        return key[len(self.namespace) :]

    async def _scan(self, prefix: str) -> AsyncIterator[bytes | str]:
        pattern = f'{_escape_glob(self._key(prefix))}*'
        async for raw_key in self.client.scan_iter(match=pattern, count=_DELETE_BATCH):
            yield raw_key

    async def get(self, key: str) -> Any | None:
        raw = await self.client.get(self._key(key))
        if raw is None:
            return None
        return orjson.loads(raw)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        payload = orjson.dumps(value)
        if ttl_seconds > 0:
            await self.client.set(self._key(key), payload, ex=ttl_seconds)
        else:
            await self.client.set(self._key(key), payload)

    async def delete(self, key: str) -> bool:
        return bool(await self.client.delete(self._key(key)))

    async def keys(self) -> list[str]:
        return [self._logical(raw_key) async for raw_key in self._scan('')]

    async def has(self, key: str) -> bool:
        return bool(await self.client.exists(self._key(key)))

    async def delete_prefix(self, prefix: str) -> int:
        deleted = 0
        batch: list[bytes | str] = []
        async for raw_key in self._scan(prefix):
            batch.append(raw_key)
            if len(batch) >= _DELETE_BATCH:
                deleted += await self.client.delete(*batch)
                batch = []
        if batch:
            deleted += await self.client.delete(*batch)
        return deleted

    async def clear(self) -> None:
        # Only this store's namespace; other tenants of the redis db are untouched
        await self.delete_prefix('')
