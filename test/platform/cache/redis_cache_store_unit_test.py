"""
Unit tests for RedisCacheStore against an in-process fake of the redis.asyncio calls it uses
"""

import re
from typing import Any, AsyncIterator

import orjson
import pytest

from src.platform.cache.redis_cache_store import RedisCacheStore


def _glob_to_regex(pattern: str) -> re.Pattern[str]:
    parts: list[str] = []
    chars = iter(pattern)
    for char in chars:
        if char == '\\':
            parts.append(re.escape(next(chars)))
        elif char == '*':
            parts.append('.*')
        elif char == '?':
            parts.append('.')
        else:
            parts.append(re.escape(char))
    return re.compile(''.join(parts) + r'\Z')


class FakeRedis:
    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.expiry: dict[str, int] = {}
        self.scan_patterns: list[str] = []

    async def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    async def set(self, key: str, value: bytes, ex: int | None = None) -> bool:
        self.data[key] = value
        if ex is not None:
            self.expiry[key] = ex
        return True

    async def delete(self, *keys: Any) -> int:
        removed = 0
        for key in keys:
            key = key.decode() if isinstance(key, bytes) else key
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    async def exists(self, key: str) -> int:
        return int(key in self.data)

    async def scan_iter(self, match: str, count: int) -> AsyncIterator[bytes]:
        self.scan_patterns.append(match)
        regex = _glob_to_regex(match)
        for key in list(self.data):
            if regex.match(key):
                yield key.encode()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def redis_store(fake_redis: FakeRedis) -> RedisCacheStore:
    return RedisCacheStore(client=fake_redis, namespace='test:')  # type: ignore[arg-type]


class TestRedisCacheStore:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_set_stores_orjson_under_namespace_with_ttl(
        self, redis_store: RedisCacheStore, fake_redis: FakeRedis
    ) -> None:
        # When
        await redis_store.set('k', {'id': 1, 'tables': [5]}, 60)

        # Then
        assert orjson.loads(fake_redis.data['test:k']) == {'id': 1, 'tables': [5]}
        assert fake_redis.expiry['test:k'] == 60
        assert await redis_store.get('k') == {'id': 1, 'tables': [5]}
        assert await redis_store.has('k') is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_zero_ttl_sets_without_expiry(
        self, redis_store: RedisCacheStore, fake_redis: FakeRedis
    ) -> None:
        await redis_store.set('k', 1, 0)
        assert 'test:k' not in fake_redis.expiry

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_key_is_a_miss(self, redis_store: RedisCacheStore) -> None:
        assert await redis_store.get('absent') is None
        assert await redis_store.delete('absent') is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_keys_are_returned_without_namespace(
        self, redis_store: RedisCacheStore, fake_redis: FakeRedis
    ) -> None:
        # Given: one key of this store, one of another tenant
        await redis_store.set('a', 1, 60)
        fake_redis.data['other:b'] = b'2'

        # When / Then
        assert await redis_store.keys() == ['a']

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_delete_prefix_escapes_glob_characters(
        self, redis_store: RedisCacheStore, fake_redis: FakeRedis
    ) -> None:
        # Given: canonical keys contain brackets
        await redis_store.set('v1:search_[{"page":1}]', 1, 60)
        await redis_store.set('v1:search_[{"page":2}]', 2, 60)
        await redis_store.set('v1:get_[1]', 3, 60)

        # When
        deleted = await redis_store.delete_prefix('v1:search_[')

        # Then
        assert deleted == 2
        assert fake_redis.scan_patterns[-1] == 'test:v1:search_\\[*'
        assert await redis_store.keys() == ['v1:get_[1]']

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_clear_only_touches_own_namespace(
        self, redis_store: RedisCacheStore, fake_redis: FakeRedis
    ) -> None:
        await redis_store.set('a', 1, 60)
        fake_redis.data['other:b'] = b'2'

        await redis_store.clear()

        assert fake_redis.data == {'other:b': b'2'}
