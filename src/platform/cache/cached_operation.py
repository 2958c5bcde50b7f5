"""
Memoizer: cache-aside wrapper for async read operations.

    cached_get = CachedOperation(repo_get, cache_store=store, name='get_user')
    user = await cached_get(42)   # miss -> repo_get(42), stored for ttl
    user = await cached_get(42)   # hit  -> repo_get not called

Concurrent misses are not deduplicated: both callers run the operation and
both write the cache (last write wins).
"""

import functools
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from opentelemetry import trace

from src.platform.cache.cache_guard import guarded_cache_call
from src.platform.cache.cache_key_builder import CacheKeyBuilder
from src.platform.cache.i_cache_store import ICacheStore
from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import CacheConfigurationError
from src.platform.logging.loguru_io import Logger


_R = TypeVar('_R')

KeyFn = Callable[..., str]


class CachedOperation(Generic[_R]):
    """
    Args:
        func: async read operation
        cache_store: shared CacheStore handle (required)
        name: operation name used in the default key; defaults to func.__name__
        key_builder: canonical key builder for the default key
        key_fn: custom key generator receiving the call arguments
        ttl_seconds: entry lifetime; defaults to CACHE_DEFAULT_TTL_SECONDS
        encode: result -> cache-safe value (applied before `set`)
        decode: cached value -> result (applied after a hit)
    """

    def __init__(
        self,
        func: Callable[..., Awaitable[_R]],
        *,
        cache_store: Optional[ICacheStore],
        name: Optional[str] = None,
        key_builder: Optional[CacheKeyBuilder] = None,
        key_fn: Optional[KeyFn] = None,
        ttl_seconds: Optional[int] = None,
        encode: Optional[Callable[[_R], Any]] = None,
        decode: Optional[Callable[[Any], _R]] = None,
    ) -> None:
        functools.update_wrapper(self, func)
        self.name = name or getattr(func, '__name__', type(func).__name__)
        if cache_store is None:
            raise CacheConfigurationError(
                message=f'Cannot memoize "{self.name}": no cache store was provided'
            )
        self.func = func
        self.cache_store = cache_store
        self.key_builder = key_builder or CacheKeyBuilder()
        self.key_fn = key_fn
        self.ttl_seconds = settings.CACHE_DEFAULT_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.encode = encode
        self.decode = decode
        self._tracer = trace.get_tracer(__name__)

    @property
    def prefix(self) -> str:
        """Prefix shared by every key of this operation built with the default key"""
        return self.key_builder.prefix(self.name)

    def cache_key(self, *args: Any, **kwargs: Any) -> str:
        if self.key_fn is not None:
            return self.key_fn(*args, **kwargs)
        return self.key_builder.key(self.name, *args, **kwargs)

    async def __call__(self, *args: Any, **kwargs: Any) -> _R:
        key = self.cache_key(*args, **kwargs)

        with self._tracer.start_as_current_span(
            'cache.memoize',
            attributes={'cache.operation': self.name, 'cache.key': key},
        ) as span:
            lookup = await guarded_cache_call(
                action='get', target=key, call=lambda: self.cache_store.get(key)
            )
            span.set_attribute('cache_degraded', not lookup.ok)

            if lookup.ok and lookup.value is not None:
                try:
                    cached = self.decode(lookup.value) if self.decode else lookup.value
                except Exception as e:
                    # Undecodable entry: recompute and overwrite it
                    Logger.base.warning(
                        f'⚠️ [CACHE] decode failed, treating as miss | {key} | {type(e).__name__}: {e}'
                    )
                    span.set_attribute('cache_degraded', True)
                else:
                    span.set_attribute('cache_hit', True)
                    return cached

            span.set_attribute('cache_hit', False)

            # Errors propagate; nothing is cached
            result = await self.func(*args, **kwargs)

            if result is not None:
                value = self.encode(result) if self.encode else result
                stored = await guarded_cache_call(
                    action='set',
                    target=key,
                    call=lambda: self.cache_store.set(key, value, self.ttl_seconds),
                )
                if not stored.ok:
                    span.set_attribute('cache_degraded', True)

            return result


def memoize(
    *,
    cache_store: Optional[ICacheStore],
    name: Optional[str] = None,
    key_builder: Optional[CacheKeyBuilder] = None,
    key_fn: Optional[KeyFn] = None,
    ttl_seconds: Optional[int] = None,
    encode: Optional[Callable[[Any], Any]] = None,
    decode: Optional[Callable[[Any], Any]] = None,
) -> Callable[[Callable[..., Awaitable[_R]]], CachedOperation[_R]]:
    """Decorator form of CachedOperation"""

    def decorator(func: Callable[..., Awaitable[_R]]) -> CachedOperation[_R]:
        return CachedOperation(
            func,
            cache_store=cache_store,
            name=name,
            key_builder=key_builder,
            key_fn=key_fn,
            ttl_seconds=ttl_seconds,
            encode=encode,
            decode=decode,
        )

    return decorator
