"""
Invalidator: post-success cache eviction around async write operations.

    delete_user = InvalidatingOperation(
        repo_delete,
        cache_store=store,
        strategies=[
            InvalidateByKeys(lambda user_id: [keys.key('get_user', user_id)]),
            InvalidateByPrefix(keys.prefix('search_users')),
        ],
    )

Strategies run in declaration order, only after the write returns. Wrapping
an InvalidatingOperation in another one merges the two layers: the write is
called exactly once and the outer (first declared) strategies run first.
"""

from abc import ABC, abstractmethod
import functools
from typing import Any, Awaitable, Callable, Generic, Iterable, Optional, TypeVar

from src.platform.cache.cache_guard import guarded_cache_call
from src.platform.cache.i_cache_store import ICacheStore
from src.platform.exception.exceptions import CacheConfigurationError
from src.platform.logging.loguru_io import Logger


_R = TypeVar('_R')


class InvalidationStrategy(ABC):
    @abstractmethod
    async def apply(self, cache_store: ICacheStore, *args: Any, **kwargs: Any) -> None:
        """Evict entries made stale by a successful call with these arguments"""
        pass


class InvalidateByKeys(InvalidationStrategy):
    """Delete the exact keys returned by key_fn(*args, **kwargs)"""

    def __init__(self, key_fn: Callable[..., Iterable[str]]) -> None:
        self.key_fn = key_fn

    async def apply(self, cache_store: ICacheStore, *args: Any, **kwargs: Any) -> None:
        for key in self.key_fn(*args, **kwargs):
            result = await guarded_cache_call(
                action='delete', target=key, call=lambda key=key: cache_store.delete(key)
            )
            if result.ok and result.value:
                Logger.base.debug(f'🗑️ [CACHE] Invalidated key {key}')


class InvalidateByPrefix(InvalidationStrategy):
    """Delete every key currently starting with prefix"""

    def __init__(self, prefix: str) -> None:
        if not prefix:
            raise CacheConfigurationError(message='Invalidation prefix must not be empty')
        self.prefix = prefix

    async def apply(self, cache_store: ICacheStore, *args: Any, **kwargs: Any) -> None:
        result = await guarded_cache_call(
            action='delete_prefix',
            target=self.prefix,
            call=lambda: cache_store.delete_prefix(self.prefix),
        )
        if result.ok and result.value:
            Logger.base.debug(f'🗑️ [CACHE] Invalidated {result.value} keys under {self.prefix}')


class InvalidatingOperation(Generic[_R]):
    def __init__(
        self,
        func: Callable[..., Awaitable[_R]],
        *,
        cache_store: Optional[ICacheStore],
        strategies: Iterable[InvalidationStrategy],
    ) -> None:
        name = getattr(func, '__name__', type(func).__name__)
        if cache_store is None:
            raise CacheConfigurationError(
                message=f'Cannot invalidate after "{name}": no cache store was provided'
            )

        steps = [(cache_store, strategy) for strategy in strategies]
        if isinstance(func, InvalidatingOperation):
            steps += func.steps
            func = func.func

        functools.update_wrapper(self, func)
        self.func = func
        self.cache_store = cache_store
        self.steps: list[tuple[ICacheStore, InvalidationStrategy]] = steps

    @property
    def strategies(self) -> list[InvalidationStrategy]:
        return [strategy for _, strategy in self.steps]

    async def __call__(self, *args: Any, **kwargs: Any) -> _R:
        result = await self.func(*args, **kwargs)
        for cache_store, strategy in self.steps:
            await strategy.apply(cache_store, *args, **kwargs)
        return result


def invalidate_after(
    cache_store: Optional[ICacheStore], *strategies: InvalidationStrategy
) -> Callable[[Callable[..., Awaitable[_R]]], InvalidatingOperation[_R]]:
    """Decorator form of InvalidatingOperation"""

    def decorator(func: Callable[..., Awaitable[_R]]) -> InvalidatingOperation[_R]:
        return InvalidatingOperation(func, cache_store=cache_store, strategies=strategies)

    return decorator
