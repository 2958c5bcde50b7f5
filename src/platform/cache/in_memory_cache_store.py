"""In-process CacheStore with lazy expiry and an optional periodic sweeper"""

import asyncio
import contextlib
import time
from typing import Any, Callable, Optional

import attrs

from src.platform.cache.i_cache_store import ICacheStore
from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


@attrs.define
class CacheEntry:
    key: str
    value: Any
    expires_at: Optional[float]  # clock() reading; None = never expires

    def is_expired(self, *, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class InMemoryCacheStore(ICacheStore):
    """
    Dict-backed cache.

    Expiry is checked on every access, so a `get` issued `ttl_seconds` after
    `set` is a miss even if the sweeper has not run yet. The sweeper only
    reclaims memory held by entries nobody reads again.

    Args:
        clock: monotonic seconds source (injectable for tests)
        sweep_interval_seconds: period of the background sweep; 0 disables it
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval_seconds: Optional[float] = None,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock
        self._sweep_interval_seconds = (
            settings.CACHE_SWEEP_INTERVAL_SECONDS
            if sweep_interval_seconds is None
            else sweep_interval_seconds
        )
        self._sweeper_task: Optional[asyncio.Task[None]] = None

    def _live_entry(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(now=self._clock()):
            del self._entries[key]
            return None
        return entry

    async def get(self, key: str) -> Any | None:
        entry = self._live_entry(key)
        return entry.value if entry else None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds > 0 else None
        self._entries[key] = CacheEntry(key=key, value=value, expires_at=expires_at)

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def keys(self) -> list[str]:
        return [key for key in list(self._entries) if self._live_entry(key) is not None]

    async def has(self, key: str) -> bool:
        return self._live_entry(key) is not None

    async def delete_prefix(self, prefix: str) -> int:
        matching = [
            key
            for key in list(self._entries)
            if key.startswith(prefix) and self._live_entry(key) is not None
        ]
        for key in matching:
            del self._entries[key]
        return len(matching)

    async def clear(self) -> None:
        self._entries.clear()

    def sweep_expired(self) -> int:
        """Drop expired entries; returns how many were removed"""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now=now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    # ── Sweeper ──────────────────────────────────────────────────────────

    @property
    def is_sweeping(self) -> bool:
        return self._sweeper_task is not None and not self._sweeper_task.done()

    def start_sweeper(self) -> None:
        """Start the periodic sweep on the running event loop (idempotent)"""
        if self._sweep_interval_seconds <= 0 or self.is_sweeping:
            return
        self._sweeper_task = asyncio.create_task(self._sweep_loop(), name='cache-sweeper')

    async def stop_sweeper(self) -> None:
        if self._sweeper_task is None:
            return
        self._sweeper_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper_task
        self._sweeper_task = None

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval_seconds)
            if removed := self.sweep_expired():
                Logger.base.debug(f'🧹 [CACHE] Swept {removed} expired entries')
