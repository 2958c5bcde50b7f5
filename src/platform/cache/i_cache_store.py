"""
Cache Store Interface

Shared key -> value store with per-entry TTL. One instance is shared by every
component in the process (or, for the redis adapter, across processes), so
isolation relies entirely on callers using distinct key prefixes.

Every method may suspend: the in-memory adapter never does, a remote adapter does.
"""

from abc import ABC, abstractmethod
from typing import Any


class ICacheStore(ABC):
    """
    Port: cache-aside storage.

    `None` is the miss sentinel: `get` returns None for absent or expired keys,
    so a None value is never worth storing.
    """

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the live value for key, or None on miss / expiry"""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store value under key; ttl_seconds <= 0 means no expiry"""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove key; return True if a live entry was removed"""
        pass

    @abstractmethod
    async def keys(self) -> list[str]:
        """Snapshot of the live keys"""
        pass

    @abstractmethod
    async def has(self, key: str) -> bool:
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Drop every entry owned by this store"""
        pass

    async def delete_prefix(self, prefix: str) -> int:
        """
        Remove every live key starting with prefix.

        O(total keys): scans the full key set. Adapters with a cheaper
        primitive override this.

        Returns:
            Number of deleted keys
        """
        deleted = 0
        for key in await self.keys():
            if key.startswith(prefix) and await self.delete(key):
                deleted += 1
        return deleted
