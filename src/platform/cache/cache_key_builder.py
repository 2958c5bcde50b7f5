"""
Canonical cache keys.

Format: "{version}:{operation}_[{canonical args}]"

- canonical args: orjson array of the positional args, followed by one object
  holding the keyword args (sorted by name) when any are given
- the version segment lets a deploy orphan every old key at once
- every key of an operation starts with `prefix(operation)`, which is what
  prefix invalidation targets
"""

import enum
from typing import Any

import attrs
import orjson
from pydantic import BaseModel

from src.platform.config.core_setting import settings


_OPTIONS = orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS


def _default(obj: Any) -> Any:
    if attrs.has(type(obj)):
        return attrs.asdict(obj)
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode='json')
    if isinstance(obj, set | frozenset):
        return sorted(obj, key=repr)
    if isinstance(obj, enum.Enum):
        return obj.value
    raise TypeError(f'Cannot build a cache key from {type(obj).__name__}')


class CacheKeyBuilder:
    def __init__(self, *, version: str | None = None) -> None:
        self.version = version or settings.CACHE_KEY_VERSION

    def prefix(self, operation: str) -> str:
        return f'{self.version}:{operation}_'

    def serialize_args(self, *args: Any, **kwargs: Any) -> str:
        payload: list[Any] = list(args)
        if kwargs:
            payload.append(kwargs)
        return orjson.dumps(payload, default=_default, option=_OPTIONS).decode()

    def key(self, operation: str, *args: Any, **kwargs: Any) -> str:
        return f'{self.prefix(operation)}{self.serialize_args(*args, **kwargs)}'
