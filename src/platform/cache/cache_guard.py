"""
Bounded, failure-tolerant cache calls.

A cache outage must never fail the caller: every store call goes through
`guarded_cache_call`, which caps its duration and converts any error into a
logged "degraded" result (treated as a miss for reads, a no-op for writes).
"""

from typing import Awaitable, Callable, Generic, Optional, TypeVar

import anyio
import attrs

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


_T = TypeVar('_T')


@attrs.define
class GuardedResult(Generic[_T]):
    ok: bool
    value: Optional[_T] = None


async def guarded_cache_call(
    *,
    action: str,
    target: str,
    call: Callable[[], Awaitable[_T]],
    timeout_seconds: Optional[float] = None,
) -> GuardedResult[_T]:
    """
    Run one cache store call.

    Args:
        action: verb for the log line (get / set / delete / delete_prefix)
        target: key or prefix involved
        call: zero-argument coroutine factory performing the store call
        timeout_seconds: upper bound; defaults to CACHE_OPERATION_TIMEOUT_SECONDS

    Returns:
        GuardedResult(ok=True, value) on success, GuardedResult(ok=False) when degraded
    """
    limit = settings.CACHE_OPERATION_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
    try:
        with anyio.fail_after(limit):
            return GuardedResult(ok=True, value=await call())
    except TimeoutError:
        Logger.base.warning(f'⏱️ [CACHE] {action} timed out after {limit}s | {target}')
    except Exception as e:
        Logger.base.warning(f'⚠️ [CACHE] {action} failed, degrading | {target} | {type(e).__name__}: {e}')
    return GuardedResult(ok=False)
