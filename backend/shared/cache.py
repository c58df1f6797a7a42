"""In-process TTL cache for storefront timer lists.

Storefront traffic is read-heavy and bursty: every page view of every shop
hits the delivery endpoint. Published timer lists are cached per process with
a short TTL, and a bounded "last known good" store lets delivery keep
answering when the database is briefly unreachable.
"""

import asyncio
import functools
import logging
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from cachetools import TTLCache  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

# Distinguishes "not cached" from a cached empty list / None
_MISSING = object()

T = TypeVar("T")


class AsyncTTLCache:
    """TTL cache plus an LRU-bounded stale store.

    ``get`` only returns fresh values. ``get_stale`` returns the last value
    written for a key even after its TTL has passed; it is meant for the
    database-unavailable path only.
    """

    def __init__(self, maxsize: int = 256, ttl: float = 30.0):
        self._maxsize = maxsize
        self._fresh: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._stale: OrderedDict[str, Any] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
            if len(self._locks) > self._maxsize * 2:
                live = set(self._stale) | set(self._fresh)
                for k in [k for k in self._locks if k not in live and k != key]:
                    del self._locks[k]
        return lock

    def get(self, key: str) -> Any:
        return self._fresh.get(key, _MISSING)

    def set(self, key: str, value: Any) -> None:
        self._fresh[key] = value
        self._stale[key] = value
        self._stale.move_to_end(key)
        while len(self._stale) > self._maxsize:
            self._stale.popitem(last=False)

    def get_stale(self, key: str) -> Any:
        value = self._stale.get(key, _MISSING)
        if value is not _MISSING:
            self._stale.move_to_end(key)
        return value

    def clear(self) -> None:
        self._fresh.clear()
        self._stale.clear()
        self._locks.clear()

    @property
    def size(self) -> int:
        return len(self._fresh)


def cached(
    cache: AsyncTTLCache,
    key_func: Callable[..., str],
    *,
    retry: int = 2,
    retry_delay: float = 0.5,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Cache an async loader's result under ``key_func(*args, **kwargs)``.

    On failure the loader is retried *retry* times in total; if every attempt
    fails the stale value is returned when one exists, otherwise the last
    exception propagates.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            key = key_func(*args, **kwargs)

            result = cache.get(key)
            if result is not _MISSING:
                return result

            async with cache.lock_for(key):
                result = cache.get(key)
                if result is not _MISSING:
                    return result

                last_exc: Exception | None = None
                for attempt in range(1, retry + 1):
                    try:
                        result = await func(*args, **kwargs)
                        cache.set(key, result)
                        return result
                    except asyncio.CancelledError:
                        raise
                    except Exception as exc:
                        last_exc = exc
                        if attempt < retry:
                            logger.warning(
                                "Load attempt %d/%d failed for %s: %s",
                                attempt,
                                retry,
                                key,
                                type(exc).__name__,
                            )
                            await asyncio.sleep(retry_delay * attempt)

                stale = cache.get_stale(key)
                if stale is not _MISSING:
                    logger.warning(
                        "Serving stale data for %s (%s)", key, type(last_exc).__name__
                    )
                    return stale

                assert last_exc is not None
                raise last_exc

        wrapper.cache = cache  # type: ignore[attr-defined]
        return wrapper

    return decorator
