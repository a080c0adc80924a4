"""Sequential identifier allocation backed by a shared Redis counter.

Flow Diagram — SequentialAllocator.next()
=========================================
::
    ┌─────────────┐
    │   next()    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ INCRBY key  │
    │ (atomic)    │
    └──────┬──────┘
    OK?    │
    ┌──────┴──────┐
    │ NO           │ YES
    ▼              ▼
┌───────────┐  ┌─────────┐
│ fallback  │  │ Return  │
│ enabled?  │  │ value   │
└─────┬─────┘  └─────────┘
 YES  │   NO → CounterUnavailableError
      ▼
┌───────────┐
│ GET + 1,  │
│ SET, ret. │
└───────────┘

Key Behaviours
===============
- The first identifier handed out is ``initial``.
- The atomic path is the only race-free one. The read-then-write fallback can
  give two concurrent callers the same identifier; the resulting duplicate slug
  is rejected by the database's unique index, not here.
- The fallback must be switched on explicitly.

Classes:
    SequentialAllocator:  Injected counter client used by the link directory.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from prometheus_client import Counter

from shortlink.exceptions import CounterUnavailableError

__all__ = ["SequentialAllocator"]

COUNTER_ALLOCATIONS_TOTAL = Counter(
    "shortlink_counter_allocations_total",
    "Identifiers handed out by the sequential allocator",
    ["path"],
)
COUNTER_FALLBACK_TOTAL = Counter(
    "shortlink_counter_fallback_total",
    "Allocations that used the non-atomic read-then-write fallback",
)


class SequentialAllocator:
    """Hand out strictly increasing integers from a Redis counter.

    Example:
        >>> allocator = SequentialAllocator(cache, key="url_counter")
        >>> await allocator.next()
        1
    """

    def __init__(
        self,
        cache: redis.Redis,
        key: str = "url_counter",
        initial: int = 1,
        allow_non_atomic_fallback: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        assert cache is not None, "cache must not be None"
        assert key, "key must be non-empty"
        self._cache = cache
        self.key = key
        self.initial = initial
        self.allow_non_atomic_fallback = allow_non_atomic_fallback
        self._logger = logger or logging.getLogger("shortlink")
        # Redis starts a missing key at 0, so only a non-default initial value needs a seed.
        self._seeded = initial == 1

    async def next(self) -> int:
        try:
            value = await self._atomic_increment()
            COUNTER_ALLOCATIONS_TOTAL.labels(path="atomic").inc()
            return value
        except redis.RedisError as exc:
            if not self.allow_non_atomic_fallback:
                raise CounterUnavailableError(f"Atomic increment of '{self.key}' failed: {exc}") from exc
            self._logger.warning(f"Atomic increment of '{self.key}' failed ({exc}); using non-atomic fallback")

        value = await self._fallback_increment()
        COUNTER_ALLOCATIONS_TOTAL.labels(path="fallback").inc()
        COUNTER_FALLBACK_TOTAL.inc()
        return value

    async def _atomic_increment(self) -> int:
        if not self._seeded:
            await self._cache.set(self.key, self.initial - 1, nx=True)
            self._seeded = True
        return int(await self._cache.incrby(self.key, 1))

    async def _fallback_increment(self) -> int:
        try:
            current = await self._cache.get(self.key)
            value = int(current) + 1 if current is not None else self.initial
            await self._cache.set(self.key, value)
        except redis.RedisError as exc:
            raise CounterUnavailableError(f"Fallback increment of '{self.key}' failed: {exc}") from exc
        return value
