# backend/utils/cache.py
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Tuple

logger = logging.getLogger(__name__)

# Reference list keys
CUSTOMER_LIST_KEY = "customers_for_select"
PRODUCT_LIST_KEY = "products_for_select"
ORDER_LIST_KEY = "orders_for_select"


class ReferenceCache:
    """Read-through cache for small reference datasets.

    Each key has its own absolute expiry. Concurrent misses on the same key
    share one loader call. Loader failures propagate and leave nothing cached.
    A value loaded while its key was invalidated is returned to that caller
    but not stored.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._generations: Dict[str, int] = {}

    def _fresh(self, key: str):
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return False, None
        return True, value

    async def get_or_load(self, key: str, ttl: float, loader: Callable[[], Awaitable[Any]]) -> Any:
        hit, value = self._fresh(key)
        if hit:
            return value

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            # Another caller may have loaded it while we waited
            hit, value = self._fresh(key)
            if hit:
                return value
            generation = self._generations.get(key, 0)
            value = await loader()
            if self._generations.get(key, 0) == generation:
                self._entries[key] = (self._clock() + ttl, value)
                logger.debug(f"Cache loaded '{key}' for {ttl}s")
            return value

    def invalidate(self, key: str) -> None:
        self._generations[key] = self._generations.get(key, 0) + 1
        if self._entries.pop(key, None) is not None:
            logger.debug(f"Cache entry '{key}' invalidated")

    def clear(self) -> None:
        for key in list(self._entries):
            self.invalidate(key)
