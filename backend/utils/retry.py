# backend/utils/retry.py
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from utils.table_store import StorageRequestError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_transient(exc: BaseException) -> bool:
    # Overload, unavailability and rate limiting (429/500/502/503/504)
    return isinstance(exc, StorageRequestError) and exc.is_transient


def backoff_delay(base_delay: float, failed_attempts: int) -> float:
    """Delay after the n-th failed attempt: base_delay * 2^(n-1)."""
    return base_delay * (2 ** (failed_attempts - 1))


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff around a single storage call.

    ``operation`` is a zero-argument callable returning a fresh awaitable on
    each attempt. Non-transient errors and the last transient error are
    re-raised unchanged.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, compare=False, repr=False)

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except StorageRequestError as e:
                if not is_transient(e) or attempt >= self.max_attempts:
                    raise
                delay = backoff_delay(self.base_delay, attempt)
                logger.warning(
                    f"Transient storage error (status {e.status}), attempt {attempt}/{self.max_attempts}, "
                    f"retrying in {delay:.2f}s"
                )
                await self.sleep(delay)
