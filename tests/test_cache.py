import asyncio

import pytest

from utils.cache import ReferenceCache


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class Loader:
    def __init__(self):
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(0)
        return [f"value-{self.calls}"]


@pytest.fixture
def clock():
    return Clock()


async def test_value_is_loaded_once_within_ttl(clock):
    cache = ReferenceCache(clock=clock)
    loader = Loader()

    first = await cache.get_or_load("products", 300, loader)
    clock.now += 299
    second = await cache.get_or_load("products", 300, loader)

    assert first == second == ["value-1"]
    assert loader.calls == 1


async def test_entry_expires_after_ttl(clock):
    cache = ReferenceCache(clock=clock)
    loader = Loader()

    await cache.get_or_load("products", 300, loader)
    clock.now += 300

    assert await cache.get_or_load("products", 300, loader) == ["value-2"]


async def test_keys_expire_independently(clock):
    cache = ReferenceCache(clock=clock)
    customers, products = Loader(), Loader()

    await cache.get_or_load("customers", 600, customers)
    await cache.get_or_load("products", 300, products)
    clock.now += 301
    await cache.get_or_load("customers", 600, customers)
    await cache.get_or_load("products", 300, products)

    assert customers.calls == 1
    assert products.calls == 2


async def test_invalidate_forces_reload(clock):
    cache = ReferenceCache(clock=clock)
    loader = Loader()

    await cache.get_or_load("products", 300, loader)
    cache.invalidate("products")

    assert await cache.get_or_load("products", 300, loader) == ["value-2"]


async def test_invalidate_unknown_key_is_harmless():
    ReferenceCache().invalidate("nothing-here")


async def test_loader_failure_is_not_cached(clock):
    cache = ReferenceCache(clock=clock)

    async def failing():
        raise RuntimeError("storage down")

    with pytest.raises(RuntimeError):
        await cache.get_or_load("products", 300, failing)

    loader = Loader()
    assert await cache.get_or_load("products", 300, loader) == ["value-1"]


async def test_concurrent_misses_share_one_load(clock):
    cache = ReferenceCache(clock=clock)
    loader = Loader()

    results = await asyncio.gather(*(cache.get_or_load("products", 300, loader) for _ in range(5)))

    assert loader.calls == 1
    assert all(r == ["value-1"] for r in results)


async def test_value_loaded_during_invalidation_is_not_stored(clock):
    cache = ReferenceCache(clock=clock)
    calls = []

    async def slow_loader():
        calls.append(1)
        cache.invalidate("products")
        return ["stale"]

    assert await cache.get_or_load("products", 300, slow_loader) == ["stale"]
    assert await cache.get_or_load("products", 300, slow_loader) == ["stale"]
    assert len(calls) == 2
