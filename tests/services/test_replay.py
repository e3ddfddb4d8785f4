"""Tests for the replay cache backends."""

from concurrent.futures import ThreadPoolExecutor

from nexus_campus.services.replay import InMemoryReplayCache, RedisReplayCache


class FakeRedis:
    """Minimal stand-in for the two redis commands the cache uses."""

    def __init__(self) -> None:
        self.store: dict[str, tuple[str, int]] = {}
        self.now = 0

    def exists(self, key: str) -> int:
        entry = self.store.get(key)
        return int(entry is not None and entry[1] > self.now)

    def set(self, key: str, value: str, nx: bool = False, exat: int | None = None) -> bool | None:
        if nx and self.exists(key):
            return None
        self.store[key] = (value, exat or 0)
        return True


def test_memory_cache_remembers_until_expiry() -> None:
    cache = InMemoryReplayCache()
    assert cache.remember("sig", expires_at=100, now=0)
    assert cache.contains("sig", now=99)
    assert not cache.contains("sig", now=100)


def test_memory_cache_refuses_second_remember() -> None:
    cache = InMemoryReplayCache()
    assert cache.remember("sig", expires_at=100, now=0)
    assert not cache.remember("sig", expires_at=200, now=50)
    # An expired entry may be replaced.
    assert cache.remember("sig", expires_at=400, now=150)


def test_memory_cache_purge_drops_expired_entries() -> None:
    cache = InMemoryReplayCache()
    cache.remember("old", expires_at=10, now=0)
    cache.remember("new", expires_at=1000, now=0)
    cache.purge(now=10)
    assert len(cache) == 1
    assert cache.contains("new", now=10)


def test_memory_cache_admits_one_concurrent_remember() -> None:
    cache = InMemoryReplayCache()
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: cache.remember("sig", 100, 0), range(32)))
    assert results.count(True) == 1


def test_redis_cache_uses_set_nx_with_absolute_expiry() -> None:
    fake = FakeRedis()
    cache = RedisReplayCache(fake, prefix="test:")
    assert cache.remember("sig", expires_at=300, now=0)
    assert fake.store["test:sig"] == ("1", 300)
    assert cache.contains("sig", now=0)
    assert not cache.remember("sig", expires_at=600, now=10)

    fake.now = 300
    assert not cache.contains("sig", now=300)
