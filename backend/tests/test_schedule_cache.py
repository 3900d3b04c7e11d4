from __future__ import annotations

import threading

import pytest

from app.cache import ReadWriteLock, ScheduleCache, TTLCache
from app.cache.rwlock import LockTimeout


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_put_then_get_within_ttl_returns_value() -> None:
    clock = FakeClock()
    cache = ScheduleCache(60, clock=clock)

    cache.put("2024-02", '{"ym":"2024-02"}')
    clock.advance(59.9)

    assert cache.get("2024-02") == '{"ym":"2024-02"}'


def test_stale_entry_is_missed_and_purged() -> None:
    clock = FakeClock()
    cache = ScheduleCache(60, clock=clock)
    cache.put("2024-02", "payload")

    clock.advance(60)

    assert cache.peek("2024-02") is not None
    assert cache.get("2024-02") is None
    assert cache.peek("2024-02") is None
    assert len(cache) == 0


def test_zero_ttl_never_serves_but_still_stores() -> None:
    clock = FakeClock()
    cache = ScheduleCache(0, clock=clock)

    cache.put("2024-02", "payload")

    assert cache.get("2024-02") is None
    entry = cache.peek("2024-02")
    assert entry is not None
    assert entry.value == "payload"

    cache.ttl_seconds = 120
    clock.advance(10)
    assert cache.get("2024-02") == "payload"


def test_put_overwrites_and_refreshes_timestamp() -> None:
    clock = FakeClock()
    cache = ScheduleCache(60, clock=clock)
    cache.put("2024-02", "old")
    clock.advance(50)
    cache.put("2024-02", "new")
    clock.advance(50)

    assert cache.get("2024-02") == "new"


def test_evict_and_clear() -> None:
    cache = ScheduleCache(60, clock=FakeClock())
    cache.put("2024-01", "a")
    cache.put("2024-02", "b")

    cache.evict("2024-01")
    assert cache.get("2024-01") is None
    assert cache.get("2024-02") == "b"

    cache.clear()
    assert len(cache) == 0


def test_schedule_cache_rejects_blank_keys() -> None:
    with pytest.raises(ValueError):
        ScheduleCache(60).put("  ", "payload")


def test_negative_ttl_is_rejected() -> None:
    with pytest.raises(ValueError):
        TTLCache(-1)


def test_lock_contention_degrades_to_operating_without_cache() -> None:
    cache: TTLCache[str] = TTLCache(60, clock=FakeClock(), lock_timeout=0.01)
    cache.put("key", "value")

    cache._lock.acquire_write()
    try:
        assert cache.get("key") is None
        cache.put("key", "other")
    finally:
        cache._lock.release_write()

    assert cache.get("key") == "value"


def test_read_write_lock_allows_concurrent_readers_and_blocks_writers() -> None:
    lock = ReadWriteLock()
    lock.acquire_read()
    lock.acquire_read(timeout=0.1)

    with pytest.raises(LockTimeout):
        lock.acquire_write(timeout=0.01)

    lock.release_read()
    lock.release_read()
    with lock.write(timeout=0.1):
        with pytest.raises(LockTimeout):
            lock.acquire_read(timeout=0.01)


def test_writer_waits_for_reader_release() -> None:
    lock = ReadWriteLock()
    acquired = threading.Event()
    lock.acquire_read()

    def writer() -> None:
        with lock.write(timeout=2):
            acquired.set()

    thread = threading.Thread(target=writer)
    thread.start()
    assert not acquired.wait(0.05)
    lock.release_read()
    thread.join(timeout=2)
    assert acquired.is_set()
