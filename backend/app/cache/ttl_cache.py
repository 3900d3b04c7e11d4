"""Read-through friendly TTL cache with lazy eviction."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Optional, TypeVar

from .rwlock import LockTimeout, ReadWriteLock

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]

DEFAULT_LOCK_TIMEOUT_SECONDS = 2.0


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    fetched_at: float


class TTLCache(Generic[T]):
    """Process-local mapping whose entries expire ``ttl_seconds`` after they were stored.

    A TTL of zero disables reads only: ``put`` always stores, so raising the
    TTL later can serve entries written while caching was off. Stale entries
    are removed when a read finds them, never by a background sweep. Lock
    acquisition failures degrade to operating without the cache.
    """

    def __init__(
        self,
        ttl_seconds: float,
        *,
        name: str = "cache",
        clock: Clock = time.monotonic,
        lock_timeout: Optional[float] = DEFAULT_LOCK_TIMEOUT_SECONDS,
    ) -> None:
        if ttl_seconds < 0:
            raise ValueError("Cache TTL cannot be negative.")
        self._ttl = ttl_seconds
        self._name = name
        self._clock = clock
        self._lock_timeout = lock_timeout
        self._lock = ReadWriteLock()
        self._entries: Dict[str, CacheEntry[T]] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @ttl_seconds.setter
    def ttl_seconds(self, value: float) -> None:
        if value < 0:
            raise ValueError("Cache TTL cannot be negative.")
        self._ttl = value

    def _key(self, key: str) -> str:
        return key

    def get(self, key: str) -> Optional[T]:
        if self._ttl <= 0:
            return None
        normalized = self._key(key)
        try:
            with self._lock.read(self._lock_timeout):
                entry = self._entries.get(normalized)
        except LockTimeout:
            logger.warning("%s read lock unavailable; bypassing cache for %s", self._name, normalized)
            return None
        if entry is None:
            logger.debug("%s miss for %s: not found", self._name, normalized)
            return None

        age = self._clock() - entry.fetched_at
        if age < self._ttl:
            logger.debug("%s hit for %s: %.1f seconds old", self._name, normalized, age)
            return entry.value

        logger.debug("%s miss for %s: %.1f seconds old (stale)", self._name, normalized, age)
        self._evict_if_same(normalized, entry)
        return None

    def _evict_if_same(self, key: str, stale: CacheEntry[T]) -> None:
        try:
            with self._lock.write(self._lock_timeout):
                if self._entries.get(key) is stale:
                    del self._entries[key]
        except LockTimeout:
            logger.warning("%s write lock unavailable; stale entry %s left in place", self._name, key)

    def put(self, key: str, value: T) -> None:
        normalized = self._key(key)
        entry = CacheEntry(value=value, fetched_at=self._clock())
        try:
            with self._lock.write(self._lock_timeout):
                self._entries[normalized] = entry
        except LockTimeout:
            logger.warning("%s write lock unavailable; skipped storing %s", self._name, normalized)

    def peek(self, key: str) -> Optional[CacheEntry[T]]:
        """Return the raw entry regardless of age (diagnostics and tests)."""
        with self._lock.read(self._lock_timeout):
            return self._entries.get(self._key(key))

    def evict(self, key: str) -> None:
        with self._lock.write(self._lock_timeout):
            self._entries.pop(self._key(key), None)

    def clear(self) -> None:
        with self._lock.write(self._lock_timeout):
            self._entries.clear()
        logger.info("%s cleared", self._name)

    def __len__(self) -> int:
        with self._lock.read(self._lock_timeout):
            return len(self._entries)


__all__ = ["CacheEntry", "Clock", "TTLCache"]
