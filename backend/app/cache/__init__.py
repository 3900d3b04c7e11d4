"""In-memory caches shared across backend services."""

from .rwlock import LockTimeout, ReadWriteLock
from .schedule_cache import ScheduleCache
from .ttl_cache import CacheEntry, TTLCache

__all__ = ["CacheEntry", "LockTimeout", "ReadWriteLock", "ScheduleCache", "TTLCache"]
