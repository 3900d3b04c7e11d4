"""In-memory cache for rendered month schedules, keyed by year-month."""

from __future__ import annotations

import time
from typing import Optional

from .ttl_cache import Clock, TTLCache

DEFAULT_SCHEDULE_TTL_SECONDS = 900


def _normalize_ym(ym: str) -> str:
    normalized = ym.strip()
    if not normalized:
        raise ValueError("Year-month cannot be empty when caching schedules.")
    return normalized


class ScheduleCache(TTLCache[str]):
    """Process-local cache holding the serialized MonthShifts payload per ``YYYY-MM``."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_SCHEDULE_TTL_SECONDS,
        *,
        clock: Clock = time.monotonic,
        lock_timeout: Optional[float] = 2.0,
    ) -> None:
        super().__init__(ttl_seconds, name="schedule cache", clock=clock, lock_timeout=lock_timeout)

    def _key(self, key: str) -> str:
        return _normalize_ym(key)


__all__ = ["DEFAULT_SCHEDULE_TTL_SECONDS", "ScheduleCache"]
