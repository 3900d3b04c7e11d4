"""Month schedule aggregation: cache lookup, upstream fetch, normalization and grid assembly."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from time import perf_counter
from typing import Literal, Optional

import httpx

from .cache.schedule_cache import ScheduleCache
from .config import Settings
from .errors import InvalidParameter, ScheduleServiceError
from .month_grid import MonthShifts, build_month_shifts, is_valid_ym, month_bounds
from .shift_config import ConfigResolver
from .shift_display import ShiftDisplayConfig
from .telemetry import emit_event
from .upstream import build_schedule_url, fetch_with_retry, parse_upstream_payload

logger = logging.getLogger(__name__)

CacheStatus = Literal["HIT", "MISS"]


@dataclass(frozen=True)
class MonthPayload:
    ym: str
    json: str
    cache_status: CacheStatus


class ScheduleService:
    def __init__(
        self,
        settings: Settings,
        schedule_cache: ScheduleCache,
        config_resolver: ConfigResolver,
        *,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._settings = settings
        self._cache = schedule_cache
        self._config = config_resolver
        self._client = client

    @property
    def cache_ttl_seconds(self) -> int:
        return self._settings.cache_ttl_seconds

    def get_month_payload(self, ym: str) -> MonthPayload:
        """Serialized MonthShifts for ``ym``, served from cache while fresh."""
        if not is_valid_ym(ym):
            raise InvalidParameter("Invalid ym format. Expected YYYY-MM")
        upstream = self._settings.upstream_settings()

        cached = self._cache.get(ym)
        if cached is not None:
            emit_event("schedule_cache", ym=ym, status="hit")
            return MonthPayload(ym=ym, json=cached, cache_status="HIT")

        display_config = self._display_config()
        start_date, end_date = month_bounds(ym)
        url = build_schedule_url(upstream.base_url, upstream.token, start_date, end_date)

        started_at = perf_counter()
        try:
            body = fetch_with_retry(
                url,
                upstream.timeout_seconds,
                upstream.max_retries,
                client=self._client,
            )
        except ScheduleServiceError as exc:
            emit_event(
                "upstream_fetch",
                ym=ym,
                status="error",
                code=exc.code,
                latency_ms=int((perf_counter() - started_at) * 1000),
            )
            raise
        emit_event(
            "upstream_fetch",
            ym=ym,
            status="success",
            latency_ms=int((perf_counter() - started_at) * 1000),
        )

        shifts = parse_upstream_payload(body)
        month = build_month_shifts(ym, shifts, display_config)
        payload = month.to_json()
        self._cache.put(ym, payload)
        emit_event(
            "schedule_cache",
            ym=ym,
            status="miss",
            people=len(month.people),
            shifts=len(shifts),
        )
        return MonthPayload(ym=ym, json=payload, cache_status="MISS")

    def get_month_shifts(self, ym: str) -> MonthShifts:
        payload = self.get_month_payload(ym)
        return MonthShifts.model_validate_json(payload.json)

    def _display_config(self) -> ShiftDisplayConfig:
        try:
            return self._config.display_config()
        except Exception:  # noqa: BLE001
            logger.exception("Failed to resolve shift display config, using defaults")
            return ShiftDisplayConfig()


__all__ = ["CacheStatus", "MonthPayload", "ScheduleService"]
