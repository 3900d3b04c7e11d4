"""Process-wide service instances wired from settings, exposed as FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from .blob_store import BlobStore, LocalBlobStore
from .cache.schedule_cache import ScheduleCache
from .config import get_settings
from .schedule_service import ScheduleService
from .shift_config import ConfigResolver
from .telemetry_pipeline import ClientTelemetryBuffer


@lru_cache
def get_schedule_cache() -> ScheduleCache:
    return ScheduleCache(get_settings().cache_ttl_seconds)


@lru_cache
def get_config_store() -> BlobStore:
    return LocalBlobStore(get_settings().config_bucket_dir)


@lru_cache
def get_config_resolver() -> ConfigResolver:
    settings = get_settings()
    return ConfigResolver(get_config_store(), ttl_seconds=settings.config_cache_ttl_seconds)


@lru_cache
def get_schedule_service() -> ScheduleService:
    return ScheduleService(get_settings(), get_schedule_cache(), get_config_resolver())


@lru_cache
def get_telemetry_buffer() -> ClientTelemetryBuffer:
    return ClientTelemetryBuffer()


@lru_cache
def get_telemetry_store() -> Optional[BlobStore]:
    directory = get_settings().telemetry_bucket_dir
    if directory is None:
        return None
    return LocalBlobStore(directory)


def reset_services() -> None:
    """Drop cached instances so the next request rebuilds them from fresh settings."""
    for factory in (
        get_schedule_cache,
        get_config_store,
        get_config_resolver,
        get_schedule_service,
        get_telemetry_buffer,
        get_telemetry_store,
    ):
        factory.cache_clear()


__all__ = [
    "get_config_resolver",
    "get_config_store",
    "get_schedule_cache",
    "get_schedule_service",
    "get_telemetry_buffer",
    "get_telemetry_store",
    "reset_services",
]
