"""Buffered ingestion of front-end telemetry with JSONL archival to the telemetry bucket."""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from .blob_store import BlobStore

logger = logging.getLogger(__name__)

TELEMETRY_BUFFER_MAX_EVENTS = 50
TELEMETRY_BUFFER_TTL_SECONDS = 30


class TelemetryBatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    events: List[Dict[str, Any]] = Field(default_factory=list)
    flush: bool = False
    stream: Optional[str] = None
    auth_token: Optional[str] = Field(default=None, alias="authToken")


class TelemetryMetadata(BaseModel):
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    region: Optional[str] = None
    stream: Optional[str] = None
    received_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


@dataclass(frozen=True)
class EnrichedTelemetryEvent:
    fields: Dict[str, Any]
    metadata: TelemetryMetadata

    def as_payload(self) -> Dict[str, Any]:
        return {**self.fields, "metadata": self.metadata.model_dump(exclude_none=True)}


def enrich_events(events: Sequence[Dict[str, Any]], metadata: TelemetryMetadata) -> List[EnrichedTelemetryEvent]:
    return [EnrichedTelemetryEvent(fields=dict(event), metadata=metadata) for event in events]


class IngestStatus(str, Enum):
    NOOP = "noop"
    BUFFERED = "buffered"
    FLUSH = "flush"


@dataclass(frozen=True)
class IngestResult:
    status: IngestStatus
    events: List[EnrichedTelemetryEvent] = field(default_factory=list)


class ClientTelemetryBuffer:
    """Collects events until forced, full, or ``ttl_seconds`` past the last flush."""

    def __init__(
        self,
        *,
        max_events: int = TELEMETRY_BUFFER_MAX_EVENTS,
        ttl_seconds: float = TELEMETRY_BUFFER_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_events = max_events
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._events: List[EnrichedTelemetryEvent] = []
        self._last_flush = clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def ingest(self, new_events: Sequence[EnrichedTelemetryEvent], force_flush: bool = False) -> IngestResult:
        with self._lock:
            has_new = bool(new_events)
            self._events.extend(new_events)

            now = self._clock()
            ttl_elapsed = now - self._last_flush >= self._ttl_seconds
            should_flush = force_flush or len(self._events) >= self._max_events or ttl_elapsed

            if should_flush and self._events:
                flushed = list(self._events)
                self._events.clear()
                self._last_flush = now
                return IngestResult(IngestStatus.FLUSH, flushed)
            if has_new:
                return IngestResult(IngestStatus.BUFFERED)
            return IngestResult(IngestStatus.NOOP)


def _archive_key(now: datetime) -> str:
    return f"{now.strftime('%Y%m%d')}/{uuid4()}.jsonl"


def flush_events(
    events: Sequence[EnrichedTelemetryEvent],
    store: Optional[BlobStore],
    *,
    log_only: bool = True,
) -> Optional[str]:
    """Archive ``events`` as JSONL; returns the blob key written, if any."""
    lines = [json.dumps(event.as_payload(), default=str) for event in events]
    now = datetime.now(timezone.utc)
    logger.info(
        "Telemetry flush (%s events) at %s: %s",
        len(lines),
        now.isoformat(),
        "[" + ",".join(lines) + "]" if log_only else "[see bucket]",
    )
    if log_only:
        return None
    if store is None:
        logger.warning("Telemetry bucket not configured, cannot persist events")
        return None

    key = _archive_key(now)
    store.put(key, "\n".join(lines).encode("utf-8"))
    logger.info("Telemetry written to bucket: %s", key)
    return key


__all__ = [
    "ClientTelemetryBuffer",
    "EnrichedTelemetryEvent",
    "IngestResult",
    "IngestStatus",
    "TelemetryBatch",
    "TelemetryMetadata",
    "enrich_events",
    "flush_events",
]
