"""Client telemetry ingestion endpoint."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import ValidationError

from .access import has_access, verify_access_token
from .blob_store import BlobStore
from .config import Settings, get_settings
from .errors import AccessDenied, InvalidRequest
from .services import get_telemetry_buffer, get_telemetry_store
from .telemetry_pipeline import (
    ClientTelemetryBuffer,
    IngestStatus,
    TelemetryBatch,
    TelemetryMetadata,
    enrich_events,
    flush_events,
)

router = APIRouter(prefix="/api", tags=["telemetry"])
logger = logging.getLogger(__name__)


def _header(request: Request, name: str) -> Optional[str]:
    value = request.headers.get(name)
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def _client_ip(request: Request) -> Optional[str]:
    forwarded = _header(request, "CF-Connecting-IP") or _header(request, "X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


@router.post("/telemetry")
async def ingest_telemetry(
    request: Request,
    settings: Settings = Depends(get_settings),
    buffer: ClientTelemetryBuffer = Depends(get_telemetry_buffer),
    store: Optional[BlobStore] = Depends(get_telemetry_store),
) -> Response:
    body = await request.body()
    try:
        batch = TelemetryBatch.model_validate_json(body)
    except ValidationError as exc:
        logger.info("Failed to parse telemetry batch: %s", exc)
        raise InvalidRequest("Invalid JSON") from exc

    # sendBeacon cannot set headers, so the token may travel in the body.
    authorized = has_access(
        request.headers.get("Authorization"),
        request.cookies,
        settings.access_password,
    ) or verify_access_token(batch.auth_token, settings.access_password)
    if not authorized:
        raise AccessDenied("Missing or invalid access token")

    metadata = TelemetryMetadata(
        user_agent=_header(request, "User-Agent"),
        ip_address=_client_ip(request),
        region=_header(request, "X-Client-Region"),
        stream=batch.stream,
    )
    result = buffer.ingest(enrich_events(batch.events, metadata), force_flush=batch.flush)

    if result.status is IngestStatus.FLUSH:
        try:
            flush_events(result.events, store, log_only=settings.telemetry_log_only)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to archive %s telemetry events", len(result.events))

    if result.status is IngestStatus.NOOP:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return Response(status_code=status.HTTP_202_ACCEPTED)
