"""Month schedule and config document endpoints consumed by the calendar front end."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from .config import Settings, get_settings
from .errors import MissingParameter, ScheduleServiceError
from .schedule_service import ScheduleService
from .services import get_config_resolver, get_schedule_service
from .shift_config import ConfigKind, ConfigResolver

router = APIRouter(prefix="/api", tags=["schedule"])
logger = logging.getLogger(__name__)


@router.get("/shifts")
def get_month_shifts(
    ym: Optional[str] = Query(default=None),
    service: ScheduleService = Depends(get_schedule_service),
) -> Response:
    if ym is None:
        raise MissingParameter("Missing required parameter: ym")
    payload = service.get_month_payload(ym)
    return Response(
        content=payload.json,
        media_type="application/json",
        headers={
            "Cache-Control": f"public, max-age={max(service.cache_ttl_seconds, 1)}",
            "Vary": "Origin",
            "X-Cache-Status": payload.cache_status,
        },
    )


@router.get("/config/{name}")
def get_config_document(
    name: str,
    resolver: ConfigResolver = Depends(get_config_resolver),
    settings: Settings = Depends(get_settings),
) -> Response:
    kind = ConfigKind.from_name(name)
    try:
        document = resolver.fetch_document(kind)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Error fetching config %s", kind.value)
        raise ScheduleServiceError(f"Failed to fetch config: {exc}", code="CONFIG_FETCH_ERROR") from exc
    return Response(
        content=document,
        media_type="application/json",
        headers={"Cache-Control": f"public, max-age={settings.config_cache_ttl_seconds}"},
    )
