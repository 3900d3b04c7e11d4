"""Password gate endpoints."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, status
from pydantic import BaseModel, ValidationError
from starlette.responses import JSONResponse

from .access import has_access, verify_access_token
from .config import Settings, get_settings
from .errors import ConfigError, InvalidRequest

router = APIRouter(prefix="/api", tags=["access"])
logger = logging.getLogger(__name__)

INVALID_PASSWORD_MESSAGE = "Invalid password. Please try again."


class AccessRequest(BaseModel):
    password: str


class AccessResponse(BaseModel):
    success: bool
    error: Optional[str] = None
    token: Optional[str] = None


@router.post("/access", response_model=AccessResponse, response_model_exclude_none=True)
async def request_access(request: Request, settings: Settings = Depends(get_settings)) -> JSONResponse:
    body = await request.body()
    try:
        payload = AccessRequest.model_validate_json(body)
    except ValidationError as exc:
        raise InvalidRequest("Invalid JSON") from exc

    expected = settings.access_password
    if not expected:
        raise ConfigError("Password not configured")

    if not verify_access_token(payload.password, expected):
        logger.info("Rejected access attempt")
        return JSONResponse(
            AccessResponse(success=False, error=INVALID_PASSWORD_MESSAGE).model_dump(exclude_none=True),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
    return JSONResponse(AccessResponse(success=True, token=expected).model_dump(exclude_none=True))


@router.get("/check-access", response_model=AccessResponse, response_model_exclude_none=True)
def check_access(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    granted = has_access(authorization, request.cookies, settings.access_password)
    return JSONResponse(
        AccessResponse(success=granted).model_dump(exclude_none=True),
        headers={"Cache-Control": "no-store, must-revalidate"},
    )
