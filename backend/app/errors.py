"""Error taxonomy shared by the schedule pipeline and its HTTP surface."""

from __future__ import annotations

from typing import Dict, Optional

from fastapi import status


class ScheduleServiceError(RuntimeError):
    """Base error carrying a machine-readable code and the HTTP status to surface."""

    code: str = "INTERNAL_ERROR"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def as_payload(self) -> Dict[str, Dict[str, str]]:
        return {"error": {"code": self.code, "message": self.message}}


class ConfigError(ScheduleServiceError):
    """Raised when required environment configuration is missing."""

    code = "CONFIG_ERROR"


class MissingParameter(ScheduleServiceError):
    code = "MISSING_PARAM"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidRequest(ScheduleServiceError):
    code = "INVALID_REQUEST"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidParameter(ScheduleServiceError):
    code = "INVALID_YM"
    status_code = status.HTTP_400_BAD_REQUEST


class UpstreamError(ScheduleServiceError):
    """Raised for non-2xx upstream responses or transport failures after retries."""

    code = "UPSTREAM_ERROR"
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, *, upstream_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class UpstreamTimeout(UpstreamError):
    code = "UPSTREAM_TIMEOUT"
    status_code = status.HTTP_504_GATEWAY_TIMEOUT

    def __init__(self, message: str = "Upstream request timed out") -> None:
        super().__init__(message)


class ParseError(ScheduleServiceError):
    code = "PARSE_ERROR"


class AccessDenied(ScheduleServiceError):
    code = "UNAUTHORIZED"
    status_code = status.HTTP_401_UNAUTHORIZED


__all__ = [
    "AccessDenied",
    "ConfigError",
    "InvalidParameter",
    "InvalidRequest",
    "MissingParameter",
    "ParseError",
    "ScheduleServiceError",
    "UpstreamError",
    "UpstreamTimeout",
]
