"""Upstream schedule API client: bounded retries, per-attempt deadlines, payload parsing."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Mapping, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ParseError, UpstreamError, UpstreamTimeout

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 2
SCHEDULE_PATH = "/public/schedule"
SCHEDULE_VERSION = "live"


class UpstreamShiftDetails(BaseModel):
    name: str
    alias: str
    color: Optional[str] = None


class UpstreamUser(BaseModel):
    id: Optional[int] = Field(default=None, ge=0)
    fname: Optional[str] = None
    lname: Optional[str] = None
    mname: Optional[str] = None


class UpstreamShift(BaseModel):
    start_time: str
    end_time: str
    shift: UpstreamShiftDetails
    user: UpstreamUser


class UpstreamSchedulePayload(BaseModel):
    data: List[UpstreamShift]


class RawShift(BaseModel):
    """One upstream shift reduced to the fields the month grid needs."""

    model_config = ConfigDict(frozen=True)

    start_time: str
    alias: str
    user_id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @classmethod
    def from_upstream(cls, shift: UpstreamShift) -> "RawShift":
        return cls(
            start_time=shift.start_time,
            alias=shift.shift.alias,
            user_id=shift.user.id,
            first_name=shift.user.fname,
            last_name=shift.user.lname,
        )


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass(frozen=True)
class AttemptResult:
    outcome: AttemptOutcome
    body: Optional[str] = None
    error: Optional[UpstreamError] = None
    cause: Optional[BaseException] = None

    @classmethod
    def success(cls, body: str) -> "AttemptResult":
        return cls(AttemptOutcome.SUCCESS, body=body)

    @classmethod
    def retryable(cls, error: UpstreamError, cause: Optional[BaseException] = None) -> "AttemptResult":
        return cls(AttemptOutcome.RETRYABLE, error=error, cause=cause)

    @classmethod
    def fatal(cls, error: UpstreamError, cause: Optional[BaseException] = None) -> "AttemptResult":
        return cls(AttemptOutcome.FATAL, error=error, cause=cause)


def redact_url(url: str) -> str:
    """Strip the query string so API tokens never reach the logs."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def build_schedule_url(base_url: str, token: str, start_date: str, end_date: str) -> str:
    query = urlencode(
        {
            "token": token,
            "startDate": start_date,
            "endDate": end_date,
            "scheduleVersion": SCHEDULE_VERSION,
        }
    )
    return f"{base_url.rstrip('/')}{SCHEDULE_PATH}?{query}"


def _classify_status(status_code: int) -> AttemptResult:
    error = UpstreamError(f"Upstream returned status {status_code}", upstream_status=status_code)
    if status_code >= 500:
        return AttemptResult.retryable(error)
    return AttemptResult.fatal(error)


def _attempt(
    client: httpx.Client,
    url: str,
    timeout_seconds: float,
    headers: Optional[Mapping[str, str]],
) -> AttemptResult:
    deadline = time.monotonic() + timeout_seconds
    try:
        # httpx bounds each phase separately; the deadline bounds the attempt as a whole.
        with client.stream(
            "GET",
            url,
            headers=dict(headers or {}),
            timeout=httpx.Timeout(timeout_seconds),
        ) as response:
            if time.monotonic() > deadline:
                return AttemptResult.retryable(UpstreamTimeout())
            if not 200 <= response.status_code < 300:
                return _classify_status(response.status_code)
            chunks: List[bytes] = []
            for chunk in response.iter_bytes():
                chunks.append(chunk)
                if time.monotonic() > deadline:
                    # Leaving the context closes the in-flight response.
                    return AttemptResult.retryable(UpstreamTimeout())
            if time.monotonic() > deadline:
                return AttemptResult.retryable(UpstreamTimeout())
            encoding = response.encoding or "utf-8"
    except httpx.TimeoutException as exc:
        return AttemptResult.retryable(UpstreamTimeout(), cause=exc)
    except httpx.TransportError as exc:
        return AttemptResult.retryable(UpstreamError(f"Upstream request failed: {exc}"), cause=exc)
    try:
        return AttemptResult.success(b"".join(chunks).decode(encoding))
    except (LookupError, UnicodeDecodeError) as exc:
        raise ParseError(f"Failed to decode upstream response as {encoding}") from exc


def fetch_with_retry(
    url: str,
    timeout_seconds: float,
    max_retries: int = DEFAULT_MAX_RETRIES,
    headers: Optional[Mapping[str, str]] = None,
    *,
    client: Optional[httpx.Client] = None,
) -> str:
    """GET ``url`` and return the body text.

    Retries immediately on 5xx, transport errors and timeouts while the budget
    lasts (``max_retries + 1`` attempts in total); any other non-2xx status
    fails on the first attempt. Exhausted timeouts raise UpstreamTimeout,
    everything else UpstreamError. A body that cannot be decoded raises
    ParseError without retrying.
    """
    local_client = client or httpx.Client()
    close_client = client is None
    retries = 0
    try:
        while True:
            result = _attempt(local_client, url, timeout_seconds, headers)
            if result.outcome is AttemptOutcome.SUCCESS:
                assert result.body is not None
                return result.body
            assert result.error is not None
            if result.outcome is AttemptOutcome.RETRYABLE and retries < max_retries:
                retries += 1
                logger.warning(
                    "Upstream attempt failed for %s (%s); retry %s of %s",
                    redact_url(url),
                    result.error.message,
                    retries,
                    max_retries,
                )
                continue
            raise result.error from result.cause
    finally:
        if close_client:
            local_client.close()


def parse_upstream_payload(text: str) -> List[RawShift]:
    try:
        payload = UpstreamSchedulePayload.model_validate_json(text)
    except ValidationError as exc:
        raise ParseError(f"Failed to parse upstream response: {exc}") from exc
    return [RawShift.from_upstream(shift) for shift in payload.data]


__all__ = [
    "AttemptOutcome",
    "AttemptResult",
    "DEFAULT_MAX_RETRIES",
    "RawShift",
    "UpstreamSchedulePayload",
    "UpstreamShift",
    "build_schedule_url",
    "fetch_with_retry",
    "parse_upstream_payload",
    "redact_url",
]
