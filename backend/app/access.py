"""Shared-secret access checks for the schedule viewer."""

from __future__ import annotations

import hmac
from typing import Mapping, Optional

LEGACY_ACCESS_COOKIE = "schedule_viewer_access"
LEGACY_ACCESS_VALUE = "granted"
BEARER_PREFIX = "Bearer "


def verify_access_token(token: Optional[str], expected: Optional[str]) -> bool:
    if not expected or token is None:
        return False
    return hmac.compare_digest(token.strip().encode("utf-8"), expected.strip().encode("utf-8"))


def has_access(
    authorization: Optional[str],
    cookies: Mapping[str, str],
    expected: Optional[str],
) -> bool:
    """A Bearer header decides on its own; any other request falls back to the legacy cookie."""
    if authorization and authorization.startswith(BEARER_PREFIX):
        return verify_access_token(authorization[len(BEARER_PREFIX):], expected)
    return cookies.get(LEGACY_ACCESS_COOKIE) == LEGACY_ACCESS_VALUE


__all__ = ["has_access", "verify_access_token"]
