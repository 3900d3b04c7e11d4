"""Blob-backed shift configuration documents with a read-through TTL cache."""

from __future__ import annotations

import json
import logging
import time
from enum import Enum
from typing import Union

from pydantic import ValidationError

from .blob_store import BlobStore
from .cache.ttl_cache import Clock, TTLCache
from .errors import InvalidParameter
from .shift_display import RawShiftDisplayConfig, ShiftDisplayConfig, ShiftStylingConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_CACHE_TTL_SECONDS = 300
EMPTY_DOCUMENT = "{}"


class ConfigKind(str, Enum):
    DISPLAY = "shift-display"
    STYLING = "shift-styling"

    @property
    def blob_key(self) -> str:
        return f"{self.value}.config.json"

    @classmethod
    def from_name(cls, name: str) -> "ConfigKind":
        try:
            return cls(name.strip())
        except ValueError as exc:
            raise InvalidParameter("Invalid config name", code="INVALID_CONFIG") from exc


class ConfigResolver:
    """Loads the display and styling documents, falling back to defaults on bad content."""

    def __init__(
        self,
        store: BlobStore,
        *,
        ttl_seconds: float = DEFAULT_CONFIG_CACHE_TTL_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        self._store = store
        self._cache: TTLCache[str] = TTLCache(ttl_seconds, name="config cache", clock=clock)

    @property
    def cache(self) -> TTLCache[str]:
        return self._cache

    def fetch_document(self, kind: ConfigKind) -> str:
        """Return the JSON text for ``kind``; absent documents read as ``{}``.

        Raises ValueError when the stored document is not valid JSON and
        propagates blob store failures.
        """
        key = kind.blob_key
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        logger.debug("Fetching config document %s from blob store", key)
        blob = self._store.get(key)
        if blob is None:
            logger.info("Config %s not found, using empty default", key)
            return EMPTY_DOCUMENT

        try:
            text = blob.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError(f"Invalid UTF-8 in config {key}: {exc}") from exc
        try:
            json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in config {key}: {exc}") from exc

        self._cache.put(key, text)
        return text

    def get_raw(self, name: str) -> str:
        return self.fetch_document(ConfigKind.from_name(name))

    def get(self, kind: ConfigKind) -> Union[ShiftDisplayConfig, ShiftStylingConfig]:
        if kind is ConfigKind.DISPLAY:
            return self.display_config()
        return self.styling_config()

    def display_config(self) -> ShiftDisplayConfig:
        raw = self._load(ConfigKind.DISPLAY, RawShiftDisplayConfig)
        return ShiftDisplayConfig.from_raw(raw or RawShiftDisplayConfig())

    def styling_config(self) -> ShiftStylingConfig:
        return self._load(ConfigKind.STYLING, ShiftStylingConfig) or ShiftStylingConfig()

    def _load(self, kind: ConfigKind, model):  # type: ignore[no-untyped-def]
        try:
            text = self.fetch_document(kind)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to fetch %s config, using defaults", kind.value)
            return None
        try:
            return model.model_validate_json(text)
        except ValidationError as exc:
            logger.warning("Failed to parse %s config: %s; using defaults", kind.value, exc)
            return None

    def clear(self) -> None:
        self._cache.clear()


__all__ = [
    "ConfigKind",
    "ConfigResolver",
    "DEFAULT_CONFIG_CACHE_TTL_SECONDS",
    "EMPTY_DOCUMENT",
]
