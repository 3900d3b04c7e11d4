"""Key/value blob storage used for config documents and telemetry archives."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    """Protocol describing a key to bytes object store."""

    def get(self, key: str) -> Optional[bytes]:  # pragma: no cover - protocol definition
        ...

    def put(self, key: str, data: bytes) -> None:  # pragma: no cover - protocol definition
        ...


def _validate_key(key: str) -> str:
    cleaned = key.strip().strip("/")
    if not cleaned:
        raise ValueError("Blob key cannot be empty.")
    parts = cleaned.split("/")
    if any(part in ("", ".", "..") for part in parts):
        raise ValueError(f"Blob key '{key}' is not a valid relative path.")
    return cleaned


class LocalBlobStore:
    """Directory-backed blob store; keys map to relative file paths."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, key: str) -> Path:
        return self._root / _validate_key(key)

    def get(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        if not path.is_file():
            return None
        with path.open("rb") as handle:
            return handle.read()

    def put(self, key: str, data: bytes) -> None:
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f".{path.name}.tmp")
        with tmp_path.open("wb") as handle:
            handle.write(bytes(data))
        tmp_path.replace(path)
        logger.debug("Stored blob %s (%s bytes)", key, len(data))


class MemoryBlobStore:
    """In-process blob store for tests and local development."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None) -> None:
        self._lock = threading.Lock()
        self._blobs: Dict[str, bytes] = {}
        for key, value in (initial or {}).items():
            self._blobs[_validate_key(key)] = bytes(value)

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._blobs.get(_validate_key(key))

    def put(self, key: str, data: bytes) -> None:
        with self._lock:
            self._blobs[_validate_key(key)] = bytes(data)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._blobs)


__all__ = ["BlobStore", "LocalBlobStore", "MemoryBlobStore"]
