"""Reader/writer lock guarding the process-wide caches."""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional


class LockTimeout(RuntimeError):
    """Raised when a cache lock cannot be acquired within its timeout."""


class ReadWriteLock:
    """Many concurrent readers or a single writer; no upgrade from read to write."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    def _wait_until(self, ready, timeout: Optional[float]) -> bool:
        if timeout is None:
            self._cond.wait_for(ready)
            return True
        deadline = time.monotonic() + timeout
        while not ready():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            self._cond.wait(remaining)
        return True

    def acquire_read(self, timeout: Optional[float] = None) -> None:
        with self._cond:
            if not self._wait_until(lambda: not self._writer, timeout):
                raise LockTimeout("Timed out waiting for cache read lock.")
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self, timeout: Optional[float] = None) -> None:
        with self._cond:
            if not self._wait_until(lambda: not self._writer and self._readers == 0, timeout):
                raise LockTimeout("Timed out waiting for cache write lock.")
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self, timeout: Optional[float] = None) -> Iterator[None]:
        self.acquire_read(timeout)
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self, timeout: Optional[float] = None) -> Iterator[None]:
        self.acquire_write(timeout)
        try:
            yield
        finally:
            self.release_write()


__all__ = ["LockTimeout", "ReadWriteLock"]
