"""In-memory TTL response cache injected in front of upstream calls."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol


class ResponseCache(Protocol):
    """Capability the gateways need from a cache."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl_seconds: float) -> None: ...


@dataclass(slots=True)
class _CacheEntry:
    value: Any
    expires_at: float


class TTLCache:
    """Process-wide key/value store with per-entry expiry.

    Expired entries are evicted lazily when read; there is no background sweep.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0.")
        with self._lock:
            self._entries[key] = _CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def make_key(*parts: str | int | float | None) -> str:
    """Join non-empty request parameters into a cache key."""
    return ":".join(str(part) for part in parts if part is not None and part != "")
