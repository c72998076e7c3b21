"""
In-process caches for slow-changing reference data.

Case types and required documents change only when an admin edits them, and
the people pickers are read on every case form, so both are kept in memory
for a short while. User management clears the directory cache on writes.

Usage:
    from expertclaims_api.utils.cache import lookup_cache

    types = lookup_cache.get_or_load("case_types", load_case_types)
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any, NamedTuple, TypeVar

T = TypeVar("T")


class _Entry(NamedTuple):
    value: Any
    expires_at: float


class TTLCache:
    """Keyed values that expire ``ttl`` seconds after they were stored."""

    def __init__(self, name: str, ttl: float) -> None:
        self.name = name
        self.ttl = ttl
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at < time.monotonic():
                self._entries.pop(key, None)
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        lifetime = self.ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = _Entry(value, time.monotonic() + lifetime)

    def get_or_load(self, key: str, loader: Callable[[], T]) -> T:
        """Return the cached value, calling ``loader`` on a miss. The loader runs outside the lock."""
        value = self.get(key)
        if value is None:
            value = loader()
            self.set(key, value)
        return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


lookup_cache = TTLCache("lookups", ttl=15 * 60)
directory_cache = TTLCache("directory", ttl=2 * 60)
