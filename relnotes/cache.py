"""In-memory TTL cache for slow-changing lookups (e.g. the Linear project list).

Entries expire after a fixed TTL and are evicted when read past expiry.
Safe to share between request threads.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Tuple

_MISSING = object()


def cache_key(scope: str, **params: Any) -> Tuple[Hashable, ...]:
    """Key of the form (caller scope, sorted filter params)."""
    return (scope, tuple(sorted((k, repr(v)) for k, v in params.items())))


@dataclass
class _Entry:
    value: Any
    expires_at: float


class TTLCache:
    """
    Bounded TTL cache.

    Args:
        ttl_s: Lifetime of each entry in seconds.
        max_entries: Oldest entries are dropped once this many are stored.
        clock: Monotonic time source; inject a fake one in tests.
    """

    def __init__(self, ttl_s: float = 600.0, *, max_entries: int = 256,
                 clock: Callable[[], float] = time.monotonic):
        if ttl_s <= 0:
            raise ValueError("ttl_s must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_s = ttl_s
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[Hashable, _Entry]" = OrderedDict()
        self._loading: Dict[Hashable, threading.Lock] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _get_locked(self, key: Hashable) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return _MISSING
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return _MISSING
        return entry.value

    def _set_locked(self, key: Hashable, value: Any) -> None:
        now = self._clock()
        self._entries.pop(key, None)
        self._entries[key] = _Entry(value=value, expires_at=now + self.ttl_s)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            value = self._get_locked(key)
        return default if value is _MISSING else value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._set_locked(key, value)

    def get_or_set(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        """
        Return the cached value, or call `loader` and store its result.

        Concurrent callers for the same cold key wait on a per-key lock and the
        loader runs once. The cache-wide lock is not held while loading, so
        other keys stay readable. Loader exceptions propagate and nothing is
        stored.
        """
        with self._lock:
            value = self._get_locked(key)
            if value is not _MISSING:
                return value
            key_lock = self._loading.setdefault(key, threading.Lock())

        with key_lock:
            with self._lock:
                value = self._get_locked(key)
            if value is not _MISSING:
                return value
            try:
                value = loader()
                with self._lock:
                    self._set_locked(key, value)
            finally:
                with self._lock:
                    if self._loading.get(key) is key_lock:
                        del self._loading[key]
            return value

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
