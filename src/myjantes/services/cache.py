"""In-process query cache keyed by tuples, with prefix invalidation.

Keys follow the screens' query keys, e.g. ``("admin-invoices",)`` or
``("quote", "42")``. Invalidating ``("quote",)`` drops every quote detail.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from ..errors import ApiError
from ..logging import get_logger

LOG = get_logger("query-cache")

Key = Tuple[Hashable, ...]


@dataclass
class _Entry:
    data: Any
    fetched_at: float


class QueryCache:
    def __init__(self, stale_seconds: float = 60.0, retry: int = 3) -> None:
        self.stale_seconds = stale_seconds
        self.retry = retry
        self._entries: Dict[Key, _Entry] = {}
        self._inflight: Dict[Key, threading.Lock] = {}
        # Bumped by invalidate(); a fetch started before the bump does not store its result
        self._generations: Dict[Key, int] = {}
        self._lock = threading.Lock()

    def _fresh(self, key: Key) -> Optional[_Entry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if time.monotonic() - entry.fetched_at > self.stale_seconds:
            return None
        return entry

    def peek(self, key: Key) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            return entry.data if entry else None

    def fetch(self, key: Key, fn: Callable[[], Any], retry: Optional[int] = None) -> Any:
        """Return fresh cached data for key, else call fn once for all waiters."""
        with self._lock:
            entry = self._fresh(key)
            if entry is not None:
                return entry.data
            key_lock = self._inflight.setdefault(key, threading.Lock())

        with key_lock:
            # Another thread may have filled the entry while we waited.
            with self._lock:
                entry = self._fresh(key)
                if entry is not None:
                    return entry.data
                generation = self._generations.get(key, 0)
            try:
                data = self._call_with_retry(key, fn, self.retry if retry is None else retry)
                with self._lock:
                    if self._generations.get(key, 0) == generation:
                        self._entries[key] = _Entry(data=data, fetched_at=time.monotonic())
                    else:
                        LOG.debug(f"Query {key} was invalidated while in flight; result not cached")
            finally:
                with self._lock:
                    # A later caller may already own a new lock for this key
                    if self._inflight.get(key) is key_lock:
                        del self._inflight[key]
            return data

    def _call_with_retry(self, key: Key, fn: Callable[[], Any], retry: int) -> Any:
        attempt = 0
        while True:
            try:
                return fn()
            except ApiError as e:
                if attempt >= retry:
                    raise
                attempt += 1
                LOG.debug(f"Query {key} failed ({e.message}); retry {attempt}/{retry}")

    def set(self, key: Key, data: Any) -> None:
        with self._lock:
            self._entries[key] = _Entry(data=data, fetched_at=time.monotonic())

    def invalidate(self, prefix: Key) -> int:
        n = len(prefix)
        with self._lock:
            stale = [k for k in self._entries if k[:n] == tuple(prefix)]
            for k in stale:
                del self._entries[k]
            for k in set(self._inflight) | set(self._generations) | set(stale):
                if k[:n] == tuple(prefix):
                    self._generations[k] = self._generations.get(k, 0) + 1
        if stale:
            LOG.debug(f"Invalidated {len(stale)} cached quer(y/ies) under {prefix}")
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            for k in self._inflight:
                self._generations[k] = self._generations.get(k, 0) + 1
