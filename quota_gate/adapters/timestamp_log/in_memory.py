"""In-memory timestamp log.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import threading
from collections import deque

from quota_gate.adapters.timestamp_log.base import AbstractTimestampLog


class InMemoryTimestampLog(AbstractTimestampLog):
    """Timestamp log backed by one deque per key.

    New entries go to the left end (head), so iterating a deque yields the
    newest-first order the interface promises. Pruning pops from the right
    end (tail), where the oldest entries live.

    Important:
        This store is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker keeps its own
        independent history. Use the Redis backend for shared limits.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entries_by_key: dict[str, deque[int]] = {}

    async def append(self, key: str, timestamp_ms: int) -> None:
        if not key:
            raise ValueError("key must be a non-empty string")

        with self._lock:
            entries = self._entries_by_key.get(key)
            if entries is None:
                entries = deque()
                self._entries_by_key[key] = entries
            entries.appendleft(int(timestamp_ms))

    async def read_all(self, key: str) -> list[int]:
        with self._lock:
            return list(self._entries_by_key.get(key, ()))

    async def prune(self, key: str, window_start_ms: int) -> None:
        """Drop stale entries, keeping the survivors' order."""
        with self._lock:
            entries = self._entries_by_key.get(key)
            if entries is None:
                return
            kept = deque(ts for ts in entries if ts >= window_start_ms)
            if kept:
                self._entries_by_key[key] = kept
            else:
                del self._entries_by_key[key]

    async def count(self, key: str, window_start_ms: int) -> int:
        with self._lock:
            entries = self._entries_by_key.get(key, ())
            return sum(1 for ts in entries if ts >= window_start_ms)

    async def ping(self) -> None:
        return None

    def keys(self) -> list[str]:
        """Return currently stored keys (diagnostics and tests)."""
        with self._lock:
            return list(self._entries_by_key)
