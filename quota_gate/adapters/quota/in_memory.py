"""In-memory quota store (single process, tests and local development)."""

from __future__ import annotations

import threading
from typing import Any

from quota_gate.adapters.quota.base import AbstractQuotaStore, parse_stored_limit, validate_limit


class InMemoryQuotaStore(AbstractQuotaStore):
    """Quota store keeping raw values in a dict guarded by a lock."""

    def __init__(self, *, namespace: str = "user-limit") -> None:
        super().__init__(namespace=namespace)
        self._lock = threading.RLock()
        self._values: dict[str, Any] = {}

    async def get(self, endpoint: str, identity: str) -> int | None:
        with self._lock:
            raw = self._values.get(self._key(endpoint, identity))
        return parse_stored_limit(raw, endpoint=endpoint, identity=identity)

    async def set(self, endpoint: str, identity: str, limit: int) -> None:
        limit = validate_limit(limit, endpoint=endpoint)
        with self._lock:
            self._values[self._key(endpoint, identity)] = str(limit)

    async def ping(self) -> None:
        return None
