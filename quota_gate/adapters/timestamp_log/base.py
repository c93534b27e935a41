"""Timestamp log interfaces.

The decision service depends on this abstraction (not the concrete
implementation) so the storage backend can be swapped (memory, Redis)
without touching the evaluation logic.

Ordering contract:
    Every implementation keeps each key's sequence NEWEST-FIRST. ``append``
    inserts at the head, ``read_all`` returns entries head-to-tail (newest to
    oldest), and stale entries therefore accumulate at the tail, which is the
    end ``prune`` trims. The retry-delay evaluator's short-circuit and
    boundary scan rely on this order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

NEWEST_FIRST = "newest_first"


class AbstractTimestampLog(ABC):
    """Interface for per-key, time-ordered request logs.

    Timestamps are integer epoch milliseconds. Operations on one key never
    observe or affect another key.
    """

    ORDERING: ClassVar[str] = NEWEST_FIRST

    @abstractmethod
    async def append(self, key: str, timestamp_ms: int) -> None:
        """Insert a timestamp at the head of the key's sequence.

        Duplicate timestamps (same-millisecond bursts) are legal.

        Args:
            key: Request key (namespace, endpoint and identity).
            timestamp_ms: Epoch milliseconds of the request.
        """
        raise NotImplementedError

    @abstractmethod
    async def read_all(self, key: str) -> list[int]:
        """Return the full sequence, newest first ([] for unknown keys)."""
        raise NotImplementedError

    @abstractmethod
    async def prune(self, key: str, window_start_ms: int) -> None:
        """Remove every entry strictly older than ``window_start_ms``.

        Deletes the key when the sequence becomes empty. Idempotent, and
        never removes an entry appended concurrently.
        """
        raise NotImplementedError

    @abstractmethod
    async def count(self, key: str, window_start_ms: int) -> int:
        """Count entries ``>= window_start_ms`` without mutating state."""
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> None:
        """Check backend liveness; raise StorageAppError when unavailable."""
        raise NotImplementedError
