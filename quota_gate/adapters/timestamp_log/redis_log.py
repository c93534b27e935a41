"""Redis-backed timestamp log.

Each request key maps to a Redis list holding epoch-millisecond strings.
``LPUSH`` puts new entries at the head, so ``LRANGE key 0 -1`` returns them
newest-first. Stale entries normally sit at the tail and are removed with an
``LTRIM`` that only ever shortens the tail. Pruning runs under ``WATCH`` so a
concurrent ``LPUSH`` is never lost.
"""

from __future__ import annotations

import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from quota_gate.adapters.timestamp_log.base import AbstractTimestampLog
from quota_gate.core.errors import StorageAppError

logger = logging.getLogger(__name__)


def _storage_error(operation: str, exc: Exception) -> StorageAppError:
    return StorageAppError(
        code="storage_unavailable",
        message="Rate limit storage is unavailable",
        details={
            "backend": "redis",
            "operation": operation,
            "context": {"error_type": type(exc).__name__},
        },
    )


def _count_stale_tail(entries: list[int], window_start_ms: int) -> int:
    """Number of consecutive stale entries at the tail of a newest-first list."""
    stale = 0
    for ts in reversed(entries):
        if ts >= window_start_ms:
            break
        stale += 1
    return stale


class RedisTimestampLog(AbstractTimestampLog):
    """Timestamp log stored in Redis lists.

    The client must be created with ``decode_responses=True``.
    """

    def __init__(self, redis: Redis) -> None:
        self._redis = redis

    async def append(self, key: str, timestamp_ms: int) -> None:
        if not key:
            raise ValueError("key must be a non-empty string")
        try:
            await self._redis.lpush(key, str(int(timestamp_ms)))
        except RedisError as exc:
            raise _storage_error("append", exc) from exc

    async def read_all(self, key: str) -> list[int]:
        try:
            raw = await self._redis.lrange(key, 0, -1)
        except RedisError as exc:
            raise _storage_error("read_all", exc) from exc
        return [int(value) for value in raw]

    async def prune(self, key: str, window_start_ms: int) -> None:
        """Trim stale entries from the tail inside a WATCH transaction.

        If another client modifies the key between the read and the trim,
        the transaction aborts and the prune is skipped; the next request
        for the key will prune instead. Redis deletes the key itself when
        the trim leaves the list empty.

        A contiguous stale run at the tail is cut with ``LTRIM``. Stale entries
        that appends from skewed clocks left between newer ones are removed
        by value with ``LREM``; every copy of a stale value is stale itself.
        """
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                await pipe.watch(key)
                raw = await pipe.lrange(key, 0, -1)
                entries = [int(v) for v in raw]
                stale_values = {v for v, ts in zip(raw, entries) if ts < window_start_ms}
                if not stale_values:
                    await pipe.unwatch()
                    return
                tail = _count_stale_tail(entries, window_start_ms)
                pipe.multi()
                if tail == sum(1 for ts in entries if ts < window_start_ms):
                    pipe.ltrim(key, 0, -(tail + 1))
                else:
                    for value in stale_values:
                        pipe.lrem(key, 0, value)
                await pipe.execute()
        except WatchError:
            logger.debug("timestamp_log.prune_skipped", extra={"reason": "concurrent_write"})
        except RedisError as exc:
            raise _storage_error("prune", exc) from exc

    async def count(self, key: str, window_start_ms: int) -> int:
        entries = await self.read_all(key)
        return sum(1 for ts in entries if ts >= window_start_ms)

    async def ping(self) -> None:
        try:
            await self._redis.ping()
        except RedisError as exc:
            raise _storage_error("ping", exc) from exc
