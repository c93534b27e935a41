"""Redis-backed quota store (plain string keys)."""

from __future__ import annotations

from redis.asyncio import Redis
from redis.exceptions import RedisError

from quota_gate.adapters.quota.base import AbstractQuotaStore, parse_stored_limit, validate_limit
from quota_gate.core.errors import StorageAppError


class RedisQuotaStore(AbstractQuotaStore):
    """Quota store reading and writing ``<namespace>-<endpoint>-<identity>`` strings."""

    def __init__(self, redis: Redis, *, namespace: str = "user-limit") -> None:
        super().__init__(namespace=namespace)
        self._redis = redis

    def _error(self, operation: str, exc: RedisError) -> StorageAppError:
        return StorageAppError(
            code="storage_unavailable",
            message="Quota storage is unavailable",
            details={
                "backend": "redis",
                "operation": operation,
                "context": {"error_type": type(exc).__name__},
            },
        )

    async def get(self, endpoint: str, identity: str) -> int | None:
        try:
            raw = await self._redis.get(self._key(endpoint, identity))
        except RedisError as exc:
            raise self._error("quota_get", exc) from exc
        return parse_stored_limit(raw, endpoint=endpoint, identity=identity)

    async def set(self, endpoint: str, identity: str, limit: int) -> None:
        limit = validate_limit(limit, endpoint=endpoint)
        try:
            await self._redis.set(self._key(endpoint, identity), str(limit))
        except RedisError as exc:
            raise self._error("quota_set", exc) from exc

    async def ping(self) -> None:
        try:
            await self._redis.ping()
        except RedisError as exc:
            raise self._error("ping", exc) from exc
