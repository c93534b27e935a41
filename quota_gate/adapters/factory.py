"""Factory for the storage backends used by the rate limiter."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from redis.asyncio import Redis
from redis.exceptions import RedisError

from quota_gate.adapters.quota import AbstractQuotaStore, InMemoryQuotaStore, RedisQuotaStore
from quota_gate.adapters.timestamp_log import (
    AbstractTimestampLog,
    InMemoryTimestampLog,
    RedisTimestampLog,
)
from quota_gate.core.config import Settings, settings
from quota_gate.core.errors import StorageAppError, ValidationAppError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageBundle:
    """Timestamp log and quota store sharing one backend connection."""

    backend: str
    log: AbstractTimestampLog
    quotas: AbstractQuotaStore

    async def ping(self) -> None:
        await self.log.ping()
        await self.quotas.ping()


def _build_redis_client(redis_url: str, timeout_seconds: float) -> Redis:
    return Redis.from_url(
        redis_url,
        decode_responses=True,
        socket_timeout=timeout_seconds,
        socket_connect_timeout=timeout_seconds,
    )


@asynccontextmanager
async def open_storage(cfg: Settings | None = None) -> AsyncIterator[StorageBundle]:
    """Open the configured storage backend for the lifetime of the context.

    Validates backend-specific requirements, connects (Redis is pinged so a
    bad URL fails startup instead of the first request) and closes the
    connection on exit.

    Args:
        cfg: Settings to use; defaults to the global settings.

    Yields:
        StorageBundle: Ready-to-use log and quota store.

    Raises:
        ValidationAppError: If backend-specific requirements are not met.
        StorageAppError: If Redis cannot be reached at startup.
    """
    cfg = cfg or settings
    backend = cfg.storage.backend.lower()
    quota_ns = cfg.app.quota_namespace

    if backend == "memory":
        logger.info("storage.opened", extra={"backend": backend})
        yield StorageBundle(
            backend=backend,
            log=InMemoryTimestampLog(),
            quotas=InMemoryQuotaStore(namespace=quota_ns),
        )
        return

    if backend == "redis":
        if not cfg.storage.redis_url:
            raise ValidationAppError(
                code="storage_missing_redis_url",
                message="Redis backend requires STORAGE_REDIS_URL environment variable",
            )
        client = _build_redis_client(
            cfg.storage.redis_url, cfg.storage.redis_socket_timeout_seconds
        )
        try:
            try:
                await client.ping()
            except RedisError as exc:
                logger.error(
                    "storage.connect_failed",
                    extra={"backend": backend, "error_type": type(exc).__name__},
                )
                raise StorageAppError(
                    code="storage_unavailable",
                    message="Could not connect to Redis",
                    details={"backend": backend, "operation": "connect"},
                ) from exc
            logger.info("storage.connected", extra={"backend": backend})
            yield StorageBundle(
                backend=backend,
                log=RedisTimestampLog(client),
                quotas=RedisQuotaStore(client, namespace=quota_ns),
            )
        finally:
            await client.aclose()
            logger.info("storage.closed", extra={"backend": backend})
        return

    raise ValidationAppError(
        code="storage_unknown_backend",
        message=f"Unknown storage backend: '{backend}'. Supported backends: memory, redis",
    )
