"""Unit tests for timestamp log adapters (in-memory and Redis)."""

import asyncio
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError

from quota_gate.adapters.timestamp_log import (
    NEWEST_FIRST,
    InMemoryTimestampLog,
    RedisTimestampLog,
)
from quota_gate.core.errors import StorageAppError

T0 = 1_700_000_000_000
KEY = "user-request-/api/simulate-tok"


@pytest_asyncio.fixture(params=["memory", "redis"])
async def log(request, fake_redis):
    if request.param == "memory":
        return InMemoryTimestampLog()
    return RedisTimestampLog(fake_redis)


@pytest.mark.asyncio
async def test_read_unknown_key_returns_empty(log) -> None:
    assert await log.read_all("missing") == []
    assert await log.count("missing", T0) == 0


@pytest.mark.asyncio
async def test_sequence_is_newest_first(log) -> None:
    for offset in (0, 10, 20):
        await log.append(KEY, T0 + offset)

    assert log.ORDERING == NEWEST_FIRST
    assert await log.read_all(KEY) == [T0 + 20, T0 + 10, T0]


@pytest.mark.asyncio
async def test_duplicate_timestamps_are_kept(log) -> None:
    await log.append(KEY, T0)
    await log.append(KEY, T0)

    assert await log.read_all(KEY) == [T0, T0]


@pytest.mark.asyncio
async def test_prune_removes_only_entries_older_than_window_start(log) -> None:
    for offset in (0, 10, 20, 30):
        await log.append(KEY, T0 + offset)

    await log.prune(KEY, T0 + 10)

    assert await log.read_all(KEY) == [T0 + 30, T0 + 20, T0 + 10]


@pytest.mark.asyncio
async def test_prune_removes_stale_entries_between_newer_ones(log) -> None:
    # Appends from a lagging clock can leave a stale entry ahead of a newer one.
    await log.append(KEY, T0 + 30)
    await log.append(KEY, T0)
    await log.append(KEY, T0 + 40)

    await log.prune(KEY, T0 + 10)

    assert await log.read_all(KEY) == [T0 + 40, T0 + 30]


@pytest.mark.asyncio
async def test_concurrent_appends_and_prunes_lose_no_entries(log) -> None:
    async def record(ts: int) -> None:
        await log.append(KEY, ts)
        await log.prune(KEY, T0)

    await asyncio.gather(*(record(T0 + i) for i in range(50)))

    entries = await log.read_all(KEY)
    assert len(entries) == 50
    assert sorted(entries) == [T0 + i for i in range(50)]


@pytest.mark.asyncio
async def test_prune_is_idempotent(log) -> None:
    for offset in (0, 10, 20):
        await log.append(KEY, T0 + offset)

    await log.prune(KEY, T0 + 15)
    once = await log.read_all(KEY)
    await log.prune(KEY, T0 + 15)

    assert await log.read_all(KEY) == once == [T0 + 20]


@pytest.mark.asyncio
async def test_prune_deletes_key_when_everything_is_stale(log) -> None:
    await log.append(KEY, T0)
    await log.append(KEY, T0 + 1)

    await log.prune(KEY, T0 + 100)

    assert await log.read_all(KEY) == []


@pytest.mark.asyncio
async def test_prune_unknown_key_is_noop(log) -> None:
    await log.prune("missing", T0)
    assert await log.read_all("missing") == []


@pytest.mark.asyncio
async def test_count_includes_window_start_and_does_not_mutate(log) -> None:
    for offset in (0, 10, 20):
        await log.append(KEY, T0 + offset)

    assert await log.count(KEY, T0 + 10) == 2
    assert await log.read_all(KEY) == [T0 + 20, T0 + 10, T0]


@pytest.mark.asyncio
async def test_keys_are_isolated(log) -> None:
    await log.append("k1", T0)
    await log.append("k2", T0 + 1)

    await log.prune("k1", T0 + 10)

    assert await log.read_all("k1") == []
    assert await log.read_all("k2") == [T0 + 1]


@pytest.mark.asyncio
async def test_append_rejects_empty_key(log) -> None:
    with pytest.raises(ValueError):
        await log.append("", T0)


@pytest.mark.asyncio
async def test_in_memory_drops_empty_keys() -> None:
    log = InMemoryTimestampLog()
    await log.append("k", T0)

    await log.prune("k", T0 + 1)

    assert log.keys() == []


@pytest.mark.asyncio
async def test_redis_prune_trims_tail_only(fake_redis) -> None:
    log = RedisTimestampLog(fake_redis)
    for offset in (0, 10, 20):
        await log.append(KEY, T0 + offset)

    await log.prune(KEY, T0 + 5)

    assert await fake_redis.lrange(KEY, 0, -1) == [str(T0 + 20), str(T0 + 10)]


@pytest.mark.asyncio
async def test_redis_prune_deleted_key_does_not_exist(fake_redis) -> None:
    log = RedisTimestampLog(fake_redis)
    await log.append(KEY, T0)

    await log.prune(KEY, T0 + 1)

    assert await fake_redis.exists(KEY) == 0


@pytest.mark.asyncio
async def test_redis_errors_surface_as_storage_errors() -> None:
    client = AsyncMock()
    client.lpush.side_effect = RedisConnectionError("down")
    client.lrange.side_effect = RedisConnectionError("down")
    client.ping.side_effect = RedisConnectionError("down")
    log = RedisTimestampLog(client)

    with pytest.raises(StorageAppError) as exc_info:
        await log.append(KEY, T0)
    assert exc_info.value.code == "storage_unavailable"
    assert exc_info.value.details["operation"] == "append"

    with pytest.raises(StorageAppError):
        await log.read_all(KEY)

    with pytest.raises(StorageAppError):
        await log.ping()
