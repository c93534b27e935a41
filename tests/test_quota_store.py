"""Unit tests for quota store adapters."""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from redis.exceptions import TimeoutError as RedisTimeoutError

from quota_gate.adapters.quota import InMemoryQuotaStore, RedisQuotaStore
from quota_gate.core.errors import StorageAppError, ValidationAppError


@pytest_asyncio.fixture(params=["memory", "redis"])
async def store(request, fake_redis):
    if request.param == "memory":
        return InMemoryQuotaStore()
    return RedisQuotaStore(fake_redis)


@pytest.mark.asyncio
async def test_missing_limit_is_none(store) -> None:
    assert await store.get("/api/simulate", "tok") is None


@pytest.mark.asyncio
async def test_set_then_get_uses_normalized_endpoint(store) -> None:
    await store.set("/api/simulate/", "tok", 3)

    assert await store.get("/api/simulate", "tok") == 3
    assert await store.get("/api/simulate?x=1", "tok") == 3
    assert await store.get("/api/simulate", "other") is None


@pytest.mark.asyncio
async def test_set_overwrites_previous_limit(store) -> None:
    await store.set("/a", "tok", 3)
    await store.set("/a", "tok", 7)

    assert await store.get("/a", "tok") == 7


@pytest.mark.parametrize("bad_limit", [0, -1, True, "3", 2.5])
@pytest.mark.asyncio
async def test_set_rejects_invalid_limits(store, bad_limit) -> None:
    with pytest.raises(ValidationAppError) as exc_info:
        await store.set("/a", "tok", bad_limit)

    assert exc_info.value.code == "invalid_rate_limit"
    assert await store.get("/a", "tok") is None


@pytest.mark.asyncio
async def test_redis_uses_original_key_layout(fake_redis) -> None:
    store = RedisQuotaStore(fake_redis)
    await store.set("/api/simulate/", "sample.bearer.token.123", 3)

    assert await fake_redis.get("user-limit-/api/simulate-sample.bearer.token.123") == "3"


@pytest.mark.parametrize("raw", ["abc", "0", "-5", "", "1.5"])
@pytest.mark.asyncio
async def test_malformed_stored_value_is_treated_as_absent(fake_redis, raw) -> None:
    await fake_redis.set("user-limit-/a-tok", raw)
    store = RedisQuotaStore(fake_redis)

    assert await store.get("/a", "tok") is None


@pytest.mark.asyncio
async def test_custom_namespace(fake_redis) -> None:
    store = RedisQuotaStore(fake_redis, namespace="limits")
    await store.set("/a", "tok", 2)

    assert await fake_redis.get("limits-/a-tok") == "2"


@pytest.mark.asyncio
async def test_redis_errors_surface_as_storage_errors() -> None:
    client = AsyncMock()
    client.get.side_effect = RedisTimeoutError("slow")
    client.set.side_effect = RedisTimeoutError("slow")
    store = RedisQuotaStore(client)

    with pytest.raises(StorageAppError) as exc_info:
        await store.get("/a", "tok")
    assert exc_info.value.details["operation"] == "quota_get"

    with pytest.raises(StorageAppError):
        await store.set("/a", "tok", 1)
