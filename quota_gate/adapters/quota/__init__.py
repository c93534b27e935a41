"""Quota (configured limit) store adapters."""

from quota_gate.adapters.quota.base import AbstractQuotaStore
from quota_gate.adapters.quota.in_memory import InMemoryQuotaStore
from quota_gate.adapters.quota.redis_store import RedisQuotaStore

__all__ = [
    "AbstractQuotaStore",
    "InMemoryQuotaStore",
    "RedisQuotaStore",
]
