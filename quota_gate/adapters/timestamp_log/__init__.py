"""Timestamp log adapters.

This package keeps the per-key request history behind a small abstraction so
the service can run on an in-memory store in a single process and on Redis
when several workers must share limits.
"""

from quota_gate.adapters.timestamp_log.base import NEWEST_FIRST, AbstractTimestampLog
from quota_gate.adapters.timestamp_log.in_memory import InMemoryTimestampLog
from quota_gate.adapters.timestamp_log.redis_log import RedisTimestampLog

__all__ = [
    "NEWEST_FIRST",
    "AbstractTimestampLog",
    "InMemoryTimestampLog",
    "RedisTimestampLog",
]
