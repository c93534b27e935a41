"""Quota store interfaces.

A quota store maps (endpoint, identity) to the maximum number of requests
allowed per window. A missing entry means the identity has no permission for
the endpoint; it never means "unlimited".
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from quota_gate.core.errors import ValidationAppError
from quota_gate.utils.endpoint import build_key, hash_identity, normalize_endpoint

logger = logging.getLogger(__name__)


def validate_limit(limit: Any, *, endpoint: str) -> int:
    """Validate a limit before it is stored.

    Raises:
        ValidationAppError: If the limit is not a positive integer.
    """
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValidationAppError(
            code="invalid_rate_limit",
            message="Rate limit must be a positive integer",
            details={"endpoint": normalize_endpoint(endpoint), "limit": limit},
        )
    return limit


def parse_stored_limit(raw: Any, *, endpoint: str, identity: str) -> int | None:
    """Convert a stored value into a limit.

    Non-numeric or non-positive values are invalid configuration and are
    treated as absent.
    """
    if raw is None:
        return None
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        limit = 0
    if limit < 1:
        logger.warning(
            "quota.invalid_limit",
            extra={
                "endpoint": normalize_endpoint(endpoint),
                "identity_hash": hash_identity(identity),
                "stored_value": str(raw)[:32],
            },
        )
        return None
    return limit


class AbstractQuotaStore(ABC):
    """Interface for per-(endpoint, identity) limit lookups."""

    def __init__(self, *, namespace: str = "user-limit") -> None:
        self._namespace = namespace

    def _key(self, endpoint: str, identity: str) -> str:
        return build_key(self._namespace, endpoint, identity)

    @abstractmethod
    async def get(self, endpoint: str, identity: str) -> int | None:
        """Return the configured limit, or None when absent or invalid."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, endpoint: str, identity: str, limit: int) -> None:
        """Store a limit under the normalized endpoint.

        Raises:
            ValidationAppError: If limit is not a positive integer.
        """
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> None:
        """Check backend liveness; raise StorageAppError when unavailable."""
        raise NotImplementedError
