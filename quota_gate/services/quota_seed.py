"""Startup seeding of configured limits from ``APP_SEED_LIMITS``."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from quota_gate.adapters.quota.base import AbstractQuotaStore
from quota_gate.core.errors import ValidationAppError
from quota_gate.utils.endpoint import hash_identity, normalize_endpoint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeedLimit:
    endpoint: str
    identity: str
    limit: int


def parse_seed_limits(raw: str | None) -> list[SeedLimit]:
    """Parse comma-separated ``endpoint:identity:limit`` triples.

    The endpoint ends at the first colon and the limit starts after the last
    one, so identities may themselves contain colons.

    Examples:
        >>> parse_seed_limits("/api/simulate:tok:3")
        [SeedLimit(endpoint='/api/simulate', identity='tok', limit=3)]

    Raises:
        ValidationAppError: If an entry is malformed or its limit is not a
            positive integer.
    """
    if not raw:
        return []

    seeds: list[SeedLimit] = []
    for entry in (part.strip() for part in raw.split(",")):
        if not entry:
            continue
        endpoint, _, rest = entry.partition(":")
        identity, _, limit_str = rest.rpartition(":")
        try:
            limit = int(limit_str)
        except ValueError:
            limit = 0
        if not endpoint or not identity or limit < 1:
            raise ValidationAppError(
                code="invalid_seed_limit",
                message="APP_SEED_LIMITS entries must look like 'endpoint:identity:limit' with limit >= 1",
                details={"endpoint": endpoint},
            )
        seeds.append(SeedLimit(endpoint=normalize_endpoint(endpoint), identity=identity, limit=limit))
    return seeds


async def seed_limits(store: AbstractQuotaStore, seeds: list[SeedLimit]) -> None:
    for seed in seeds:
        await store.set(seed.endpoint, seed.identity, seed.limit)
        logger.info(
            "quota.seeded",
            extra={
                "endpoint": seed.endpoint,
                "identity_hash": hash_identity(seed.identity),
                "limit": seed.limit,
            },
        )
