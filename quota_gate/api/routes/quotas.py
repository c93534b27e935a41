from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request

from quota_gate.core.auth import verify_api_key
from quota_gate.core.errors import NotFoundAppError
from quota_gate.schemas.quota import QuotaResponse, QuotaUpsertRequest
from quota_gate.utils.endpoint import hash_identity, normalize_endpoint

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Quotas"], dependencies=[Depends(verify_api_key)])


@router.put("/admin/quotas", response_model=QuotaResponse)
async def upsert_quota(payload: QuotaUpsertRequest, request: Request) -> QuotaResponse:
    """Create or replace the limit for an (endpoint, identity) pair.

    Raises:
        ValidationAppError: 400 if the limit is not a positive integer.
    """
    quotas = request.app.state.storage.quotas
    endpoint = normalize_endpoint(payload.endpoint)
    await quotas.set(endpoint, payload.identity, payload.limit)

    logger.info(
        "quota.updated",
        extra={
            "endpoint": endpoint,
            "identity_hash": hash_identity(payload.identity),
            "limit": payload.limit,
        },
    )
    return QuotaResponse(
        endpoint=endpoint,
        identity=payload.identity,
        limit=payload.limit,
        window_seconds=request.app.state.rate_limiter.window_seconds,
    )


@router.get("/admin/quotas", response_model=QuotaResponse)
async def get_quota(
    request: Request,
    endpoint: str = Query(..., min_length=1),
    identity: str = Query(..., min_length=1),
) -> QuotaResponse:
    """Return the stored limit.

    Raises:
        NotFoundAppError: 404 if no valid limit is configured.
    """
    endpoint = normalize_endpoint(endpoint)
    limit = await request.app.state.storage.quotas.get(endpoint, identity)
    if limit is None:
        raise NotFoundAppError(
            code="quota_not_found",
            message="No rate limit configured for this endpoint and identity",
            details={"endpoint": endpoint},
        )
    return QuotaResponse(
        endpoint=endpoint,
        identity=identity,
        limit=limit,
        window_seconds=request.app.state.rate_limiter.window_seconds,
    )
