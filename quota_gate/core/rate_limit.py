"""Rate limiting dependency for FastAPI routes.

This module wires the decision service into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Injected state: the service lives on ``app.state`` and is built by the
  application lifespan, never as a module global.
- Explicit outcomes: Denied maps to 401, Throttled to 429 with a retry hint,
  storage failures surface as 503 through the exception handlers.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from quota_gate.core.auth import require_bearer_token
from quota_gate.services.rate_limit_service import (
    DecisionOutcome,
    RateLimitDecision,
    RateLimitDecisionService,
)


def get_decision_service(request: Request) -> RateLimitDecisionService:
    """Return the decision service created by the application lifespan."""
    return request.app.state.rate_limiter


def build_throttle_headers(
    decision: RateLimitDecision, *, include_rate_limit_headers: bool = True
) -> dict[str, str]:
    """Response headers for a throttled decision."""
    headers = {"Retry-After": str(decision.retry_after_seconds or 0)}
    if include_rate_limit_headers:
        headers["X-RateLimit-Limit"] = str(decision.limit)
        headers["X-RateLimit-Remaining"] = "0"
        headers["X-RateLimit-Retry-After-Ms"] = str(decision.retry_after_ms or 0)
    return headers


async def enforce_rate_limit(
    request: Request,
    token: Annotated[str, Depends(require_bearer_token)],
) -> RateLimitDecision | None:
    """FastAPI dependency enforcing per-token, per-endpoint limits.

    Records the request against the caller's quota and raises when it may
    not proceed.

    Args:
        request: FastAPI request.
        token: Caller identity from the bearer token.

    Returns:
        The admit decision, or None when rate limiting is disabled.

    Raises:
        HTTPException: 401 when the token has no limit for the endpoint,
            429 Too Many Requests when the limit is exceeded.
        StorageAppError: When the decision cannot be made.
    """
    app_settings = request.app.state.settings.app
    if not app_settings.rate_limit_enabled:
        return None

    service = get_decision_service(request)
    decision = await service.decide(request.url.path, token)

    if decision.outcome is DecisionOutcome.DENIED:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="This token does not have permission to access this API route",
        )

    if decision.outcome is DecisionOutcome.THROTTLED:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests",
            headers=build_throttle_headers(
                decision,
                include_rate_limit_headers=app_settings.rate_limit_include_headers,
            ),
        )

    return decision
