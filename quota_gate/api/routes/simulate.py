from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request

from quota_gate.core.rate_limit import enforce_rate_limit
from quota_gate.schemas.simulate import SimulateResponse

router = APIRouter(tags=["API"])


@router.post(
    "/api/simulate",
    response_model=SimulateResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def simulate(
    request: Request,
    body: Dict[str, Any] | None = Body(default=None),
) -> SimulateResponse:
    """Simulated downstream API call.

    Only reached once the rate limiter admitted the request. Waits for the
    configured processing delay and echoes the JSON body back.
    """
    delay = request.app.state.settings.app.simulate_delay_seconds
    if delay:
        await asyncio.sleep(delay)

    return SimulateResponse(
        message="Request processed successfully",
        timestamp=datetime.now(timezone.utc).isoformat(),
        request_body=body or {},
    )
