from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/")
def root_status() -> dict:
    """Root status endpoint with the server's current UTC time."""

    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Returns a simple status response to verify the API is operational.
    Used by load balancers and monitoring systems to determine service health.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(request: Request) -> dict:
    """Readiness check: the storage backend must answer a ping.

    Storage failures propagate as StorageAppError and are rendered as 503 by
    the exception handlers.
    """

    storage = request.app.state.storage
    await storage.ping()
    return {"status": "ready", "backend": storage.backend}
