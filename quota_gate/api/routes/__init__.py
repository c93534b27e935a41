from __future__ import annotations

from quota_gate.api.routes.health import router as health_router
from quota_gate.api.routes.quotas import router as quotas_router
from quota_gate.api.routes.simulate import router as simulate_router

__all__ = ["health_router", "quotas_router", "simulate_router"]
