"""Application factory for FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers). Storage is opened by the lifespan and closed on shutdown; the
decision service is built from it and attached to ``app.state``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from quota_gate.adapters.factory import open_storage
from quota_gate.api.routes import health_router, quotas_router, simulate_router
from quota_gate.core.config import Settings, settings
from quota_gate.core.exception_handlers import setup_exception_handlers
from quota_gate.core.logging import configure_logging
from quota_gate.core.middleware import request_id_middleware
from quota_gate.core.openapi import apply_openapi_customizations
from quota_gate.services.quota_seed import parse_seed_limits, seed_limits
from quota_gate.services.rate_limit_service import RateLimitDecisionService
from quota_gate.services.window_evaluator import build_evaluator

logger = logging.getLogger(__name__)


def _build_lifespan(cfg: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Parse seeds and evaluator before connecting so bad config fails fast.
        seeds = parse_seed_limits(cfg.app.seed_limits)
        evaluator = build_evaluator(cfg.app.rate_limit_evaluator)

        async with open_storage(cfg) as storage:
            await seed_limits(storage.quotas, seeds)
            app.state.storage = storage
            app.state.rate_limiter = RateLimitDecisionService(
                log=storage.log,
                quotas=storage.quotas,
                evaluator=evaluator,
                window_seconds=cfg.app.rate_limit_window_seconds,
                namespace=cfg.app.request_log_namespace,
                cleanup=cfg.app.rate_limit_cleanup,
            )
            logger.info(
                "app.started",
                extra={
                    "backend": storage.backend,
                    "evaluator": evaluator.name,
                    "window_s": cfg.app.rate_limit_window_seconds,
                    "seeded_limits": len(seeds),
                },
            )
            yield
            logger.info("app.stopping")

    return lifespan


def create_app(cfg: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        cfg: Settings to build the app from; defaults to the global settings.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    cfg = cfg or settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log, debug=cfg.app.debug)

    app = FastAPI(
        title="Quota Gate",
        description=(
            "Per-token, per-endpoint sliding-window rate limiter. Every request "
            "is recorded against its quota; over-quota requests receive 429 with "
            "a Retry-After hint, tokens without a configured limit receive 401."
        ),
        version="0.1.0",
        lifespan=_build_lifespan(cfg),
    )
    app.state.settings = cfg

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(simulate_router)
    app.include_router(quotas_router)

    # OpenAPI customizations (security schemes, tags, exemptions)
    apply_openapi_customizations(app)

    return app
