"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
import os
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from stakepool.api.errors import register_error_handlers
from stakepool.api.middleware.request import RequestIDMiddleware, RequestSizeLimitMiddleware
from stakepool.api.routes import health, pool, tokens
from stakepool.core.config import get_settings
from stakepool.core.database import get_session_factory, init_models
from stakepool.core.journal import load_pool, new_pool
from stakepool.core.logging import setup_logging
from stakepool.core.service import LedgerService

logger = logging.getLogger(__name__)


async def build_ledger() -> LedgerService:
    """Create the ledger service, replaying the journal when enabled."""
    settings = get_settings()
    if not settings.journal_enabled:
        logger.warning("Journal disabled: pool state will not survive a restart")
        return LedgerService(new_pool(settings))

    await init_models()
    factory = get_session_factory()
    async with factory() as session:
        restored = await load_pool(session, settings)
    return LedgerService(restored, factory)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup and shutdown events."""
    settings = get_settings()
    setup_logging(env=settings.app_env, log_level="DEBUG" if settings.debug else "INFO")

    if settings.app_env == "production" and not os.environ.get("STAKEPOOL_SECRET_KEY"):
        raise RuntimeError(
            "STAKEPOOL_SECRET_KEY must be set explicitly in production; "
            "tokens signed with a random key are invalid after restart."
        )

    if app.state.ledger is None:
        app.state.ledger = await build_ledger()

    summary = app.state.ledger.pool.summary()
    logger.info(
        "Starting %s in %s mode: pool %s at snapshot %d",
        settings.app_name, settings.app_env, summary.address, summary.current_id,
    )
    yield
    logger.info("Shutting down %s", settings.app_name)


def create_app(ledger: LedgerService | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Stakepool API",
        description=(
            "Snapshot-based staking pool: stake principal, receive pro-rata shares "
            "of every reward deposit made while staked.\n\n"
            "## Authentication\n"
            "State-changing endpoints require a Bearer JWT whose `sub` is the caller's account."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None if settings.app_env == "production" else "/api/docs",
        redoc_url=None if settings.app_env == "production" else "/api/redoc",
        openapi_url=None if settings.app_env == "production" else "/api/openapi.json",
        openapi_tags=[
            {"name": "health", "description": "Liveness and readiness probes"},
            {"name": "pool", "description": "Staking, reward deposits, claims and snapshots"},
            {"name": "tokens", "description": "Principal and reward token balances"},
        ],
        license_info={"name": "MIT", "url": "https://opensource.org/licenses/MIT"},
    )
    app.state.ledger = ledger

    allowed_origins = [o.strip() for o in settings.cors_allowed_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID", "Accept"],
        expose_headers=["X-Request-ID"],
    )

    # ── Middleware (outermost last) ──────────────────────────────────
    app.add_middleware(RequestSizeLimitMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Access logging middleware ────────────────────────────────────
    @app.middleware("http")
    async def access_log(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s → %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed,
            extra={"method": request.method, "path": request.url.path,
                   "status_code": response.status_code, "duration_ms": round(elapsed, 1),
                   "request_id": getattr(request.state, "request_id", None)},
        )
        return response

    # ── Routes ───────────────────────────────────────────────────────
    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(pool.router, prefix="/api/v1/pool", tags=["pool"])
    app.include_router(tokens.router, prefix="/api/v1/tokens", tags=["tokens"])

    register_error_handlers(app)

    return app


app = create_app()
