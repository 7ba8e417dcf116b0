"""Health check endpoints."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy import text

from stakepool.api.dependencies import get_ledger
from stakepool.core.service import LedgerService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Quick liveness probe."""
    return {"status": "healthy", "service": "stakepool"}


@router.get("/health/ready")
async def readiness_check(ledger: LedgerService = Depends(get_ledger)) -> dict:
    """Readiness check: pool loaded and journal database reachable."""
    checks: dict[str, dict] = {}
    overall = True
    start = time.perf_counter()

    checks["pool"] = {"status": "up", "current_id": ledger.pool.get_current_id()}

    if ledger.journaled:
        try:
            async with ledger.session_factory() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()
            checks["journal"] = {"status": "up"}
        except Exception as e:
            logger.warning("Journal database unreachable: %s", e)
            checks["journal"] = {"status": "down", "error": str(e)}
            overall = False
    else:
        checks["journal"] = {"status": "disabled"}

    elapsed = round((time.perf_counter() - start) * 1000, 1)

    return {
        "status": "healthy" if overall else "degraded",
        "service": "stakepool",
        "checks": checks,
        "latency_ms": elapsed,
    }
