"""FastAPI dependencies shared by the pool and token routers."""

from __future__ import annotations

from fastapi import Request

from stakepool.core.service import LedgerService


def get_ledger(request: Request) -> LedgerService:
    """Return the ledger service attached to the running app."""
    return request.app.state.ledger
