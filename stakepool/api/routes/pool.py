"""Staking pool endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from stakepool.api.dependencies import get_ledger
from stakepool.api.middleware.auth import get_current_account
from stakepool.core.service import LedgerService
from stakepool.core.types import AccountSummary, PoolEvent, PoolSummary, Snapshot

router = APIRouter()


# ── Schemas ──────────────────────────────────────────────────────────────────


class AmountRequest(BaseModel):
    """Token amount in base units."""

    amount: int


class DepositorRequest(BaseModel):
    depositor: str


class OwnershipRequest(BaseModel):
    new_owner: str


class ShareTransferRequest(BaseModel):
    recipient: str = ""
    owner: str = ""
    amount: int = 0


class AccrueResponse(BaseModel):
    snapshot: Snapshot


class ClaimResponse(BaseModel):
    account: str
    amount: int
    last_snapshot_id: int


class OwnershipResponse(BaseModel):
    completed: bool
    owner: str


class RewardsResponse(BaseModel):
    account: str
    snapshot_id: int | None = None
    amount: int


# ── Views ────────────────────────────────────────────────────────────────────


@router.get("/", response_model=PoolSummary)
async def get_pool(ledger: LedgerService = Depends(get_ledger)) -> PoolSummary:
    """Pool metadata, supply and current snapshot id."""
    return ledger.pool.summary()


@router.get("/snapshots", response_model=list[Snapshot])
async def list_snapshots(ledger: LedgerService = Depends(get_ledger)) -> list[Snapshot]:
    return ledger.pool.get_snapshots()


@router.get("/snapshots/{snapshot_id}", response_model=Snapshot)
async def get_snapshot(snapshot_id: int, ledger: LedgerService = Depends(get_ledger)) -> Snapshot:
    return ledger.pool.get_snapshot(snapshot_id)


@router.get("/snapshots/{snapshot_id}/rewards/{account}", response_model=RewardsResponse)
async def get_snapshot_rewards(
    snapshot_id: int,
    account: str,
    ledger: LedgerService = Depends(get_ledger),
) -> RewardsResponse:
    """Share of one snapshot owed to ``account``, claimed or not."""
    amount = ledger.pool.get_snapshot_rewards(snapshot_id, account)
    return RewardsResponse(account=account, snapshot_id=snapshot_id, amount=amount)


@router.get("/accounts/{account}", response_model=AccountSummary)
async def get_account(account: str, ledger: LedgerService = Depends(get_ledger)) -> AccountSummary:
    return ledger.pool.account_summary(account)


@router.get("/accounts/{account}/pending", response_model=RewardsResponse)
async def get_pending_rewards(
    account: str, ledger: LedgerService = Depends(get_ledger)
) -> RewardsResponse:
    return RewardsResponse(account=account, amount=ledger.pool.get_pending_rewards(account))


@router.get("/events", response_model=list[PoolEvent])
async def list_events(
    since: int = Query(0, ge=0),
    ledger: LedgerService = Depends(get_ledger),
) -> list[PoolEvent]:
    return ledger.pool.events(since)


# ── Staking ──────────────────────────────────────────────────────────────────


@router.post("/stake", response_model=AccountSummary)
async def stake(
    payload: AmountRequest,
    caller: str = Depends(get_current_account),
    ledger: LedgerService = Depends(get_ledger),
) -> AccountSummary:
    """Stake principal. The pool must already hold an allowance from the caller."""
    await ledger.stake(caller, payload.amount)
    return ledger.pool.account_summary(caller)


@router.post("/unstake", response_model=AccountSummary)
async def unstake(
    payload: AmountRequest,
    caller: str = Depends(get_current_account),
    ledger: LedgerService = Depends(get_ledger),
) -> AccountSummary:
    await ledger.unstake(caller, payload.amount)
    return ledger.pool.account_summary(caller)


@router.post("/accrue", response_model=AccrueResponse, status_code=201)
async def accrue(
    payload: AmountRequest,
    caller: str = Depends(get_current_account),
    ledger: LedgerService = Depends(get_ledger),
) -> AccrueResponse:
    """Deposit rewards (depositor only) and take a snapshot."""
    snapshot_id = await ledger.accrue(caller, payload.amount)
    return AccrueResponse(snapshot=ledger.pool.get_snapshot(snapshot_id))


@router.post("/claim", response_model=ClaimResponse)
async def claim(
    caller: str = Depends(get_current_account),
    ledger: LedgerService = Depends(get_ledger),
) -> ClaimResponse:
    amount = await ledger.claim(caller)
    return ClaimResponse(
        account=caller,
        amount=amount,
        last_snapshot_id=ledger.pool.last_snapshot_id(caller),
    )


# ── Administration ───────────────────────────────────────────────────────────


@router.post("/depositor", response_model=PoolSummary)
async def set_depositor(
    payload: DepositorRequest,
    caller: str = Depends(get_current_account),
    ledger: LedgerService = Depends(get_ledger),
) -> PoolSummary:
    await ledger.set_depositor(caller, payload.depositor)
    return ledger.pool.summary()


@router.post("/ownership", response_model=OwnershipResponse)
async def transfer_ownership(
    payload: OwnershipRequest,
    caller: str = Depends(get_current_account),
    ledger: LedgerService = Depends(get_ledger),
) -> OwnershipResponse:
    """Both the current owner and ``new_owner`` must call with the same payload."""
    completed = await ledger.transfer_ownership(caller, payload.new_owner)
    return OwnershipResponse(completed=completed, owner=ledger.pool.owner)


# ── Share transfers (always rejected) ────────────────────────────────────────


@router.post("/transfer")
async def transfer_shares(
    payload: ShareTransferRequest,
    caller: str = Depends(get_current_account),
    ledger: LedgerService = Depends(get_ledger),
) -> None:
    ledger.pool.transfer(caller, payload.recipient, payload.amount)


@router.post("/transfer-from")
async def transfer_shares_from(
    payload: ShareTransferRequest,
    caller: str = Depends(get_current_account),
    ledger: LedgerService = Depends(get_ledger),
) -> None:
    ledger.pool.transfer_from(caller, payload.owner, payload.recipient, payload.amount)


@router.post("/approve")
async def approve_shares(
    payload: ShareTransferRequest,
    caller: str = Depends(get_current_account),
    ledger: LedgerService = Depends(get_ledger),
) -> None:
    ledger.pool.approve(caller, payload.recipient, payload.amount)
