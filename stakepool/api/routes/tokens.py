"""Principal and reward token endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from stakepool.api.dependencies import get_ledger
from stakepool.api.middleware.auth import get_current_account
from stakepool.core.service import LedgerService
from stakepool.core.types import TokenRole

router = APIRouter()


class ApproveRequest(BaseModel):
    spender: str
    amount: int


class MintRequest(BaseModel):
    account: str
    amount: int


class BalanceResponse(BaseModel):
    token: str
    account: str
    balance: int
    allowance_to_pool: int


def _balance(ledger: LedgerService, role: TokenRole, account: str) -> BalanceResponse:
    token = ledger.pool.token_for(role)
    return BalanceResponse(
        token=token.symbol,
        account=account,
        balance=token.balance_of(account),
        allowance_to_pool=token.allowance(account, ledger.pool.address),
    )


@router.get("/{role}/balances/{account}", response_model=BalanceResponse)
async def get_balance(
    role: TokenRole,
    account: str,
    ledger: LedgerService = Depends(get_ledger),
) -> BalanceResponse:
    return _balance(ledger, role, account)


@router.post("/{role}/approve", response_model=BalanceResponse)
async def approve(
    role: TokenRole,
    payload: ApproveRequest,
    caller: str = Depends(get_current_account),
    ledger: LedgerService = Depends(get_ledger),
) -> BalanceResponse:
    """Set the caller's allowance for ``spender`` (usually the pool)."""
    await ledger.approve(caller, role, payload.spender, payload.amount)
    return _balance(ledger, role, caller)


@router.post("/{role}/mint", response_model=BalanceResponse, status_code=201)
async def mint(
    role: TokenRole,
    payload: MintRequest,
    caller: str = Depends(get_current_account),
    ledger: LedgerService = Depends(get_ledger),
) -> BalanceResponse:
    """Owner-only funding of an account."""
    await ledger.mint(caller, role, payload.account, payload.amount)
    return _balance(ledger, role, payload.account)
