"""Operation journal: append successful operations, rebuild a pool by replay."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stakepool.core.config import Settings, get_settings
from stakepool.core.pool import StakingRewardPool
from stakepool.core.tokens import InMemoryToken
from stakepool.core.types import LedgerOp, TokenRole
from stakepool.models.ledger import LedgerEntry

logger = logging.getLogger(__name__)


class ReplayError(RuntimeError):
    """A journal entry could not be re-applied."""

    def __init__(self, seq: int, cause: Exception) -> None:
        self.seq = seq
        self.cause = cause
        super().__init__(f"Journal entry {seq} failed to replay: {cause}")


def new_pool(settings: Settings | None = None) -> StakingRewardPool:
    """Build an empty pool and its tokens from settings."""
    settings = settings or get_settings()
    principal = InMemoryToken(
        settings.principal_token_symbol,
        settings.principal_token_symbol,
        settings.token_decimals,
    )
    if settings.reward_token_symbol == settings.principal_token_symbol:
        reward = principal
    else:
        reward = InMemoryToken(
            settings.reward_token_symbol,
            settings.reward_token_symbol,
            settings.token_decimals,
        )
    return StakingRewardPool(
        name=settings.pool_name,
        symbol=settings.pool_symbol,
        principal_token=principal,
        reward_token=reward,
        depositor=settings.depositor_address,
        owner=settings.owner_address,
        address=settings.pool_address,
    )


def apply_entry(pool: StakingRewardPool, entry: LedgerEntry) -> None:
    """Re-apply a recorded operation to ``pool``."""
    op = LedgerOp(entry.op)
    amount = int(entry.amount) if entry.amount is not None else 0

    if op is LedgerOp.MINT:
        pool.mint(entry.caller, entry.token, entry.target, amount)
    elif op is LedgerOp.APPROVE:
        pool.token_for(entry.token).approve(entry.caller, entry.target, amount)
    elif op is LedgerOp.STAKE:
        pool.stake(entry.caller, amount)
    elif op is LedgerOp.UNSTAKE:
        pool.unstake(entry.caller, amount)
    elif op is LedgerOp.ACCRUE:
        pool.accrue(entry.caller, amount)
    elif op is LedgerOp.CLAIM:
        pending = pool.get_pending_rewards(entry.caller)
        if entry.result is not None and int(entry.result) != pending:
            raise ValueError(f"claim recomputes to {pending}, journal recorded {entry.result}")
        pool.claim(entry.caller)
    elif op is LedgerOp.SET_DEPOSITOR:
        pool.set_depositor(entry.caller, entry.target)
    elif op is LedgerOp.TRANSFER_OWNERSHIP:
        pool.transfer_ownership(entry.caller, entry.target)


async def record(
    db: AsyncSession,
    pool: StakingRewardPool,
    op: LedgerOp,
    caller: str,
    *,
    token: TokenRole | None = None,
    target: str | None = None,
    amount: int | None = None,
    result: int | str | None = None,
) -> LedgerEntry:
    """Append a successful operation to the journal."""
    entry = LedgerEntry(
        pool_address=pool.address,
        op=op.value,
        caller=caller,
        token=token.value if token else None,
        target=target,
        amount=str(amount) if amount is not None else None,
        result=str(result) if result is not None else None,
    )
    db.add(entry)
    await db.flush()
    return entry


async def replay(db: AsyncSession, pool: StakingRewardPool) -> int:
    """Apply every journal entry for ``pool`` in order. Returns the count."""
    rows = await db.execute(
        select(LedgerEntry)
        .where(LedgerEntry.pool_address == pool.address)
        .order_by(LedgerEntry.seq)
    )
    count = 0
    for entry in rows.scalars():
        try:
            apply_entry(pool, entry)
        except Exception as exc:
            raise ReplayError(entry.seq, exc) from exc
        count += 1
    logger.info("Replayed %d journal entries for %s", count, pool.address)
    return count


async def load_pool(db: AsyncSession, settings: Settings | None = None) -> StakingRewardPool:
    """Build a pool from settings and bring it up to date from the journal."""
    pool = new_pool(settings)
    await replay(db, pool)
    return pool
