"""Serialized, journaled access to a pool.

All state-changing calls go through :meth:`LedgerService.execute`, which
holds one asyncio lock across the pool call and the journal write so the
journal order always matches the order operations were applied in.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stakepool.core.journal import record
from stakepool.core.logging import log_context
from stakepool.core.pool import StakingRewardPool
from stakepool.core.types import LedgerOp, TokenRole

logger = logging.getLogger(__name__)


class LedgerService:
    """Pool facade used by the API and the CLI."""

    def __init__(
        self,
        pool: StakingRewardPool,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self.pool = pool
        self._session_factory = session_factory
        self._lock = asyncio.Lock()

    @property
    def journaled(self) -> bool:
        return self._session_factory is not None

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession] | None:
        return self._session_factory

    async def execute(
        self,
        op: LedgerOp,
        caller: str,
        fn: Callable[[], Any],
        *,
        token: TokenRole | None = None,
        target: str | None = None,
        amount: int | None = None,
    ) -> Any:
        """Run ``fn`` against the pool and journal it if it succeeds."""
        async with self._lock:
            with log_context(account=caller, operation=op.value):
                if self._session_factory is None:
                    return fn()
                return await self._journaled(op, caller, fn, token=token, target=target, amount=amount)

    async def _journaled(
        self,
        op: LedgerOp,
        caller: str,
        fn: Callable[[], Any],
        **fields: Any,
    ) -> Any:
        async with self._session_factory() as session:
            entry = await record(session, self.pool, op, caller, **fields)
            try:
                result = fn()
            except Exception:
                await session.rollback()
                raise
            if isinstance(result, (int, str)) and not isinstance(result, bool):
                entry.result = str(result)
            try:
                await session.commit()
            except Exception:
                logger.critical(
                    "Journal commit failed after %s; in-memory state is ahead of the journal",
                    op.value,
                    exc_info=True,
                )
                raise
        return result

    # ── Operations ───────────────────────────────────────────────────────

    async def stake(self, caller: str, amount: int) -> None:
        await self.execute(
            LedgerOp.STAKE, caller, lambda: self.pool.stake(caller, amount), amount=amount
        )

    async def unstake(self, caller: str, amount: int) -> None:
        await self.execute(
            LedgerOp.UNSTAKE, caller, lambda: self.pool.unstake(caller, amount), amount=amount
        )

    async def accrue(self, caller: str, amount: int) -> int:
        return await self.execute(
            LedgerOp.ACCRUE, caller, lambda: self.pool.accrue(caller, amount), amount=amount
        )

    async def claim(self, caller: str) -> int:
        return await self.execute(LedgerOp.CLAIM, caller, lambda: self.pool.claim(caller))

    async def set_depositor(self, caller: str, new_depositor: str) -> None:
        await self.execute(
            LedgerOp.SET_DEPOSITOR,
            caller,
            lambda: self.pool.set_depositor(caller, new_depositor),
            target=new_depositor,
        )

    async def transfer_ownership(self, caller: str, new_owner: str) -> bool:
        return await self.execute(
            LedgerOp.TRANSFER_OWNERSHIP,
            caller,
            lambda: self.pool.transfer_ownership(caller, new_owner),
            target=new_owner,
        )

    async def approve(self, caller: str, role: TokenRole, spender: str, amount: int) -> None:
        token = self.pool.token_for(role)
        await self.execute(
            LedgerOp.APPROVE,
            caller,
            lambda: token.approve(caller, spender, amount),
            token=role,
            target=spender,
            amount=amount,
        )

    async def mint(self, caller: str, role: TokenRole, account: str, amount: int) -> None:
        """Owner-only faucet for funding accounts with either token."""
        await self.execute(
            LedgerOp.MINT,
            caller,
            lambda: self.pool.mint(caller, role, account, amount),
            token=role,
            target=account,
            amount=amount,
        )
