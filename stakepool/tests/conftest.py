"""Shared fixtures for the stakepool test suite."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from stakepool.core.pool import StakingRewardPool
from stakepool.core.tokens import InMemoryToken
from stakepool.core.units import ether

OWNER = "owner"
DEPOSITOR = "fee-split-extension"


# ── Token / Pool Fixtures ────────────────────────────────────────────────────


@pytest.fixture
def prt() -> InMemoryToken:
    """Principal (stake) token."""
    return InMemoryToken("PRT", "PRT")


@pytest.fixture
def set_token() -> InMemoryToken:
    """Reward token."""
    return InMemoryToken("SetToken", "SET")


@pytest.fixture
def pool(prt: InMemoryToken, set_token: InMemoryToken) -> StakingRewardPool:
    return StakingRewardPool(
        name="PRT Staking Pool",
        symbol="PRT-POOL",
        principal_token=prt,
        reward_token=set_token,
        depositor=DEPOSITOR,
        owner=OWNER,
    )


@pytest.fixture
def stake(prt: InMemoryToken, pool: StakingRewardPool) -> Callable[[str, int], None]:
    """Fund, approve and stake in one step."""

    def _stake(account: str, amount: int) -> None:
        prt.mint(account, amount)
        prt.approve(account, pool.address, amount)
        pool.stake(account, amount)

    return _stake


@pytest.fixture
def accrue(set_token: InMemoryToken, pool: StakingRewardPool) -> Callable[[int], int]:
    """Fund the depositor and deposit ``amount`` rewards."""

    def _accrue(amount: int) -> int:
        set_token.mint(DEPOSITOR, amount)
        set_token.approve(DEPOSITOR, pool.address, amount)
        return pool.accrue(DEPOSITOR, amount)

    return _accrue


@pytest.fixture
def reference_pool(
    pool: StakingRewardPool,
    stake: Callable[[str, int], None],
    accrue: Callable[[int], int],
) -> StakingRewardPool:
    """bob stakes 6 before snapshot 1 (1 SET); alice 4 and carol 5 before
    snapshot 2 (1.5 SET); carol unstakes before snapshot 3 (2 SET)."""
    stake("bob", ether(6))
    accrue(ether(1))
    stake("alice", ether(4))
    stake("carol", ether(5))
    accrue(ether("1.5"))
    pool.unstake("carol", ether(5))
    accrue(ether(2))
    return pool
