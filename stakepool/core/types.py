"""Shared enums and schemas used across the service."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enums ────────────────────────────────────────────────────────────────────


class EventType(str, enum.Enum):
    """Events emitted by the pool."""

    TRANSFER = "transfer"
    SNAPSHOT = "snapshot"
    REWARDS_CLAIMED = "rewards_claimed"
    DEPOSITOR_CHANGED = "depositor_changed"
    OWNERSHIP_TRANSFERRED = "ownership_transferred"
    MUTUAL_UPGRADE_REGISTERED = "mutual_upgrade_registered"


class LedgerOp(str, enum.Enum):
    """State-changing operations recorded in the journal."""

    MINT = "mint"
    APPROVE = "approve"
    STAKE = "stake"
    UNSTAKE = "unstake"
    ACCRUE = "accrue"
    CLAIM = "claim"
    SET_DEPOSITOR = "set_depositor"
    TRANSFER_OWNERSHIP = "transfer_ownership"


class TokenRole(str, enum.Enum):
    """Which of the pool's tokens an operation targets."""

    PRINCIPAL = "principal"
    REWARD = "reward"


# ── Ledger Schemas ───────────────────────────────────────────────────────────


class Snapshot(BaseModel):
    """One reward deposit and the staked supply it is shared across."""

    id: int
    total_supply: int
    amount: int
    created_at: datetime = Field(default_factory=_utcnow)

    model_config = {"frozen": True}


class Checkpoint(BaseModel):
    """Balance in force from ``snapshot_id`` onward."""

    snapshot_id: int
    balance: int


class PoolEvent(BaseModel):
    """Entry in the pool's append-only event log."""

    seq: int
    type: EventType
    args: dict[str, Any] = Field(default_factory=dict)
    emitted_at: datetime = Field(default_factory=_utcnow)


class AccountSummary(BaseModel):
    """Staker position and claim state."""

    account: str
    balance: int
    last_snapshot_id: int
    pending_rewards: int
    checkpoints: list[Checkpoint] = Field(default_factory=list)


class PoolSummary(BaseModel):
    """Top-level view of the pool."""

    name: str
    symbol: str
    decimals: int
    address: str
    owner: str
    depositor: str
    principal_token: str
    reward_token: str
    total_supply: int
    current_id: int
    reward_balance: int
    pending_ownership_changes: int = 0
