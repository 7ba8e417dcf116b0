"""Snapshot-based staking and reward distribution pool.

Stakers lock the principal token and receive non-transferable share units
1:1. The depositor periodically adds reward tokens; each deposit appends a
snapshot recording the staked supply at that moment. A staker's share of
snapshot ``k`` is ``balance_at(k) * amount_k // supply_k`` where
``balance_at(k)`` is the balance held just before the snapshot was taken.

Every public method holds the pool lock for its whole duration. Token
movements happen before any pool state is mutated, so a failing transfer
leaves the pool untouched.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from stakepool.core.checkpoints import CheckpointHistory
from stakepool.core.errors import (
    InsufficientBalance,
    InvalidAddress,
    InvalidAmount,
    InvalidSnapshot,
    NothingToClaim,
    TransfersNotAllowed,
    Unauthorized,
)
from stakepool.core.governance import MutualUpgrade
from stakepool.core.tokens import FungibleToken
from stakepool.core.types import (
    AccountSummary,
    EventType,
    PoolEvent,
    PoolSummary,
    Snapshot,
    TokenRole,
)

logger = logging.getLogger(__name__)


class StakingRewardPool:
    """Share ledger, snapshot ledger and claim state for one pool."""

    decimals = 18

    def __init__(
        self,
        name: str,
        symbol: str,
        principal_token: FungibleToken,
        reward_token: FungibleToken,
        depositor: str,
        owner: str,
        address: str = "prt-staking-pool",
    ) -> None:
        if not depositor or not owner or not address:
            raise InvalidAddress()

        self.name = name
        self.symbol = symbol
        self.address = address
        self.principal_token = principal_token
        self.reward_token = reward_token
        self._owner = owner
        self._depositor = depositor

        self._balances: dict[str, int] = {}
        self._total_supply = 0
        self._checkpoints: dict[str, CheckpointHistory] = {}
        self._snapshots: list[Snapshot] = []
        self._last_snapshot_id: dict[str, int] = {}
        self._events: list[PoolEvent] = []
        self._governance = MutualUpgrade()
        self._lock = threading.RLock()

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def depositor(self) -> str:
        return self._depositor

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def get_current_id(self) -> int:
        return len(self._snapshots)

    def last_snapshot_id(self, account: str) -> int:
        return self._last_snapshot_id.get(account, 0)

    def accounts(self) -> list[str]:
        with self._lock:
            return sorted(self._checkpoints)

    # ── Staking ──────────────────────────────────────────────────────────

    def stake(self, caller: str, amount: int) -> None:
        """Lock ``amount`` of principal and mint the same number of shares."""
        if amount <= 0:
            raise InvalidAmount("Cannot stake 0")
        with self._lock:
            self.principal_token.transfer_from(self.address, caller, self.address, amount)
            self._set_balance(caller, self.balance_of(caller) + amount)
            self._total_supply += amount
            self._emit(EventType.TRANSFER, sender=None, recipient=caller, value=amount)
        logger.info(
            "%s staked %d", caller, amount,
            extra={"account": caller, "amount": amount, "operation": "stake"},
        )

    def unstake(self, caller: str, amount: int) -> None:
        """Burn ``amount`` shares and return the principal.

        Unclaimed rewards from earlier snapshots remain claimable.
        """
        if amount <= 0:
            raise InvalidAmount("Cannot unstake 0")
        with self._lock:
            balance = self.balance_of(caller)
            if amount > balance:
                raise InsufficientBalance(
                    f"{caller} has {balance} staked, cannot unstake {amount}"
                )
            self.principal_token.transfer(self.address, caller, amount)
            self._set_balance(caller, balance - amount)
            self._total_supply -= amount
            self._emit(EventType.TRANSFER, sender=caller, recipient=None, value=amount)
        logger.info(
            "%s unstaked %d", caller, amount,
            extra={"account": caller, "amount": amount, "operation": "unstake"},
        )

    # ── Rewards ──────────────────────────────────────────────────────────

    def accrue(self, caller: str, amount: int) -> int:
        """Pull ``amount`` of reward token from the depositor and snapshot.

        Returns the id of the new snapshot.
        """
        with self._lock:
            if caller != self._depositor:
                raise Unauthorized("Must be depositor")
            if amount <= 0:
                raise InvalidAmount("Cannot accrue 0")
            self.reward_token.transfer_from(self.address, caller, self.address, amount)
            snapshot = Snapshot(
                id=len(self._snapshots) + 1,
                total_supply=self._total_supply,
                amount=amount,
            )
            self._snapshots.append(snapshot)
            self._emit(EventType.SNAPSHOT, id=snapshot.id)
        logger.info(
            "Snapshot %d: %d rewards over supply %d",
            snapshot.id, amount, snapshot.total_supply,
            extra={"snapshot_id": snapshot.id, "amount": amount, "operation": "accrue"},
        )
        return snapshot.id

    def claim(self, caller: str) -> int:
        """Pay out every unclaimed snapshot reward for ``caller``.

        Returns the amount transferred.
        """
        with self._lock:
            current_id = self.get_current_id()
            amount = self._rewards_between(caller, self.last_snapshot_id(caller), current_id)
            if amount == 0:
                raise NothingToClaim("No rewards to claim")
            self.reward_token.transfer(self.address, caller, amount)
            self._last_snapshot_id[caller] = current_id
            self._emit(
                EventType.REWARDS_CLAIMED,
                account=caller,
                amount=amount,
                snapshot_id=current_id,
            )
        logger.info(
            "%s claimed %d through snapshot %d", caller, amount, current_id,
            extra={
                "account": caller,
                "amount": amount,
                "snapshot_id": current_id,
                "operation": "claim",
            },
        )
        return amount

    def get_pending_rewards(self, account: str) -> int:
        with self._lock:
            return self._rewards_between(
                account, self.last_snapshot_id(account), self.get_current_id()
            )

    def get_snapshot_rewards(self, snapshot_id: int, account: str) -> int:
        with self._lock:
            return self._snapshot_rewards(self._get_snapshot(snapshot_id), account)

    def _rewards_between(self, account: str, after_id: int, through_id: int) -> int:
        history = self._checkpoints.get(account)
        if history is None:
            return 0
        total = 0
        for snapshot in self._snapshots[after_id:through_id]:
            total += self._snapshot_rewards(snapshot, account)
        return total

    def _snapshot_rewards(self, snapshot: Snapshot, account: str) -> int:
        if snapshot.total_supply == 0:
            return 0
        balance = self.balance_of_at(account, snapshot.id)
        return balance * snapshot.amount // snapshot.total_supply

    # ── Snapshot queries ─────────────────────────────────────────────────

    def get_snapshot(self, snapshot_id: int) -> Snapshot:
        with self._lock:
            return self._get_snapshot(snapshot_id)

    def get_snapshots(self) -> list[Snapshot]:
        with self._lock:
            return list(self._snapshots)

    def get_accrue_snapshots(self) -> list[int]:
        """Deposit amounts in snapshot order."""
        with self._lock:
            return [s.amount for s in self._snapshots]

    def total_supply_at(self, snapshot_id: int) -> int:
        return self.get_snapshot(snapshot_id).total_supply

    def balance_of_at(self, account: str, snapshot_id: int) -> int:
        self._check_snapshot_id(snapshot_id)
        history = self._checkpoints.get(account)
        return history.value_at(snapshot_id) if history else 0

    def _get_snapshot(self, snapshot_id: int) -> Snapshot:
        self._check_snapshot_id(snapshot_id)
        return self._snapshots[snapshot_id - 1]

    def _check_snapshot_id(self, snapshot_id: int) -> None:
        if snapshot_id <= 0:
            raise InvalidSnapshot("Snapshot id is 0")
        if snapshot_id > len(self._snapshots):
            raise InvalidSnapshot(f"Nonexistent snapshot id {snapshot_id}")

    # ── Administration ───────────────────────────────────────────────────

    def set_depositor(self, caller: str, new_depositor: str) -> None:
        with self._lock:
            if caller != self._owner:
                raise Unauthorized("Caller is not the owner")
            if not new_depositor:
                raise InvalidAddress()
            self._depositor = new_depositor
            self._emit(EventType.DEPOSITOR_CHANGED, depositor=new_depositor)
        logger.info("Depositor changed to %s", new_depositor, extra={"account": new_depositor})

    def transfer_ownership(self, caller: str, new_owner: str) -> bool:
        """Hand ownership over once both the owner and ``new_owner`` agree.

        Returns ``True`` when the transfer took effect.
        """
        if not new_owner:
            raise InvalidAddress()
        with self._lock:
            payload = {"op": "transfer_ownership", "pool": self.address, "new_owner": new_owner}
            completed = self._governance.submit(caller, self._owner, new_owner, payload)
            if not completed:
                self._emit(EventType.MUTUAL_UPGRADE_REGISTERED, caller=caller, new_owner=new_owner)
                return False
            previous, self._owner = self._owner, new_owner
            self._emit(EventType.OWNERSHIP_TRANSFERRED, previous_owner=previous, new_owner=new_owner)
        logger.info("Ownership transferred from %s to %s", previous, new_owner)
        return True

    # ── Underlying tokens ────────────────────────────────────────────────

    def token_for(self, role: TokenRole | str) -> FungibleToken:
        role = TokenRole(role)
        return self.principal_token if role is TokenRole.PRINCIPAL else self.reward_token

    def mint(self, caller: str, role: TokenRole | str, account: str, amount: int) -> None:
        """Owner-only funding of ``account`` with the principal or reward token.

        The token must support ``mint`` (``InMemoryToken`` does).
        """
        with self._lock:
            if caller != self._owner:
                raise Unauthorized("Caller is not the owner")
            if amount <= 0:
                raise InvalidAmount("Cannot mint 0")
            token = self.token_for(role)
            token.mint(account, amount)
        logger.info(
            "%s minted %d %s to %s", caller, amount, token.symbol, account,
            extra={"account": account, "amount": amount, "operation": "mint"},
        )

    # ── Share transfers (disabled) ───────────────────────────────────────

    def transfer(self, caller: str, recipient: str, amount: int) -> bool:
        raise TransfersNotAllowed("Transfers not allowed")

    def transfer_from(self, caller: str, owner: str, recipient: str, amount: int) -> bool:
        raise TransfersNotAllowed("Transfers not allowed")

    def approve(self, caller: str, spender: str, amount: int) -> bool:
        raise TransfersNotAllowed("Transfers not allowed")

    # ── Views ────────────────────────────────────────────────────────────

    def events(self, since: int = 0) -> list[PoolEvent]:
        with self._lock:
            return self._events[since:]

    def account_summary(self, account: str) -> AccountSummary:
        with self._lock:
            history = self._checkpoints.get(account)
            return AccountSummary(
                account=account,
                balance=self.balance_of(account),
                last_snapshot_id=self.last_snapshot_id(account),
                pending_rewards=self.get_pending_rewards(account),
                checkpoints=history.to_list() if history else [],
            )

    def summary(self) -> PoolSummary:
        with self._lock:
            return PoolSummary(
                name=self.name,
                symbol=self.symbol,
                decimals=self.decimals,
                address=self.address,
                owner=self._owner,
                depositor=self._depositor,
                principal_token=self.principal_token.symbol,
                reward_token=self.reward_token.symbol,
                total_supply=self._total_supply,
                current_id=self.get_current_id(),
                reward_balance=self.reward_token.balance_of(self.address),
                pending_ownership_changes=len(self._governance.pending),
            )

    # ── Internals ────────────────────────────────────────────────────────

    def _set_balance(self, account: str, balance: int) -> None:
        self._balances[account] = balance
        history = self._checkpoints.setdefault(account, CheckpointHistory())
        history.write(self.get_current_id(), balance)

    def _emit(self, event_type: EventType, **args: Any) -> None:
        self._events.append(PoolEvent(seq=len(self._events), type=event_type, args=args))
