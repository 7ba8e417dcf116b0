"""Tests for stakepool.core.pool: staking, snapshots and pro-rata claims."""

from __future__ import annotations

import threading

import pytest

from stakepool.core.errors import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidAddress,
    InvalidAmount,
    InvalidSnapshot,
    NothingToClaim,
    TransfersNotAllowed,
    Unauthorized,
)
from stakepool.core.pool import StakingRewardPool
from stakepool.core.tokens import InMemoryToken
from stakepool.core.types import EventType, TokenRole
from stakepool.core.units import ether

from conftest import DEPOSITOR, OWNER


# ── Construction ─────────────────────────────────────────────────────────────


class TestConstructor:
    def test_metadata(self, pool: StakingRewardPool):
        assert pool.name == "PRT Staking Pool"
        assert pool.symbol == "PRT-POOL"
        assert pool.decimals == 18

    def test_roles(self, pool: StakingRewardPool, prt: InMemoryToken, set_token: InMemoryToken):
        assert pool.principal_token is prt
        assert pool.reward_token is set_token
        assert pool.depositor == DEPOSITOR
        assert pool.owner == OWNER

    def test_starts_empty(self, pool: StakingRewardPool):
        assert pool.total_supply == 0
        assert pool.get_current_id() == 0
        assert pool.get_accrue_snapshots() == []

    def test_rejects_empty_depositor(self, prt: InMemoryToken, set_token: InMemoryToken):
        with pytest.raises(InvalidAddress):
            StakingRewardPool("P", "P", prt, set_token, depositor="", owner=OWNER)


# ── Stake / Unstake ──────────────────────────────────────────────────────────


class TestStake:
    def test_moves_principal_into_pool(self, pool, prt, stake):
        stake("bob", ether(1))
        assert prt.balance_of(pool.address) == ether(1)
        assert prt.balance_of("bob") == 0

    def test_mints_shares(self, pool, stake):
        stake("bob", ether(1))
        stake("bob", ether(2))
        assert pool.balance_of("bob") == ether(3)
        assert pool.total_supply == ether(3)

    def test_emits_mint_transfer(self, pool, stake):
        stake("bob", ether(1))
        event = pool.events()[-1]
        assert event.type is EventType.TRANSFER
        assert event.args == {"sender": None, "recipient": "bob", "value": ether(1)}

    def test_zero_amount(self, pool):
        with pytest.raises(InvalidAmount, match="Cannot stake 0"):
            pool.stake("bob", 0)

    def test_without_allowance_leaves_state_untouched(self, pool, prt):
        prt.mint("bob", ether(1))
        with pytest.raises(InsufficientAllowance):
            pool.stake("bob", ether(1))
        assert pool.balance_of("bob") == 0
        assert pool.total_supply == 0
        assert pool.events() == []


class TestUnstake:
    def test_returns_principal(self, pool, prt, stake):
        stake("bob", ether(5))
        pool.unstake("bob", ether(2))
        assert prt.balance_of("bob") == ether(2)
        assert prt.balance_of(pool.address) == ether(3)

    def test_burns_shares(self, pool, stake):
        stake("bob", ether(5))
        pool.unstake("bob", ether(5))
        assert pool.balance_of("bob") == 0
        assert pool.total_supply == 0

    def test_emits_burn_transfer(self, pool, stake):
        stake("bob", ether(5))
        pool.unstake("bob", ether(1))
        assert pool.events()[-1].args == {"sender": "bob", "recipient": None, "value": ether(1)}

    def test_zero_amount(self, pool, stake):
        stake("bob", ether(1))
        with pytest.raises(InvalidAmount, match="Cannot unstake 0"):
            pool.unstake("bob", 0)

    def test_more_than_balance(self, pool, stake):
        stake("bob", ether(1))
        with pytest.raises(InsufficientBalance):
            pool.unstake("bob", ether(2))
        assert pool.balance_of("bob") == ether(1)


# ── Accrue ───────────────────────────────────────────────────────────────────


class TestAccrue:
    def test_pulls_rewards_from_depositor(self, pool, set_token, accrue):
        accrue(ether(1))
        assert set_token.balance_of(pool.address) == ether(1)
        assert set_token.balance_of(DEPOSITOR) == 0

    def test_pushes_snapshot(self, pool, stake, accrue):
        stake("bob", ether(3))
        snapshot_id = accrue(ether(1))
        assert snapshot_id == 1
        assert pool.get_accrue_snapshots() == [ether(1)]
        assert pool.total_supply_at(1) == ether(3)

    def test_emits_snapshot_event(self, pool, accrue):
        accrue(ether(1))
        event = pool.events()[-1]
        assert event.type is EventType.SNAPSHOT
        assert event.args == {"id": 1}

    def test_ids_are_gapless(self, pool, accrue):
        ids = [accrue(ether(1)) for _ in range(4)]
        assert ids == [1, 2, 3, 4]
        assert pool.get_current_id() == 4

    def test_zero_amount(self, pool):
        with pytest.raises(InvalidAmount, match="Cannot accrue 0"):
            pool.accrue(DEPOSITOR, 0)

    def test_non_depositor(self, pool, set_token):
        set_token.mint("mallory", ether(1))
        set_token.approve("mallory", pool.address, ether(1))
        with pytest.raises(Unauthorized):
            pool.accrue("mallory", ether(1))
        assert pool.get_current_id() == 0


# ── Claim ────────────────────────────────────────────────────────────────────


class TestClaim:
    def test_bob_staked_throughout(self, reference_pool, set_token):
        pool = reference_pool
        expected = (
            ether(1)
            + ether(6) * ether("1.5") // pool.total_supply_at(2)
            + ether(6) * ether(2) // pool.total_supply_at(3)
        )
        before = set_token.balance_of(pool.address)
        assert pool.claim("bob") == expected
        assert set_token.balance_of("bob") == expected
        assert set_token.balance_of(pool.address) == before - expected

    def test_updates_last_snapshot_id(self, reference_pool):
        assert reference_pool.last_snapshot_id("bob") == 0
        reference_pool.claim("bob")
        assert reference_pool.last_snapshot_id("bob") == 3
        assert reference_pool.last_snapshot_id("bob") == reference_pool.get_current_id()

    def test_staked_after_first_snapshot(self, reference_pool):
        pool = reference_pool
        expected = (
            ether(4) * ether("1.5") // pool.total_supply_at(2)
            + ether(4) * ether(2) // pool.total_supply_at(3)
        )
        assert pool.claim("alice") == expected

    def test_unstaked_before_latest_snapshot(self, reference_pool):
        pool = reference_pool
        assert pool.claim("carol") == ether(5) * ether("1.5") // pool.total_supply_at(2)

    def test_reference_totals(self, reference_pool):
        assert reference_pool.claim("bob") == ether("2.8")
        assert reference_pool.claim("alice") == ether("1.2")
        assert reference_pool.claim("carol") == ether("0.5")

    def test_never_staked(self, reference_pool):
        with pytest.raises(NothingToClaim, match="No rewards to claim"):
            reference_pool.claim(OWNER)

    def test_second_claim_fails(self, reference_pool):
        reference_pool.claim("bob")
        with pytest.raises(NothingToClaim):
            reference_pool.claim("bob")

    def test_failed_claim_keeps_last_snapshot_id(self, pool, stake, accrue):
        accrue(ether(1))
        stake("bob", ether(1))
        with pytest.raises(NothingToClaim):
            pool.claim("bob")
        assert pool.last_snapshot_id("bob") == 0

    def test_claims_only_new_snapshots(self, reference_pool, accrue):
        pool = reference_pool
        pool.claim("bob")
        accrue(ether(5))
        assert pool.claim("bob") == ether(6) * ether(5) // ether(10)

    def test_emits_claim_event(self, reference_pool):
        amount = reference_pool.claim("carol")
        event = reference_pool.events()[-1]
        assert event.type is EventType.REWARDS_CLAIMED
        assert event.args == {"account": "carol", "amount": amount, "snapshot_id": 3}


# ── Snapshot queries ─────────────────────────────────────────────────────────


class TestSnapshotRewards:
    def test_staked_before_snapshot(self, pool, stake, accrue):
        stake("bob", ether(6))
        accrue(ether(1))
        assert pool.get_snapshot_rewards(1, "bob") == ether(1)

    def test_staked_after_snapshot(self, pool, stake, accrue):
        accrue(ether(1))
        stake("bob", ether(6))
        assert pool.get_snapshot_rewards(1, "bob") == 0

    def test_multiple_stakers(self, pool, stake, accrue):
        stake("bob", ether(6))
        stake("alice", ether(4))
        accrue(ether("1.5"))
        assert pool.get_snapshot_rewards(1, "bob") == ether(6) * ether("1.5") // ether(10)
        assert pool.get_snapshot_rewards(1, "alice") == ether(4) * ether("1.5") // ether(10)

    def test_unaffected_by_claiming(self, reference_pool):
        before = reference_pool.get_snapshot_rewards(2, "alice")
        reference_pool.claim("alice")
        assert reference_pool.get_snapshot_rewards(2, "alice") == before

    @pytest.mark.parametrize("snapshot_id", [0, 4, -1])
    def test_invalid_id(self, reference_pool, snapshot_id):
        with pytest.raises(InvalidSnapshot):
            reference_pool.get_snapshot_rewards(snapshot_id, "bob")

    def test_empty_supply_snapshot_pays_nothing(self, pool, stake, accrue):
        accrue(ether(1))
        assert pool.total_supply_at(1) == 0
        assert pool.get_snapshot_rewards(1, "bob") == 0

    def test_balance_of_at(self, reference_pool):
        assert reference_pool.balance_of_at("carol", 1) == 0
        assert reference_pool.balance_of_at("carol", 2) == ether(5)
        assert reference_pool.balance_of_at("carol", 3) == 0
        assert reference_pool.balance_of_at("bob", 3) == ether(6)


class TestPendingRewards:
    def test_matches_claims(self, reference_pool):
        pending = {a: reference_pool.get_pending_rewards(a) for a in ("bob", "alice", "carol")}
        claimed = {a: reference_pool.claim(a) for a in ("bob", "alice", "carol")}
        assert pending == claimed

    def test_zero_after_claim(self, reference_pool):
        reference_pool.claim("bob")
        assert reference_pool.get_pending_rewards("bob") == 0

    def test_never_staked(self, reference_pool):
        assert reference_pool.get_pending_rewards("nobody") == 0


# ── Administration ───────────────────────────────────────────────────────────


class TestSetDepositor:
    def test_sets_new_depositor(self, pool):
        pool.set_depositor(OWNER, "new-extension")
        assert pool.depositor == "new-extension"
        event = pool.events()[-1]
        assert event.type is EventType.DEPOSITOR_CHANGED
        assert event.args == {"depositor": "new-extension"}

    def test_old_depositor_loses_access(self, pool, set_token):
        pool.set_depositor(OWNER, "new-extension")
        set_token.mint(DEPOSITOR, ether(1))
        set_token.approve(DEPOSITOR, pool.address, ether(1))
        with pytest.raises(Unauthorized):
            pool.accrue(DEPOSITOR, ether(1))

    def test_non_owner(self, pool):
        with pytest.raises(Unauthorized, match="not the owner"):
            pool.set_depositor("bob", "bob")

    def test_empty_address(self, pool):
        with pytest.raises(InvalidAddress):
            pool.set_depositor(OWNER, "")


class TestTransferOwnership:
    def test_requires_both_parties(self, pool):
        assert pool.transfer_ownership(OWNER, "dao") is False
        assert pool.owner == OWNER
        assert pool.transfer_ownership("dao", "dao") is True
        assert pool.owner == "dao"
        assert pool.events()[-1].type is EventType.OWNERSHIP_TRANSFERRED

    def test_new_owner_may_go_first(self, pool):
        assert pool.transfer_ownership("dao", "dao") is False
        assert pool.transfer_ownership(OWNER, "dao") is True
        assert pool.owner == "dao"

    def test_outsider_rejected(self, pool):
        with pytest.raises(Unauthorized):
            pool.transfer_ownership("mallory", "dao")

    def test_mismatched_payloads_do_not_complete(self, pool):
        pool.transfer_ownership(OWNER, "dao")
        pool.transfer_ownership("other", "other")
        assert pool.owner == OWNER
        assert pool.summary().pending_ownership_changes == 2


# ── Share transfers ──────────────────────────────────────────────────────────


class TestMint:
    def test_owner_funds_either_token(self, pool, prt, set_token):
        pool.mint(OWNER, TokenRole.PRINCIPAL, "bob", 5)
        pool.mint(OWNER, "reward", DEPOSITOR, 7)
        assert prt.balance_of("bob") == 5
        assert set_token.balance_of(DEPOSITOR) == 7

    def test_non_owner(self, pool, prt):
        with pytest.raises(Unauthorized, match="not the owner"):
            pool.mint("bob", TokenRole.PRINCIPAL, "bob", 5)
        assert prt.balance_of("bob") == 0

    def test_former_owner_after_handover(self, pool, prt):
        pool.transfer_ownership(OWNER, "dao")
        pool.transfer_ownership("dao", "dao")
        with pytest.raises(Unauthorized):
            pool.mint(OWNER, TokenRole.PRINCIPAL, OWNER, 5)
        pool.mint("dao", TokenRole.PRINCIPAL, "dao", 5)
        assert prt.balance_of("dao") == 5

    def test_zero_amount(self, pool):
        with pytest.raises(InvalidAmount, match="Cannot mint 0"):
            pool.mint(OWNER, TokenRole.PRINCIPAL, "bob", 0)

    def test_token_for(self, pool, prt, set_token):
        assert pool.token_for(TokenRole.PRINCIPAL) is prt
        assert pool.token_for("reward") is set_token


class TestNonTransferable:
    def test_transfer(self, pool, stake):
        stake("bob", ether(1))
        with pytest.raises(TransfersNotAllowed, match="Transfers not allowed"):
            pool.transfer("bob", "alice", ether(1))
        assert pool.balance_of("bob") == ether(1)

    def test_transfer_from(self, pool, stake):
        stake("bob", ether(1))
        with pytest.raises(TransfersNotAllowed):
            pool.transfer_from("alice", "bob", "alice", ether(1))

    def test_approve(self, pool):
        with pytest.raises(TransfersNotAllowed):
            pool.approve("bob", "alice", ether(1))


# ── Properties ───────────────────────────────────────────────────────────────


class TestProperties:
    def test_conservation(self, pool, stake):
        stake("a", 7)
        stake("b", 11)
        pool.unstake("a", 3)
        stake("c", 5)
        pool.unstake("b", 11)
        total = sum(pool.balance_of(a) for a in pool.accounts())
        assert total == pool.total_supply == 9

    def test_rounding_never_over_distributes(self, pool, stake, accrue):
        stake("a", 1)
        stake("b", 1)
        stake("c", 1)
        accrue(100)
        shares = [pool.get_snapshot_rewards(1, a) for a in ("a", "b", "c")]
        assert shares == [33, 33, 33]
        assert sum(shares) <= 100

    def test_even_split_distributes_everything(self, pool, stake, accrue, set_token):
        stake("a", 2)
        stake("b", 3)
        accrue(50)
        pool.claim("a")
        pool.claim("b")
        assert set_token.balance_of(pool.address) == 0

    def test_rewards_do_not_compound(self, pool, stake, accrue):
        stake("a", ether(1))
        accrue(ether(10))
        pool.claim("a")
        assert pool.balance_of("a") == ether(1)

    def test_same_token_for_principal_and_rewards(self, prt):
        pool = StakingRewardPool("P", "P", prt, prt, depositor=DEPOSITOR, owner=OWNER)
        prt.mint("a", 10)
        prt.approve("a", pool.address, 10)
        pool.stake("a", 10)
        prt.mint(DEPOSITOR, 5)
        prt.approve(DEPOSITOR, pool.address, 5)
        pool.accrue(DEPOSITOR, 5)
        assert pool.claim("a") == 5
        pool.unstake("a", 10)
        assert prt.balance_of("a") == 15

    def test_concurrent_stakes_keep_supply_consistent(self, pool, prt):
        accounts = [f"staker-{i}" for i in range(8)]
        for account in accounts:
            prt.mint(account, 1000)
            prt.approve(account, pool.address, 1000)

        def worker(account: str) -> None:
            for _ in range(100):
                pool.stake(account, 10)

        threads = [threading.Thread(target=worker, args=(a,)) for a in accounts]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert pool.total_supply == 8 * 1000
        assert all(pool.balance_of(a) == 1000 for a in accounts)
