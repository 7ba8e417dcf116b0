"""Stakepool CLI: local tooling for the staking pool ledger.

Usage:
    stakepool config                Show current configuration
    stakepool token <account>       Issue a caller token for the API
    stakepool simulate              Run the three-staker reference scenario
    stakepool replay                Rebuild the pool from the journal and summarize it
    stakepool serve                 Run the HTTP API under uvicorn
    stakepool --version             Print version

Examples:
    stakepool token fee-split-extension
    stakepool simulate --decimals 6 --format json
    stakepool serve --host 0.0.0.0 --port 8080
    STAKEPOOL_DATABASE_URL=sqlite+aiosqlite:///./prod.db stakepool replay
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from stakepool.core.pool import StakingRewardPool
from stakepool.core.tokens import InMemoryToken
from stakepool.core.units import from_base_units, to_base_units

__version__ = "1.0.0"


# ── Coloured output helpers ──────────────────────────────────────────────────

_RESET = "\033[0m"
_BOLD = "\033[1m"
_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"


def _c(text: str, code: str) -> str:
    return f"{code}{text}{_RESET}"


BANNER = f"{_BOLD}{_CYAN}stakepool{_RESET} {_DIM}snapshot staking ledger v{__version__}{_RESET}"


# ── CLI argument parser ─────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stakepool",
        description="stakepool: snapshot-based staking and reward ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument("--no-banner", action="store_true", help="Suppress the startup banner")
    parser.add_argument("--quiet", "-q", action="store_true", help="Minimal output")

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("config", help="Show current configuration")

    token_p = sub.add_parser("token", help="Issue a Bearer token for an account")
    token_p.add_argument("account", help="Account the token acts as")

    sim_p = sub.add_parser("simulate", help="Run the three-staker reference scenario")
    sim_p.add_argument("--decimals", type=int, default=18, help="Token decimals (default: 18)")
    sim_p.add_argument(
        "--format",
        "-f",
        default="table",
        choices=["table", "json"],
        help="Output format (default: table)",
    )

    sub.add_parser("replay", help="Rebuild the pool from the journal database")

    serve_p = sub.add_parser("serve", help="Run the HTTP API")
    serve_p.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_p.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve_p.add_argument("--reload", action="store_true", help="Restart on code changes")

    return parser


# ── Simulate command ─────────────────────────────────────────────────────────


def simulate_reference(decimals: int = 18) -> dict[str, Any]:
    """Three stakers, three deposits.

    alice stakes 6 before snapshot 1 (deposit 1.0); bob stakes 4 and carol 5
    before snapshot 2 (deposit 1.5); carol unstakes everything before
    snapshot 3 (deposit 2.0). Everyone claims at the end.
    """
    prt = InMemoryToken("PRT", "PRT", decimals)
    reward = InMemoryToken("SET", "SET", decimals)
    pool = StakingRewardPool(
        name="PRT Staking Pool",
        symbol="PRT-POOL",
        principal_token=prt,
        reward_token=reward,
        depositor="fee-split-extension",
        owner="owner",
    )

    def units(v: str) -> int:
        return to_base_units(v, decimals)

    stakes = {"alice": units("6"), "bob": units("4"), "carol": units("5")}
    for account, amount in stakes.items():
        prt.mint(account, amount)
        prt.approve(account, pool.address, amount)

    def deposit(amount: int) -> int:
        reward.mint(pool.depositor, amount)
        reward.approve(pool.depositor, pool.address, amount)
        return pool.accrue(pool.depositor, amount)

    pool.stake("alice", stakes["alice"])
    deposit(units("1"))
    pool.stake("bob", stakes["bob"])
    pool.stake("carol", stakes["carol"])
    deposit(units("1.5"))
    pool.unstake("carol", stakes["carol"])
    deposit(units("2"))

    claims = {account: pool.claim(account) for account in stakes}
    return {
        "decimals": decimals,
        "snapshots": [s.model_dump(mode="json") for s in pool.get_snapshots()],
        "claims": claims,
        "dust": reward.balance_of(pool.address),
    }


def _run_simulate(args: argparse.Namespace) -> int:
    result = simulate_reference(args.decimals)
    if args.format == "json":
        print(json.dumps(result, indent=2))
        return 0

    decimals = result["decimals"]
    print(f"\n{_BOLD}Reference scenario{_RESET}\n")
    for snap in result["snapshots"]:
        print(
            f"  {_DIM}snapshot {snap['id']}:{_RESET} "
            f"{from_base_units(snap['amount'], decimals)} over supply "
            f"{from_base_units(snap['total_supply'], decimals)}"
        )
    print()
    for account, amount in result["claims"].items():
        print(f"  {account:>8s}  {_c(from_base_units(amount, decimals), _GREEN)}")
    print(f"\n  {_DIM}undistributed dust: {result['dust']} base units{_RESET}\n")
    return 0


# ── Token command ────────────────────────────────────────────────────────────


def _run_token(args: argparse.Namespace) -> int:
    from stakepool.api.middleware.auth import create_access_token

    if not args.account.strip():
        print(_c("Error: account must not be empty.", _RED), file=sys.stderr)
        return 1
    print(create_access_token(args.account.strip()))
    return 0


# ── Replay command ───────────────────────────────────────────────────────────


async def _run_replay(args: argparse.Namespace) -> int:
    """Replay the journal into a fresh pool and print where it ends up."""
    from stakepool.core.config import get_settings
    from stakepool.core.database import get_engine, get_session_factory, init_models
    from stakepool.core.journal import ReplayError, load_pool

    settings = get_settings()
    await init_models()
    try:
        async with get_session_factory()() as session:
            pool = await load_pool(session, settings)
    except ReplayError as exc:
        print(_c(f"Replay failed at entry {exc.seq}: {exc.cause}", _RED), file=sys.stderr)
        return 1
    finally:
        await get_engine().dispose()

    summary = pool.summary()
    print(f"\n{_BOLD}{summary.name}{_RESET} ({summary.symbol}) at {summary.address}")
    print(f"  owner: {summary.owner}  |  depositor: {summary.depositor}")
    print(
        f"  total supply: {summary.total_supply}  |  snapshots: {summary.current_id}"
        f"  |  reward balance: {summary.reward_balance}\n"
    )
    if args.quiet:
        return 0
    for account in pool.accounts():
        acct = pool.account_summary(account)
        print(
            f"  {account:>24s}  staked {acct.balance}"
            f"  {_DIM}last claim #{acct.last_snapshot_id}{_RESET}"
            f"  pending {_c(str(acct.pending_rewards), _YELLOW)}"
        )
    print()
    return 0


# ── Serve command ────────────────────────────────────────────────────────────


def _run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    # The app's lifespan configures logging; uvicorn must not install its own.
    uvicorn.run(
        "stakepool.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )
    return 0


# ── Config command ───────────────────────────────────────────────────────────


def _run_config() -> int:
    """Print current settings (redacted)."""
    from stakepool.core.config import get_settings

    s = get_settings()
    print(f"\n{_BOLD}Stakepool Configuration{_RESET}\n")
    for field_name in sorted(type(s).model_fields.keys()):
        val = getattr(s, field_name, "")
        if any(kw in field_name for kw in ("password", "secret", "key")):
            val = "****" if val else "(not set)"
        print(f"  {_DIM}{field_name}:{_RESET}  {val}")
    print()
    return 0


# ── Entrypoint ───────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"stakepool {__version__}")
        return 0

    if not args.no_banner and not args.quiet:
        print(BANNER, file=sys.stderr)

    if args.command == "config":
        return _run_config()

    if args.command == "token":
        return _run_token(args)

    if args.command == "simulate":
        return _run_simulate(args)

    if args.command == "replay":
        return asyncio.run(_run_replay(args))

    if args.command == "serve":
        return _run_serve(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
