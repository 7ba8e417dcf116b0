"""Fungible token collaborators consumed by the staking pool."""

from __future__ import annotations

import logging
import threading
from typing import Protocol, runtime_checkable

from stakepool.core.errors import (
    InsufficientAllowance,
    InsufficientFunds,
    InvalidAddress,
    InvalidAmount,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class FungibleToken(Protocol):
    """Standard fungible-token surface the pool relies on."""

    symbol: str

    def transfer(self, sender: str, recipient: str, amount: int) -> bool: ...

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool: ...

    def approve(self, owner: str, spender: str, amount: int) -> bool: ...

    def allowance(self, owner: str, spender: str) -> int: ...

    def balance_of(self, account: str) -> int: ...

    def mint(self, account: str, amount: int) -> None: ...


class InMemoryToken:
    """Balance/allowance ledger with ERC-20 semantics.

    Amounts are integers in base units. ``transfer_from`` decrements the
    spender's allowance; an allowance of ``UNLIMITED`` is never decremented.
    """

    UNLIMITED = 2**256 - 1

    def __init__(self, name: str, symbol: str, decimals: int = 18) -> None:
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self._total_supply = 0
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"InMemoryToken({self.symbol!r}, supply={self._total_supply})"

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def mint(self, account: str, amount: int) -> None:
        if not account:
            raise InvalidAddress()
        if amount <= 0:
            raise InvalidAmount()
        with self._lock:
            self._balances[account] = self.balance_of(account) + amount
            self._total_supply += amount
        logger.debug("Minted %d %s to %s", amount, self.symbol, account)

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        if not owner or not spender:
            raise InvalidAddress()
        if amount < 0:
            raise InvalidAmount("Allowance cannot be negative")
        with self._lock:
            self._allowances[(owner, spender)] = amount
        return True

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        with self._lock:
            self._move(sender, recipient, amount)
        return True

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool:
        with self._lock:
            current = self.allowance(owner, spender)
            if current < amount:
                raise InsufficientAllowance(
                    f"{self.symbol}: {spender} may move {current} from {owner}, requested {amount}"
                )
            self._move(owner, recipient, amount)
            if current != self.UNLIMITED:
                self._allowances[(owner, spender)] = current - amount
        return True

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        if not sender or not recipient:
            raise InvalidAddress()
        if amount < 0:
            raise InvalidAmount()
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientFunds(
                f"{self.symbol}: {sender} holds {balance}, requested {amount}"
            )
        self._balances[sender] = balance - amount
        self._balances[recipient] = self.balance_of(recipient) + amount
