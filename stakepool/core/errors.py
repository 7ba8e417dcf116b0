"""Domain errors raised by the staking pool and its token collaborators.

Every error carries a stable ``code`` so the API layer can map it onto the
structured error envelope without string matching.
"""

from __future__ import annotations


class PoolError(Exception):
    """Base class for all caller-correctable pool errors."""

    code: str = "POOL_ERROR"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)


class InvalidAmount(PoolError):
    """Amount must be greater than zero."""

    code = "INVALID_AMOUNT"


class InsufficientBalance(PoolError):
    """Amount exceeds the staked balance."""

    code = "INSUFFICIENT_BALANCE"


class Unauthorized(PoolError):
    """Caller is not allowed to perform this operation."""

    code = "UNAUTHORIZED"


class NothingToClaim(PoolError):
    """No rewards to claim."""

    code = "NOTHING_TO_CLAIM"


class TransfersNotAllowed(PoolError):
    """Transfers not allowed."""

    code = "TRANSFERS_NOT_ALLOWED"


class InvalidSnapshot(PoolError):
    """Snapshot id does not exist."""

    code = "INVALID_SNAPSHOT"


class InvalidAddress(PoolError):
    """Zero address not valid."""

    code = "INVALID_ADDRESS"


# ── Token errors ─────────────────────────────────────────────────────────────


class TokenError(PoolError):
    """Base class for fungible token failures."""

    code = "TOKEN_ERROR"


class InsufficientFunds(TokenError):
    """Transfer amount exceeds balance."""

    code = "INSUFFICIENT_FUNDS"


class InsufficientAllowance(TokenError):
    """Transfer amount exceeds allowance."""

    code = "INSUFFICIENT_ALLOWANCE"
