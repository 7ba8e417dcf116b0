"""Database models package."""

from stakepool.models.base import Base, TimestampMixin  # noqa: F401
from stakepool.models.ledger import LedgerEntry  # noqa: F401

__all__ = [
    "Base",
    "TimestampMixin",
    "LedgerEntry",
]
