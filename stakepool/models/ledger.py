"""Journal of state-changing pool operations."""

from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from stakepool.models.base import Base, TimestampMixin


class LedgerEntry(Base, TimestampMixin):
    """One successful operation, replayed in ``seq`` order on startup.

    Token amounts are stored as decimal strings because base-unit values
    routinely exceed 64-bit integer columns.
    """

    __tablename__ = "ledger_entries"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pool_address: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    op: Mapped[str] = mapped_column(String(30), nullable=False)
    caller: Mapped[str] = mapped_column(String(200), nullable=False)
    token: Mapped[str | None] = mapped_column(String(20), nullable=True)  # principal, reward
    target: Mapped[str | None] = mapped_column(String(200), nullable=True)
    amount: Mapped[str | None] = mapped_column(String(80), nullable=True)
    result: Mapped[str | None] = mapped_column(String(80), nullable=True)
