"""Conversions between human-readable amounts and integer base units."""

from __future__ import annotations

from decimal import Decimal

DEFAULT_DECIMALS = 18


def to_base_units(value: str | int | float | Decimal, decimals: int = DEFAULT_DECIMALS) -> int:
    """Convert ``"1.5"`` to ``1500000000000000000`` (18 decimals).

    Digits beyond ``decimals`` are truncated.
    """
    return int(Decimal(str(value)) * (Decimal(10) ** decimals))


def from_base_units(value: int, decimals: int = DEFAULT_DECIMALS) -> str:
    return f"{Decimal(value) / (Decimal(10) ** decimals):f}"


def ether(value: str | int | float | Decimal) -> int:
    """Shorthand for 18-decimal amounts."""
    return to_base_units(value, DEFAULT_DECIMALS)
