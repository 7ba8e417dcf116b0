"""Create the operation journal

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Ledger Entries ───────────────────────────────────────────────────
    op.create_table(
        "ledger_entries",
        sa.Column("seq", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("pool_address", sa.String(200), nullable=False),
        sa.Column("op", sa.String(30), nullable=False),
        sa.Column("caller", sa.String(200), nullable=False),
        sa.Column("token", sa.String(20), nullable=True),
        sa.Column("target", sa.String(200), nullable=True),
        sa.Column("amount", sa.String(80), nullable=True),
        sa.Column("result", sa.String(80), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ── Indexes ──────────────────────────────────────────────────────────
    op.create_index("ix_ledger_entries_pool_address", "ledger_entries", ["pool_address"])


def downgrade() -> None:
    op.drop_index("ix_ledger_entries_pool_address", table_name="ledger_entries")
    op.drop_table("ledger_entries")
