"""Core configuration for the staking pool service."""

from __future__ import annotations

import secrets
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STAKEPOOL_",
        case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "Stakepool Ledger"
    app_env: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    secret_key: str = Field(default_factory=lambda: secrets.token_urlsafe(64))
    cors_allowed_origins: str = "http://localhost:3000"
    jwt_access_token_expire_minutes: int = 60

    # ── Database ─────────────────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./stakepool.db"
    database_echo: bool = False
    journal_enabled: bool = True

    # ── Pool ─────────────────────────────────────────────────────────────
    pool_name: str = "PRT Staking Pool"
    pool_symbol: str = "PRT-POOL"
    pool_address: str = "prt-staking-pool"
    owner_address: str = "owner"
    depositor_address: str = "fee-split-extension"

    # ── Tokens ───────────────────────────────────────────────────────────
    principal_token_symbol: str = "PRT"
    reward_token_symbol: str = "SET"
    token_decimals: int = 18


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
