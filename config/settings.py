"""Pydantic BaseSettings — all amounts are integer base units, never float."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from env / .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Application ─────────────────────────────────────────────
    APP_ENV: Literal["dev", "test", "prod"] = "dev"
    APP_NAME: str = "poolshare"
    LOG_LEVEL: str = "INFO"

    # ── Reward economics (basis points / percent) ───────────────
    PLATFORM_FEE_BPS: int = Field(default=250, ge=0, le=10_000)
    STAKING_ANNUAL_RATE_BPS: int = Field(default=500, ge=0)
    RECYCLING_MULTIPLIER_PCT: int = Field(default=100, ge=0)

    # ── Queries ─────────────────────────────────────────────────
    DEFAULT_PAGE_LIMIT: int = Field(default=50, gt=0)

    # ── Events ──────────────────────────────────────────────────
    # Events kept in memory by the bus for replay/inspection.
    EVENT_HISTORY_MAXLEN: int = Field(default=10_000, ge=0)


settings = Settings()
