"""
Lumina Calendar — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # LLM — provider-agnostic (gemini, anthropic, openai)
    LLM_PROVIDER: str = "gemini"
    LLM_MODEL: str = ""          # empty → smart default per provider
    LLM_API_KEY: str
    LLM_TIMEOUT_SECONDS: float = 20.0

    # Event persistence (single key-value blob in SQLite)
    DATABASE_PATH: str = "data/lumina.db"
    STORAGE_KEY: str = "lumina_events"

    # Security
    ALLOWED_USER_IDS: list[int] = []

    # Wall-clock zone for AI-produced timestamps; empty → system local zone
    TIMEZONE: str = ""

    # Grid layout
    HOUR_UNIT_HEIGHT: float = 80.0
    MIN_EVENT_HEIGHT: float = 20.0
    MONTH_CELL_EVENT_CAP: int = 3
    MONTH_SORT_BY_START: bool = False

    DEFAULT_EVENT_COLOR: str = "#3b82f6"

    @field_validator("ALLOWED_USER_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @field_validator("MONTH_SORT_BY_START", mode="before")
    @classmethod
    def parse_flag(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        return str(v).strip().lower() in ("1", "true", "yes", "on")

    @field_validator("MONTH_CELL_EVENT_CAP", mode="before")
    @classmethod
    def parse_cap(cls, v: str | int) -> int:
        cap = int(v)
        if cap < 0:
            raise ValueError("MONTH_CELL_EVENT_CAP must be >= 0")
        return cap


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")
    llm_api_key = os.getenv("LLM_API_KEY", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    if not llm_api_key or llm_api_key.startswith("your-"):
        print("ERROR: LLM_API_KEY is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        LLM_PROVIDER=os.getenv("LLM_PROVIDER", "gemini"),
        LLM_MODEL=os.getenv("LLM_MODEL", ""),
        LLM_API_KEY=llm_api_key,
        LLM_TIMEOUT_SECONDS=os.getenv("LLM_TIMEOUT_SECONDS", "20"),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/lumina.db"),
        STORAGE_KEY=os.getenv("STORAGE_KEY", "lumina_events"),
        ALLOWED_USER_IDS=os.getenv("ALLOWED_USER_IDS", ""),
        TIMEZONE=os.getenv("TIMEZONE", ""),
        HOUR_UNIT_HEIGHT=os.getenv("HOUR_UNIT_HEIGHT", "80"),
        MIN_EVENT_HEIGHT=os.getenv("MIN_EVENT_HEIGHT", "20"),
        MONTH_CELL_EVENT_CAP=os.getenv("MONTH_CELL_EVENT_CAP", "3"),
        MONTH_SORT_BY_START=os.getenv("MONTH_SORT_BY_START", "false"),
        DEFAULT_EVENT_COLOR=os.getenv("DEFAULT_EVENT_COLOR", "#3b82f6"),
    )


# Singleton — imported by all other modules as:
#   from src.config import settings
settings = _load_settings()
