"""
Configuration settings for carddown.

Uses Pydantic Settings for environment variable management with .env file support.
All variables use the CARDDOWN_ prefix, e.g. CARDDOWN_DATA_DIR or CARDDOWN_ALGORITHM.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CARDDOWN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".local" / "state" / "carddown",
        description="Directory holding the card store, global state, scan index and lock",
    )

    # ========================================
    # Scanning
    # ========================================
    file_types: str = Field(
        default="md,txt,org",
        description="Comma-separated file extensions searched for flashcards",
    )

    # ========================================
    # Revision
    # ========================================
    algorithm: Literal["sm2", "sm5", "simple8"] = Field(
        default="sm5",
        description="Spaced repetition algorithm",
    )
    leech_threshold: int = Field(
        default=15,
        ge=1,
        description="Failures after which a card is marked as a leech",
    )
    leech_method: Literal["skip", "warn"] = Field(
        default="skip",
        description="Skip leech cards or show them with a warning",
    )
    max_cards: int = Field(
        default=30,
        ge=1,
        description="Maximum cards per revise session",
    )
    max_duration_minutes: int = Field(
        default=20,
        ge=1,
        description="Maximum revise session length in minutes",
    )
    cram_hours: int = Field(
        default=12,
        ge=0,
        description="Hours since last revision before a card is due in cram mode",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Loguru level for stderr output",
    )

    @field_validator("data_dir", mode="before")
    @classmethod
    def expand_data_dir(cls, v):
        return Path(v).expanduser()

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @property
    def file_type_list(self) -> list[str]:
        """Normalized extensions without the leading dot."""
        return [t.strip().lstrip(".").lower() for t in self.file_types.split(",") if t.strip()]

    @property
    def cards_path(self) -> Path:
        return self.data_dir / "cards.json"

    @property
    def state_path(self) -> Path:
        return self.data_dir / "state.json"

    @property
    def scan_index_path(self) -> Path:
        return self.data_dir / "scan_index.json"

    @property
    def lock_path(self) -> Path:
        return self.data_dir / "carddown.lock"

    def ensure_data_dir(self) -> Path:
        """Create the data directory if needed."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        return self.data_dir


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
