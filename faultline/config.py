"""Configuration from environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """faultline configuration loaded from ``FAULTLINE_*`` environment variables."""

    # History persistence
    history_dir: str = ".faultline"  # relative to the workspace root
    history_file: str = "error_history.json"
    history_flush_every: int = Field(default=10, ge=1)  # auto-flush after this many new entries

    # Similarity thresholds (Jaccard over lower-cased word sets)
    dedup_similarity: float = 0.7
    suggest_similarity: float = 0.6

    # Correlation heuristics
    proximity_window: int = 10  # lines, strict
    max_chain_length: int = 10

    # Predictor
    recurring_min_frequency: int = Field(default=2, ge=1)

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="FAULTLINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
