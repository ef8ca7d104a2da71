"""
Module: settings

Purpose: Centralized configuration management for chartpages.

Key Functions:
- get_settings: Load settings from environment variables
- Settings: Pydantic settings model with validation

Architecture Notes:
- Uses pydantic-settings for type-safe configuration
- All settings have sensible defaults
- Environment variables (prefix CHARTPAGES_) override defaults
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from chartpages.data.schemas import DataFormat


class Settings(BaseSettings):
    """Runtime configuration for page and report builds."""

    model_config = SettingsConfigDict(
        env_prefix="CHARTPAGES_",
        extra="ignore",
    )

    default_dataformat: DataFormat = Field(
        default=DataFormat.EMBEDDED,
        description="Format used by pages that do not declare one",
    )
    cdn_base: str = Field(
        default="https://cdn.jsdelivr.net/npm",
        description="Base URL for browser libraries (D3, PapaParse, Arrow, parquet-wasm)",
    )
    manifest_path: Path | None = Field(
        default=None,
        description="Shared manifest appended to after each build, if set",
    )
    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, read once from the environment."""
    return Settings()
