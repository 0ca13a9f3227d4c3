"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env files.
Validates fields and provides typed access to settings.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Optional:
        STORE_BACKEND: Document store adapter (memory | sqlite)
        SQLITE_PATH: Database file for the sqlite adapter
        USE_CACHE: Default cache flag for helpers built by create_helper()
        LOG_LEVEL: Logging level
        LOG_FILE: JSON Lines log file
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    STORE_BACKEND: Literal["memory", "sqlite"] = Field(
        default="memory", description="Document store adapter"
    )
    SQLITE_PATH: Path = Field(
        default=Path(".dochelper/documents.db"),
        description="Database file for the sqlite adapter",
    )

    USE_CACHE: bool = Field(
        default=True, description="Enable the per-collection read/write cache"
    )

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON Lines log file")

    @field_validator("STORE_BACKEND", mode="before")
    @classmethod
    def normalize_store_backend(cls, v: object) -> object:
        """Accept backend names in any case."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def store_backend(self) -> str:
        """Get store backend (lowercase alias)."""
        return self.STORE_BACKEND

    @property
    def use_cache(self) -> bool:
        """Get cache flag (lowercase alias)."""
        return self.USE_CACHE

    def ensure_directories(self) -> None:
        """Create the sqlite parent directory if it doesn't exist."""
        if self.STORE_BACKEND == "sqlite":
            self.SQLITE_PATH.parent.mkdir(parents=True, exist_ok=True)

    def redacted_display(self) -> dict[str, str | bool | None]:
        """Return settings for display."""
        return {
            "STORE_BACKEND": self.STORE_BACKEND,
            "SQLITE_PATH": str(self.SQLITE_PATH),
            "USE_CACHE": self.USE_CACHE,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
