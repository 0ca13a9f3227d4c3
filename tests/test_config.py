"""
Tests for configuration module.
"""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from dochelper.config import Settings, clear_settings_cache, get_settings


class TestSettings:
    """Tests for Settings loading and validation."""

    def test_defaults(self) -> None:
        """Test defaults without any environment."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.STORE_BACKEND == "memory"
        assert settings.USE_CACHE is True
        assert settings.LOG_LEVEL == "INFO"
        assert settings.LOG_FILE is None

    def test_settings_loads_from_env(self, mock_env_vars: dict[str, str]) -> None:
        """Test that settings read environment variables."""
        settings = get_settings()

        assert settings.store_backend == "sqlite"
        assert str(settings.SQLITE_PATH) == mock_env_vars["SQLITE_PATH"]
        assert settings.use_cache is True
        assert settings.LOG_LEVEL == "WARNING"

    def test_backend_is_case_insensitive(self) -> None:
        """Test that backend names are normalized."""
        settings = Settings(_env_file=None, STORE_BACKEND=" SQLite ")

        assert settings.STORE_BACKEND == "sqlite"

    def test_unknown_backend_rejected(self) -> None:
        """Test that unsupported backends fail validation."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, STORE_BACKEND="redis")

    def test_use_cache_parsed_from_env(self) -> None:
        """Test boolean parsing of USE_CACHE."""
        with patch.dict(os.environ, {"USE_CACHE": "false"}):
            clear_settings_cache()
            assert get_settings().USE_CACHE is False

    def test_get_settings_is_cached(self) -> None:
        """Test the settings singleton and its reset."""
        first = get_settings()
        assert get_settings() is first

        clear_settings_cache()
        assert get_settings() is not first

    def test_redacted_display(self) -> None:
        """Test the display mapping used by the CLI."""
        display = Settings(_env_file=None, STORE_BACKEND="memory").redacted_display()

        assert display["STORE_BACKEND"] == "memory"
        assert set(display) == {"STORE_BACKEND", "SQLITE_PATH", "USE_CACHE", "LOG_LEVEL", "LOG_FILE"}
