#!/usr/bin/env python3
"""Unit tests for environment-driven settings."""

import pytest

from explorer_backend.settings import Settings


@pytest.mark.unit
class TestSettingsFromEnv:
    """Tests for Settings.from_env."""

    def test_defaults(self, monkeypatch):
        """Test that an empty environment gives the defaults."""
        for name in ("HOST", "PORT", "CORS_ORIGINS", "INCLUDE_SCALARS", "LOG_LEVEL"):
            monkeypatch.delenv(f"SCHEMAGRAPH_{name}", raising=False)

        settings = Settings.from_env()

        assert settings.port == 8765
        assert settings.include_scalars is True
        assert settings.log_level == "INFO"

    def test_overrides(self, monkeypatch):
        """Test that environment variables override each setting."""
        monkeypatch.setenv("SCHEMAGRAPH_PORT", "9000")
        monkeypatch.setenv("SCHEMAGRAPH_CORS_ORIGINS", "http://a.test, http://b.test")
        monkeypatch.setenv("SCHEMAGRAPH_INCLUDE_SCALARS", "false")
        monkeypatch.setenv("SCHEMAGRAPH_TICKS_PER_FRAME", "4")
        monkeypatch.setenv("SCHEMAGRAPH_LOG_LEVEL", "debug")

        settings = Settings.from_env()

        assert settings.port == 9000
        assert settings.cors_origins == ["http://a.test", "http://b.test"]
        assert settings.include_scalars is False
        assert settings.ticks_per_frame == 4
        assert settings.log_level == "DEBUG"
