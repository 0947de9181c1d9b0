"""tests/test_settings.py

Unit tests for environment-driven settings (cvbot/settings.py).
"""

from __future__ import annotations

# Third-Party Libraries
import pytest

# Local Modules
from cvbot.settings import DEFAULT_DASHBOARD_PASSWORD, DEFAULT_JWT_SECRET, Settings, check_environment_security


class TestSettings:
    """Environment parsing."""

    def test_models_from_comma_list(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test GEMINI_MODELS is split on commas and trimmed."""
        monkeypatch.setenv("GEMINI_MODELS", " model-x, model-y ,,")
        assert Settings(_env_file=None).gemini_models == ["model-x", "model-y"]

    def test_key_is_stripped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test surrounding whitespace in the env key is dropped."""
        monkeypatch.setenv("GEMINI_API_KEY", "  AIzaKey  ")
        assert Settings(_env_file=None).gemini_api_key == "AIzaKey"

    def test_is_production(self) -> None:
        """Test the environment flag is case-insensitive."""
        assert Settings(_env_file=None, environment="Production").is_production
        assert not Settings(_env_file=None, environment="development").is_production


class TestEnvironmentSecurity:
    """Insecure default detection."""

    def test_quiet_outside_production(self) -> None:
        """Test development never warns."""
        settings = Settings(_env_file=None, environment="development")
        assert check_environment_security(settings) == []

    def test_production_defaults_flagged(self) -> None:
        """Test default secret, password and missing key are all reported."""
        settings = Settings(
            _env_file=None,
            environment="production",
            jwt_secret=DEFAULT_JWT_SECRET,
            dashboard_password=DEFAULT_DASHBOARD_PASSWORD,
            gemini_api_key="",
        )
        warnings = check_environment_security(settings)
        assert len(warnings) == 3

    def test_production_configured(self) -> None:
        """Test a properly configured deployment passes."""
        settings = Settings(
            _env_file=None,
            environment="production",
            jwt_secret="a-long-random-value",
            dashboard_password="s3cret",
            gemini_api_key="AIzaKey",
        )
        assert check_environment_security(settings) == []
