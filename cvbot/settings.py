"""cvbot/settings.py

Runtime configuration for the résumé chatbot, loaded from environment
variables and an optional ``.env`` file.
"""

from __future__ import annotations

# Standard Library
import logging
from pathlib import Path
from typing import Annotated

# Third-Party Libraries
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_JWT_SECRET = "default-dev-secret-change-in-production"
DEFAULT_DASHBOARD_PASSWORD = "admin123"


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables / .env file.

    Attributes:
        gemini_api_key: Operator-set model API key. Always wins over a key
            entered through the dashboard.
        gemini_models: Ordered model candidates, newest first. Accepts a
            comma-separated string in the environment.
        gemini_base_url: Base URL of the generative language REST API.
        model_timeout: Per-call timeout (seconds) for the model service.
        data_dir: Directory holding profile.json, botConfig.json and
            secrets.json.
        jwt_secret: Signing secret for dashboard tokens; also the source of
            the at-rest encryption key for the stored API key.
        dashboard_password: Shared password for the admin dashboard.
        rate_limit_per_minute: Short-window cap per client.
        rate_limit_per_day: Long-window cap per client.
        cache_ttl_seconds: Lifetime of the profile/config read cache.
        history_turns: Number of prior turns replayed to the model.
        log_level: Root logging level.
        environment: ``development`` or ``production``.
        api_host: Bind address for the HTTP API.
        api_port: Bind port for the HTTP API.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    gemini_api_key: str = Field("", description="Operator-set model API key.")
    gemini_models: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: [
            "gemini-2.5-flash",
            "gemini-2.0-flash",
            "gemini-1.5-flash",
        ],
        description="Ordered model candidates, most capable/cheapest first.",
    )
    gemini_base_url: str = Field(
        "https://generativelanguage.googleapis.com/v1beta",
        description="Generative language REST endpoint.",
    )
    model_timeout: float = Field(60.0, description="Model call timeout in seconds.")
    data_dir: Path = Field(Path("data"), description="JSON data directory.")
    jwt_secret: str = Field(DEFAULT_JWT_SECRET)
    dashboard_password: str = Field(DEFAULT_DASHBOARD_PASSWORD)
    rate_limit_per_minute: int = Field(10, ge=1)
    rate_limit_per_day: int = Field(100, ge=1)
    cache_ttl_seconds: float = Field(60.0, ge=0)
    history_turns: int = Field(10, ge=0)
    log_level: str = Field("INFO")
    environment: str = Field("development")
    api_host: str = Field("0.0.0.0")
    api_port: int = Field(8000)

    @field_validator("gemini_models", mode="before")
    @classmethod
    def _split_models(cls, value: object) -> object:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @field_validator("gemini_api_key", mode="after")
    @classmethod
    def _strip_key(cls, value: str) -> str:
        return value.strip()

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


def check_environment_security(settings: Settings) -> list[str]:
    """Report insecure defaults that must not ship to production.

    Args:
        settings: The active settings.

    Returns:
        Human-readable warnings (empty outside production).
    """
    warnings: list[str] = []
    if settings.is_production:
        if not settings.jwt_secret or "default" in settings.jwt_secret:
            warnings.append("JWT_SECRET is not properly set for production")
        if settings.dashboard_password == DEFAULT_DASHBOARD_PASSWORD:
            warnings.append("DASHBOARD_PASSWORD is using default value - CHANGE IT!")
        if not settings.gemini_api_key:
            warnings.append(
                "GEMINI_API_KEY is not set - chat needs a key entered in the dashboard"
            )
    if warnings:
        logger.warning(
            "Security configuration issues detected: %s",
            "; ".join(warnings),
            extra={"important": True},
        )
    return warnings
