# src/config/settings.py
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for vendor credentials, retry policy and logging.
The instance is built once at startup and treated as read-only afterwards;
the backend registry is derived from it (see llm/client_factory.py).
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is missing or internally inconsistent."""


# Vendors with a built-in transport. Mirrors llm/client_factory.py registry.
SUPPORTED_VENDORS: tuple[str, ...] = (
    "anthropic",
    "gemini",
    "groq",
    "ollama",
    "openai",
    "openrouter",
    "zai",
)


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Routing ===
    default_vendor: str = "openai"
    default_model: str = "gpt-4o-mini"

    # === Credentials ===
    openai_api_key: str = ""
    openai_organization: str = ""
    anthropic_api_key: str = ""
    gemini_api_key: str = ""
    groq_api_key: str = ""
    openrouter_api_key: str = ""
    zai_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434"

    # Base paths for OpenAI-compatible backends. Z.ai does not follow /v1.
    openai_base_url: str = ""
    groq_base_url: str = "https://api.groq.com/openai/v1"
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    zai_base_url: str = "https://api.z.ai/api/paas/v4"

    # === Request defaults ===
    timeout_s: float = 30.0
    max_tokens: int = 4096
    temperature: float | None = None

    # === Retry policy ===
    retry_max_attempts: int = 3
    retry_base_delay_s: float = 1.0
    retry_max_delay_s: float = 30.0
    retry_backoff_factor: float = 2.0
    retry_jitter_ratio: float = 0.25

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("default_vendor")
    @classmethod
    def normalize_default_vendor(cls, v: str) -> str:  # noqa: N805
        return v.strip().lower()

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.default_vendor and self.default_vendor not in SUPPORTED_VENDORS:
            errors.append(
                f"DEFAULT_VENDOR {self.default_vendor!r} is not one of "
                f"{', '.join(SUPPORTED_VENDORS)}"
            )

        if self.retry_max_attempts < 1:
            errors.append("RETRY_MAX_ATTEMPTS must be >= 1")

        if not 0.0 <= self.retry_jitter_ratio <= 1.0:
            errors.append("RETRY_JITTER_RATIO must be within [0, 1]")

        if self.retry_base_delay_s < 0 or self.retry_base_delay_s > self.retry_max_delay_s:
            errors.append("RETRY_BASE_DELAY_S must be within [0, RETRY_MAX_DELAY_S]")

        if self.retry_backoff_factor < 1.0:
            errors.append("RETRY_BACKOFF_FACTOR must be >= 1")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    def api_key_for(self, vendor: str) -> str:
        """Return the configured API key for a vendor ('' when unset)."""
        return getattr(self, f"{vendor}_api_key", "") or ""


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or embedding).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
