"""
Settings - Application configuration using Pydantic Settings.

Loads from environment variables and .env files.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Provider credentials - a provider is available when its key is set
    anthropic_api_key: str | None = None
    openai_api_key: str | None = None
    google_api_key: str | None = None
    stability_api_key: str | None = None
    ideogram_api_key: str | None = None

    # Provider endpoints
    anthropic_base_url: str = "https://api.anthropic.com"
    openai_base_url: str = "https://api.openai.com"
    google_base_url: str = "https://generativelanguage.googleapis.com"
    llm_timeout_seconds: float = 120.0
    llm_max_output_tokens: int = 8192
    llm_max_retries: int = 3

    # Routing defaults
    prefer_cost: bool = False
    prefer_speed: bool = False

    # Content management
    min_quality_score: int | None = None

    # Usage tracking
    usage_max_records: int = 10000

    # Logging
    log_level: str = "INFO"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False
    api_cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def provider_credentials(self) -> dict[str, str | None]:
        """Credential per provider name."""
        return {
            "anthropic": self.anthropic_api_key,
            "openai": self.openai_api_key,
            "google": self.google_api_key,
            "stability": self.stability_api_key,
            "ideogram": self.ideogram_api_key,
        }

    def configured_providers(self) -> set[str]:
        """Providers that have a credential present."""
        return {name for name, key in self.provider_credentials().items() if key}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
