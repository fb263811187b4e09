"""
Centralized configuration management for the Flashbrain application.
"""
from typing import Optional

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Defines application settings, loaded from environment variables or .env files.
    """
    model_config = SettingsConfigDict(
        env_prefix="FLASHBRAIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # --- Server ---
    host: str = "127.0.0.1"
    port: int = 5000
    log_level: str = "INFO"

    # --- Client ---
    # Base URL the terminal client talks to. FLASHBRAIN_API_URL overrides it.
    api_url: str = "http://127.0.0.1:5000"

    # --- AI generation ---
    # No default: the key must come from the environment or .env.
    openrouter_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices(
            "FLASHBRAIN_OPENROUTER_API_KEY", "OPENROUTER_API_KEY"
        ),
    )
    generation_endpoint: str = "https://openrouter.ai/api/v1/chat/completions"
    generation_model: str = "deepseek/deepseek-r1-0528:free"
    generation_timeout: float = 60.0


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
