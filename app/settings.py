"""
Application configuration using Pydantic BaseSettings.

Values come from the environment or a local .env file and are read once,
the first time get_settings() is called.
"""

from typing import Optional

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # the single credential for the generation service
    openai_api_key: Optional[SecretStr] = None

    quick_model: str = Field(
        default="gpt-4o-mini",
        validation_alias=AliasChoices("OPENAI_MODEL", "QUICK_MODEL"),
    )
    deep_model: str = Field(
        default="o4-mini",
        validation_alias=AliasChoices("DEEP_MODEL", "OPENAI_DEEP_MODEL"),
    )

    request_timeout_seconds: float = 60.0
    log_level: str = "INFO"

    @field_validator("request_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError("request_timeout_seconds must be positive")
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Force reload settings from environment (tests, changed .env)."""
    global _settings
    _settings = Settings()
    return _settings
