"""
LexFlow Configuration
Pydantic Settings for environment-based configuration.
Single source of truth for all workflow settings.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import model_validator


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Use .env file for local development, env vars for production.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # App Identity
    # ==========================================================================
    app_name: str = "LexFlow"
    app_version: str = "1.0.0"

    # ==========================================================================
    # Generative Model (Google Gemini)
    # ==========================================================================
    gemini_api_key: str = ""
    google_api_key: str = ""  # Alias for gemini_api_key
    gemini_model: str = "gemini-2.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    model_timeout: float = 60.0  # seconds per request
    model_max_retries: int = 3
    default_temperature: float = 0.3
    default_max_tokens: int = 8192

    @model_validator(mode="after")
    def fall_back_to_google_key(self) -> "Settings":
        """Accept GOOGLE_API_KEY when GEMINI_API_KEY is not set."""
        if not self.gemini_api_key and self.google_api_key:
            self.gemini_api_key = self.google_api_key
        return self

    # ==========================================================================
    # Case Law Research (CourtListener)
    # ==========================================================================
    courtlistener_api_key: str = ""
    courtlistener_base_url: str = "https://www.courtlistener.com/api/rest/v4"
    courtlistener_timeout: float = 30.0

    # ==========================================================================
    # Workflow Engine
    # ==========================================================================
    max_concurrent_tasks: int = 5
    task_history_limit: int = 100  # finished tasks kept for case-history lookup

    # ==========================================================================
    # Logging
    # ==========================================================================
    log_level: str = "INFO"
    log_json_format: bool = False
    log_file: str = ""


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Call get_settings.cache_clear() to reload after env changes.
    """
    return Settings()
