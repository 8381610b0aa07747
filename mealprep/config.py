"""
Application configuration using Pydantic settings.

All configurable values are loaded from environment variables with sensible defaults.
This centralizes configuration management and makes the application more flexible
across different environments (development, testing, production).
"""
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

# Get the directory containing this config file (mealprep/)
_PACKAGE_DIR = Path(__file__).parent.resolve()

_DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App metadata
    app_name: str = "Mise-En-Plaice API"
    app_version: str = "0.1.0"
    debug: bool = False

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL

    # CORS - development defaults, override via CORS_ORIGINS env var for production
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:3001",
        "http://localhost:5001",
    ]

    # Rate limiting configuration
    rate_limit_enabled: bool = True  # Set to False to disable rate limiting globally
    rate_limit_combine: str = "10/minute"  # Each combine request runs several LLM calls
    rate_limit_consolidate: str = "30/minute"

    # OpenAI configuration for extraction, combination and consolidation
    openai_api_key: Optional[str] = None  # Set via OPENAI_API_KEY env var
    openai_model: str = "gpt-4"  # Primary model
    openai_fallback_model: str = "gpt-3.5-turbo"  # Used when the primary model is unavailable
    openai_timeout_seconds: float = 60.0  # Per-request timeout
    openai_max_retries: int = 2  # SDK retries for transient failures

    # Sampling parameters per call type
    openai_extraction_temperature: float = 0.3
    openai_extraction_max_tokens: int = 2000
    openai_combine_temperature: float = 0.7
    openai_combine_max_tokens: int = 3000

    # Recipe page fetching
    fetch_timeout_seconds: float = 15.0
    fetch_user_agent: str = _DEFAULT_USER_AGENT

    # Guide persistence
    saved_guides_dir: Path = _PACKAGE_DIR / "saved-guides"

    # How long a combine session's shopping list stays available for pickup
    consolidation_result_ttl_seconds: int = 600

    model_config = SettingsConfigDict(
        env_file=_PACKAGE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def generative_configured(self) -> bool:
        """True when an OpenAI API key is available."""
        return bool(self.openai_api_key)


def get_settings(**overrides) -> Settings:
    """
    Factory function to create Settings instance.

    Useful for testing where you need to override specific values
    without modifying environment variables.

    Args:
        **overrides: Key-value pairs to override default settings

    Returns:
        Settings instance with overrides applied

    Example:
        test_settings = get_settings(debug=True, openai_model="gpt-4o")
    """
    return Settings(**overrides)


# Global settings instance
# In tests, you can reload this module or use get_settings() directly
settings = get_settings()
