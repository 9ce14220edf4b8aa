"""Configuration management for the JalSetu water assistant."""

from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_CHAT_PROVIDERS = ("gemini", "perplexity", "edenai")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Gemini Configuration
    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gemini_api_key", "google_gemini_api_key"),
    )
    gemini_model: str = "gemini-1.5-pro"

    # Perplexity Configuration
    perplexity_api_key: Optional[str] = None
    perplexity_model: str = "llama-3.1-sonar-small-128k-online"

    # Eden AI Configuration
    eden_ai_api_key: Optional[str] = None
    eden_ai_provider: str = "openai"

    # Chat Configuration
    chat_provider: str = "gemini"
    provider_timeout_seconds: float = 60.0

    # Weather Configuration
    weather_api_key: Optional[str] = None
    weather_location: str = "Noida"

    # MongoDB Configuration
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "jalsetu"
    default_farm_id: int = 1

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 5000
    log_level: str = "INFO"
    enable_file_logging: bool = False
    cors_origins: List[str] = ["http://localhost:5173"]

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("chat_provider")
    @classmethod
    def validate_chat_provider(cls, v):
        provider = v.strip().lower()
        if provider not in SUPPORTED_CHAT_PROVIDERS:
            raise ValueError(f"Chat provider must be one of: {list(SUPPORTED_CHAT_PROVIDERS)}")
        return provider

    @field_validator("gemini_api_key", "perplexity_api_key", "eden_ai_api_key", "weather_api_key")
    @classmethod
    def blank_key_is_missing(cls, v):
        if v is not None and not v.strip():
            return None
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the cached application settings instance."""
    return Settings()


def validate_required_env_vars() -> List[str]:
    """Validate the environment configuration.

    Invalid values abort start-up. Missing provider keys only produce
    warnings because the chat falls back to the local knowledge base.

    Returns:
        List of warning messages for optional settings that are not configured
    """
    validation_errors = []
    warnings = []

    try:
        settings = get_settings()
    except Exception as e:
        print(f"✗ Configuration validation failed: {e}")
        print("  Please copy .env.example to .env and configure the variables")
        raise SystemExit(1)

    if not settings.mongodb_uri.startswith(("mongodb://", "mongodb+srv://")):
        validation_errors.append("MONGODB_URI must start with 'mongodb://' or 'mongodb+srv://'")

    if not (1 <= settings.api_port <= 65535):
        validation_errors.append("API_PORT must be between 1 and 65535")

    if settings.provider_timeout_seconds <= 0:
        validation_errors.append("PROVIDER_TIMEOUT_SECONDS must be positive")

    if settings.default_farm_id < 1:
        validation_errors.append("DEFAULT_FARM_ID must be a positive integer")

    if validation_errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in validation_errors)
        print(f"✗ {error_msg}")
        raise SystemExit(1)

    provider_keys = {
        "gemini": ("GEMINI_API_KEY", settings.gemini_api_key),
        "perplexity": ("PERPLEXITY_API_KEY", settings.perplexity_api_key),
        "edenai": ("EDEN_AI_API_KEY", settings.eden_ai_api_key),
    }
    for provider, (env_name, value) in provider_keys.items():
        if not value:
            warnings.append(f"{env_name} is not set; /api/chat/{provider} will answer from the local knowledge base")

    if not settings.weather_api_key:
        warnings.append("WEATHER_API_KEY is not set; dashboards will not include a forecast")

    for warning in warnings:
        print(f"! {warning}")

    print("✓ All required environment variables are properly configured")
    return warnings
