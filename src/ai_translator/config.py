"""Configuration management for the translator."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # API Keys
    anthropic_api_key: Optional[str] = Field(None, description="ANTHROPIC_API_KEY")
    openai_api_key: Optional[str] = Field(None, description="OPENAI_API_KEY")
    gemini_api_key: Optional[str] = Field(None, description="GEMINI_API_KEY")

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Model Configuration
    default_model: str = "claude-sonnet-4-5-20250929"
    temperature: float = Field(0.2, ge=0.0, le=2.0)
    max_tokens: int = Field(8000, ge=1)

    # Translation Configuration
    max_attempts: int = Field(3, ge=1, description="Attempts per batch before giving up")
    stream_chunk_timeout: Optional[float] = Field(
        120.0, gt=0, description="Seconds to wait for the next streamed chunk; unset to wait forever"
    )
    default_batch_size: int = Field(25, ge=1)
    max_batch_size: int = Field(100, ge=1)
    max_concurrent_batches: int = Field(4, ge=1)

    # Logging
    log_level: str = "INFO"
    debug: bool = Field(False, description="Log raw model output of failed attempts")


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the application settings."""
    return settings
