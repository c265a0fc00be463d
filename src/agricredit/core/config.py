"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables or an optional .env file.
"""

import json
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "AgriCredit"
    APP_ENV: str = "development"
    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or console

    # Database - PostgreSQL (unset = in-memory activity history)
    DATABASE_URL: str | None = None

    @field_validator("DATABASE_URL")
    @classmethod
    def normalize_database_url(cls, v: str | None) -> str | None:
        """Force the asyncpg driver for plain postgres URLs."""
        if not v:
            return None
        for prefix in ("postgres://", "postgresql://"):
            if v.startswith(prefix):
                return "postgresql+asyncpg://" + v[len(prefix) :]
        return v

    # CORS - stored as comma-separated string to avoid pydantic-settings JSON parsing issues
    CORS_ORIGINS: str = "http://localhost:5173"

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        try:
            return json.loads(self.CORS_ORIGINS)
        except json.JSONDecodeError:
            return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    # Sarvam AI speech-to-text
    SARVAM_API_KEY: str | None = None
    SARVAM_API_URL: str = "https://api.sarvam.ai/speech-to-text"
    SARVAM_LANGUAGE: str | None = None
    SARVAM_MODEL: str | None = None

    # Groq (OpenAI-compatible chat completions) for activity extraction
    GROQ_API_KEY: str | None = None
    GROQ_API_URL: str = "https://api.groq.com/openai/v1/chat/completions"
    GROQ_MODEL: str = "llama-3.3-70b-versatile"

    # Timeout for outbound AI calls
    EXTERNAL_API_TIMEOUT_SECONDS: float = 30.0

    # Submission gating
    FRAUD_HARD_REJECT_SCORE: int = 70  # Aggregate fraud score that refuses a submission
    AUDIO_REJECT_SCORE: int = 60  # Audio heuristic score that short-circuits before transcription


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
