"""
Application configuration using Pydantic Settings.

Loads environment variables and provides typed configuration access.
"""

from typing import Optional

from pydantic_settings import BaseSettings

from app.core.paths import HISTORY_FILE


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "BillBiopsy"
    DEBUG: bool = False
    API_PREFIX: str = "/api"
    ENVIRONMENT: str = "development"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    # Rate card / history document
    HISTORY_FILE: str = str(HISTORY_FILE)
    MAX_HISTORY_BILLS: int = 100
    MAX_PRICES_PER_SERVICE: int = 50

    # Audit
    OVERCHARGE_MULTIPLIER: float = 1.5

    # Uploads
    MAX_UPLOAD_SIZE_MB: int = 10
    MAX_AUDIO_SIZE_MB: int = 25

    # Vision extraction (OpenAI)
    OPENAI_API_KEY: Optional[str] = None
    EXTRACTION_MODEL: str = "gpt-4o"
    EXTRACTION_FALLBACK_MODEL: Optional[str] = "gpt-4o-mini"

    # Complaint drafting and transcription (Groq)
    GROQ_API_KEY: Optional[str] = None
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    COMPLAINT_MODEL: str = "llama-3.1-8b-instant"
    TRANSCRIPTION_MODEL: str = "whisper-large-v3"

    # Rate limits (slowapi syntax)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_MODEL_CALLS: str = "10/minute"
    RATE_LIMIT_AUDIT: str = "60/minute"
    RATE_LIMIT_DEFAULT: str = "100/minute"

    # Error tracking
    SENTRY_DSN: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
