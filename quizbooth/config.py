"""Configuration management for the question generation service."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # LLM API Keys (presence gates provider availability)
    deepseek_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None

    # LLM Models
    deepseek_model: str = "deepseek-chat"
    openai_model: str = "gpt-4o-mini"

    # Provider transport
    llm_request_timeout_seconds: float = 30.0
    max_retries_per_provider: int = 0

    # Batch generation
    question_batch_size: int = 5
    inter_batch_delay_seconds: float = 1.0
    default_question_count: int = 5

    # Progress tracking
    progress_cleanup_delay_seconds: float = 30.0

    # Document storage
    storage_backend: str = "firestore"  # "firestore" or "memory"
    google_cloud_project: Optional[str] = None

    # Error tracking
    sentry_dsn: Optional[str] = None
    sentry_environment: Optional[str] = None


# Global settings instance
settings = Settings()
