"""
Configuration Utility - Environment Variables Management

Centralized configuration loading from .env files using pydantic-settings.
Type-safe access to all environment variables with validation.

Usage:
    from utils.config import settings

    api_base = settings.STRIPE_API_BASE
    export_dir = settings.EXPORT_DIR
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Billing API Configuration
    STRIPE_TOKEN: str = Field(default="")
    STRIPE_API_BASE: str = Field(default="https://api.stripe.com/v1/events")
    STRIPE_EVENT_TYPE: str = Field(default="customer.subscription.*")
    API_TIMEOUT: float = Field(default=30.0)

    # Time Window
    START_DATE: str | None = Field(default=None)
    REFERENCE_TIMEZONE: str = Field(default="UTC")
    START_LEAD_MINUTES: int = Field(default=75)

    # Extraction Configuration
    RUN_ONCE: bool = Field(default=False)
    EXTRACT_SCHEDULE_CRON: str = Field(default="0 3 * * *")
    EXTRACT_PAGE_BUDGET: int = Field(default=1)
    EXTRACT_MAX_RETRIES: int = Field(default=0)
    PAGE_DELAY_SECONDS: float = Field(default=1.0)

    # File System Paths
    EXPORT_DIR: str = Field(default="exports")
    EXPORT_STEM: str = Field(default="output")
    FIELD_TYPES_PATH: str | None = Field(default=None)

    # Warehouse Configuration
    LOAD_ENABLED: bool = Field(default=True)
    GCP_CREDENTIALS_PATH: str = Field(default="service_account_key.json")
    GCP_PROJECT: str | None = Field(default=None)
    BIGQUERY_DATASET: str = Field(default="stripe")
    BIGQUERY_TABLE: str = Field(default="initial_load")
    GCS_BUCKET: str = Field(default="gcp-upload-bucket")
    LOAD_MAX_RETRIES: int = Field(default=2)

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")

    # Application Metadata
    ENVIRONMENT: str = Field(default="production")
    APP_NAME: str = Field(default="billing-events-extractor")
    APP_VERSION: str = Field(default="0.1.0")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Singleton Settings instance
    """
    return Settings()


# Global settings instance
settings = get_settings()
