"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, seat layout, notification timeouts, etc.)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import Optional, Literal, List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # Persistence
    STORAGE_BACKEND: Literal["mongo", "memory"] = Field(
        default="mongo",
        description="Where the seat store writes through to"
    )
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="vidhyadham",
        description="MongoDB database name"
    )

    # Seat layout
    TOTAL_SEATS: int = Field(
        default=114,
        ge=1,
        description="Number of seats created at initialization (1..N)"
    )
    SEATS_PER_PAGE: int = Field(
        default=60,
        ge=1,
        description="Page size of the dashboard seat grid"
    )

    # Fees
    FEE_CYCLE_DAYS: int = Field(
        default=30,
        ge=1,
        description="Length of one fee cycle in days"
    )
    REMINDER_DAYS_BEFORE_DUE: int = Field(
        default=3,
        ge=0,
        description="Send a reminder this many days before the due date"
    )

    # Scheduler
    SCHEDULER_ENABLED: bool = Field(
        default=True,
        description="Run the periodic due-date sweep"
    )
    SCHEDULER_INTERVAL_HOURS: float = Field(
        default=24,
        gt=0,
        description="Hours between due-date sweeps"
    )

    # Telegram
    TELEGRAM_API_URL: str = Field(
        default="https://api.telegram.org",
        description="Default Telegram Bot API server"
    )
    TELEGRAM_TIMEOUT_SECONDS: float = Field(
        default=15.0,
        description="Telegram API request timeout in seconds"
    )

    # Email
    SMTP_TIMEOUT_SECONDS: float = Field(
        default=20.0,
        description="SMTP connection timeout in seconds"
    )

    # Uploads
    UPLOAD_DIR: str = Field(
        default="uploads",
        description="Directory identity documents are written to"
    )
    UPLOAD_MAX_BYTES: int = Field(
        default=5 * 1024 * 1024,
        description="Maximum size of an uploaded identity document"
    )
    UPLOAD_ALLOWED_TYPES: List[str] = Field(
        default=["image/jpeg", "image/jpg", "image/png", "application/pdf"],
        description="Accepted MIME types for identity documents"
    )
    APP_URL: str = Field(
        default="http://localhost:8000",
        description="Public base URL (used to build upload URLs)"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @validator("MONGODB_URL")
    def validate_mongodb_url(cls, v, values):
        """Mongo backend needs a URL."""
        if values.get("STORAGE_BACKEND") == "mongo" and not v:
            raise ValueError("MONGODB_URL is required when STORAGE_BACKEND is 'mongo'")
        return v

    @validator("SEATS_PER_PAGE")
    def validate_page_size(cls, v, values):
        """A page can never be larger than the hall."""
        total = values.get("TOTAL_SEATS")
        if total and v > total:
            return total
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def uses_mongo(self) -> bool:
        return self.STORAGE_BACKEND == "mongo"

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if settings.uses_mongo and not settings.MONGODB_DB_NAME:
        errors.append("MONGODB_DB_NAME is required")

    if not settings.UPLOAD_ALLOWED_TYPES:
        errors.append("UPLOAD_ALLOWED_TYPES must not be empty")

    # Production-specific validations
    if settings.is_production:
        if settings.STORAGE_BACKEND == "memory":
            errors.append("STORAGE_BACKEND=memory is not durable; use mongo in production")
        if "*" in settings.CORS_ORIGINS:
            errors.append("CORS_ORIGINS must be restricted in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
