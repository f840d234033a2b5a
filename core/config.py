"""
Configuration settings for Dentalogix Backend.

Uses Pydantic Settings for environment variable management.
"""

import os
from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Environment
    ENV: str = Field(default="development", env="ENV")
    DEBUG: bool = Field(default=False, env="DEBUG")
    LOG_LEVEL: str = Field(default="INFO", env="LOG_LEVEL")

    # Logging Control
    ENABLE_FILE_LOGGING: bool = Field(default=True, env="ENABLE_FILE_LOGGING")
    ENABLE_REQUEST_LOGGING: bool = Field(default=True, env="ENABLE_REQUEST_LOGGING")

    # Application
    APP_NAME: str = Field(default="Dentalogix Backend", env="APP_NAME")
    VERSION: str = Field(default="1.0.0", env="VERSION")

    # Server
    HOST: str = Field(default="0.0.0.0", env="HOST")
    PORT: int = Field(default=8000, env="PORT")

    REDIS_URL: str = Field(default="redis://localhost:6379/0", env="REDIS_URL")
    CELERY_BROKER_URL: str = Field(default="redis://localhost:6379/0", env="CELERY_BROKER_URL")
    CELERY_RESULT_BACKEND: str = Field(default="redis://localhost:6379/0", env="CELERY_RESULT_BACKEND")

    origins: List[str] = [
        "http://localhost:3000",  # site frontend
        "http://localhost:5173",
    ]

    DATABASE_URL: Optional[str] = Field(default=None, env="DATABASE_URL")
    PRODUCTION_DATABASE_URL: Optional[str] = Field(default=None, env="PRODUCTION_DATABASE_URL")

    @property
    def database_url(self) -> str:
        if self.ENV == "development":
            return self.DATABASE_URL or "sqlite+aiosqlite:///./dentalogix.db"
        return self.PRODUCTION_DATABASE_URL or self.DATABASE_URL or ""

    @property
    def sync_database_url(self) -> str:
        """Database URL with the async driver swapped for its sync counterpart (Celery workers)."""
        url = self.database_url
        if "+asyncpg" in url:
            url = url.replace("postgresql+asyncpg", "postgresql+psycopg2")
        if "+aiosqlite" in url:
            url = url.replace("sqlite+aiosqlite", "sqlite")
        return url

    DATABASE_POOL_SIZE: int = Field(default=10, env="DATABASE_POOL_SIZE")
    DATABASE_MAX_OVERFLOW: int = Field(default=20, env="DATABASE_MAX_OVERFLOW")
    SEED_ON_STARTUP: bool = Field(default=True, env="SEED_ON_STARTUP")  # single-process deployments only

    # Email Configuration (Mailgun)
    MAILGUN_API_URL: Optional[str] = Field(default=None, env="MAILGUN_API_URL")
    MAILGUN_API_KEY: Optional[str] = Field(default=None, env="MAILGUN_API_KEY")
    MAILGUN_TIMEOUT_SECONDS: float = Field(default=30.0, env="MAILGUN_TIMEOUT_SECONDS")
    MAIL_FROM: Optional[str] = Field(default=None, env="MAIL_FROM")
    NOTIFICATION_EMAIL: Optional[str] = Field(default=None, env="NOTIFICATION_EMAIL")

    # Practice / site
    SITE_NAME: str = Field(default="Dentalogix", env="SITE_NAME")
    SITE_URL: str = Field(default="", env="SITE_URL")

    # Quiz
    QUIZ_MAX_RECOMMENDATIONS: int = Field(default=3, env="QUIZ_MAX_RECOMMENDATIONS")
    QUIZ_STATS_TOP_N: int = Field(default=5, env="QUIZ_STATS_TOP_N")

    # Sentry (Optional)
    SENTRY_DSN: Optional[str] = Field(default=None, env="SENTRY_DSN")
    SENTRY_ENVIRONMENT: str = Field(default="development", env="SENTRY_ENVIRONMENT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Create settings instance
settings = Settings()


def get_env_file() -> str:
    """Get the appropriate environment file based on ENV setting."""
    env_file = f".env.{settings.ENV}"
    if os.path.exists(env_file):
        return env_file
    return ".env"


# Update settings with environment-specific file
settings = Settings(_env_file=get_env_file())
