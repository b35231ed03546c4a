"""Application configuration module.

This module contains settings for the link shortener service,
loaded from environment variables with appropriate defaults.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Union

from pydantic import computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentType(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class CacheBackendType(str, Enum):
    REDIS = "redis"
    MEMORY = "memory"
    NULL = "null"


class RateLimitBackendType(str, Enum):
    REDIS = "redis"
    MEMORY = "memory"


class Settings(BaseSettings):
    """Application settings loaded from environment variables with defaults.

    Settings are loaded from environment variables, with fallback to
    values in .env file if present, and finally to the default values
    specified here.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    ENVIRONMENT: EnvironmentType = EnvironmentType.DEVELOPMENT

    # App Information
    APP_NAME: str = "Shortlink"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Expiring, optionally password-protected short links"

    # API Configuration
    BASE_URL: str = "http://localhost:8000"  # Used for generating short URLs
    FRONTEND_URL: str = "http://localhost:5173"  # Hosts the 404 and password gate pages
    API_PREFIX: str = "/api/v1"
    DEBUG: bool = False

    CORS_ORIGINS: Union[List[str], str] = ["*"]

    # PostgreSQL settings
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "shortlink"
    DATABASE_URL: Optional[str] = None  # Full override, e.g. sqlite+aiosqlite:///:memory:

    # PostgreSQL pool settings
    POSTGRES_POOL_SIZE: int = 20
    POSTGRES_POOL_MAX_OVERFLOW: int = 10
    POSTGRES_POOL_TIMEOUT: int = 30
    POSTGRES_POOL_RECYCLE: int = 300
    DB_COMMAND_TIMEOUT: float = 5.0  # Seconds before a single statement is aborted
    DB_ECHO: bool = False

    # Redis settings
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ""
    REDIS_DB: int = 0
    REDIS_URL: Optional[str] = None  # Full override
    REDIS_SOCKET_TIMEOUT: float = 1.0
    REDIS_MAX_CONNECTIONS: int = 20

    # Cache settings
    CACHE_ENABLED: bool = True
    CACHE_BACKEND: CacheBackendType = CacheBackendType.REDIS
    CACHE_KEY_PREFIX: str = "url:"

    # Rate limiting (shared budget for redirect and unlock, per client IP)
    # X-Forwarded-For is only honoured when the socket peer is one of these
    # addresses or networks
    TRUSTED_PROXIES: Union[List[str], str] = ["127.0.0.1", "::1"]
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_BACKEND: RateLimitBackendType = RateLimitBackendType.REDIS
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_REDIS_CHECK_INTERVAL: int = 10  # Seconds between Redis health checks
    RATE_LIMIT_REDIS_MAX_ERRORS: int = 3  # Max Redis errors before switching to memory backend

    # Link creation
    AUTO_SLUG_LENGTH: int = 8
    AUTO_SLUG_MAX_ATTEMPTS: int = 10
    SLUG_MAX_COLLISION_TRIES: int = 10  # Highest N probed in "slug-N"
    MANAGE_TOKEN_LENGTH: int = 32

    # Logging configuration
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_FILENAME: str = "app.log"
    LOG_TO_FILE: bool = False
    LOG_ROTATION: str = "10 MB"
    LOG_RETENTION: str = "7 days"
    LOG_FORMAT: str = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {name}:{function}:{line} | {message} | {extra}"
    LOG_JSON: bool = True
    REQUEST_LOGGING_ENABLED: bool = True

    # Expired link cleanup
    CLEANUP_ENABLED: bool = True
    CLEANUP_INTERVAL_MINUTES: int = 60
    CLEANUP_START_ON_STARTUP: bool = False

    # Scheduler settings
    SCHEDULER_JOB_COALESCE: bool = True  # Combine multiple pending executions of a job into a single execution
    SCHEDULER_JOB_MAX_INSTANCES: int = 1
    SCHEDULER_MISFIRE_GRACE_TIME: int = 15 * 60

    @field_validator("CORS_ORIGINS", "TRUSTED_PROXIES")
    def validate_list_or_string(cls, v: Union[List[str], str]) -> List[str]:
        """Convert comma-separated string to list if needed."""
        if isinstance(v, str):
            if not v.strip():
                return []
            if v == "*":
                return ["*"]
            return [item.strip() for item in v.split(",")]
        return v

    @field_validator("BASE_URL", "FRONTEND_URL")
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @computed_field
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        """Construct the SQLAlchemy database URI from settings or use override."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @computed_field
    def REDIS_URI(self) -> str:
        """Construct the Redis URI from settings or use override."""
        if self.REDIS_URL:
            return self.REDIS_URL
        password_part = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{password_part}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


settings = Settings()
