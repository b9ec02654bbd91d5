"""
Centralized configuration management for crusty-buffer services.
Uses Pydantic Settings for validation and type safety.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppBaseSettings(BaseSettings):
    """Base settings with shared configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class RedisSettings(AppBaseSettings):
    """Hot store (Redis) configuration settings."""

    redis_url: Optional[str] = Field(
        default=None,
        validation_alias="REDIS_URL",
    )
    redis_host: str = Field(
        default="localhost",
        validation_alias="REDIS_HOST",
    )
    redis_port: int = Field(
        default=6379,
        validation_alias="REDIS_PORT",
    )
    redis_db: int = Field(
        default=0,
        validation_alias="REDIS_DB",
    )
    redis_password: Optional[str] = Field(
        default=None,
        validation_alias="REDIS_PASSWORD",
    )
    redis_timeout: float = Field(
        default=5.0,
        validation_alias="REDIS_TIMEOUT",
    )

    def connection_url(self) -> str:
        """Return REDIS_URL, or build one from the individual components."""
        if self.redis_url:
            return self.redis_url
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"


class ColdStoreSettings(AppBaseSettings):
    """Cold store (embedded content database) configuration settings."""

    path: str = Field(
        default="./archive-data",
        validation_alias="COLD_STORE_PATH",
    )
    busy_timeout: float = Field(
        default=15.0,
        validation_alias="COLD_STORE_BUSY_TIMEOUT",
    )

    @field_validator("path", mode="before")
    @classmethod
    def strip_path(cls, v):
        """An empty or blank path disables the cold store."""
        if v is None:
            return ""
        return str(v).strip()

    @property
    def enabled(self) -> bool:
        return bool(self.path)


class WorkerSettings(AppBaseSettings):
    """Archive worker configuration settings."""

    enabled: bool = Field(
        default=True,
        validation_alias="WORKER_ENABLED",
    )
    concurrency: int = Field(
        default=1,
        ge=0,
        validation_alias="WORKER_CONCURRENCY",
    )
    extraction_timeout: float = Field(
        default=30.0,
        gt=0,
        validation_alias="EXTRACTION_TIMEOUT",
    )
    dequeue_backoff: float = Field(
        default=1.0,
        ge=0,
        validation_alias="DEQUEUE_BACKOFF",
    )
    # BRPOP treats 0 as "block forever", which would make shutdown unbounded.
    poll_interval: int = Field(
        default=1,
        ge=1,
        validation_alias="WORKER_POLL_INTERVAL",
    )
    shutdown_grace: float = Field(
        default=5.0,
        ge=0,
        validation_alias="WORKER_SHUTDOWN_GRACE",
    )
    save_max_retries: int = Field(
        default=3,
        ge=0,
        validation_alias="SAVE_MAX_RETRIES",
    )
    retry_delay: float = Field(
        default=1.0,
        ge=0,
        validation_alias="RETRY_DELAY",
    )
    retry_backoff_factor: float = Field(
        default=2.0,
        ge=1.0,
        validation_alias="RETRY_BACKOFF_FACTOR",
    )
    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; crusty-buffer/1.0)",
        validation_alias="USER_AGENT",
    )


class LoggingSettings(AppBaseSettings):
    """Logging configuration settings."""

    level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
    )
    include_job_id: bool = Field(
        default=True,
        validation_alias="LOG_INCLUDE_JOB_ID",
    )
    json_logs: bool = Field(
        default=False,
        validation_alias="JSON_LOGS",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level


class Settings(AppBaseSettings):
    """Main settings class that combines all configuration sections."""

    redis: RedisSettings = Field(default_factory=RedisSettings)
    cold_store: ColdStoreSettings = Field(default_factory=ColdStoreSettings)
    worker: WorkerSettings = Field(default_factory=WorkerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    service_name: str = Field(
        default="archiver",
        validation_alias="SERVICE_NAME",
    )
    environment: str = Field(
        default="development",
        validation_alias="ENVIRONMENT",
    )
    version: str = Field(
        default="1.0.0",
        validation_alias="SERVICE_VERSION",
    )

    @model_validator(mode="after")
    def check_poll_interval(self):
        """A blocking queue read must return before the Redis socket times out."""
        if self.worker.poll_interval >= self.redis.redis_timeout:
            raise ValueError(
                f"WORKER_POLL_INTERVAL ({self.worker.poll_interval}) must be below "
                f"REDIS_TIMEOUT ({self.redis.redis_timeout:g})"
            )
        return self


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
