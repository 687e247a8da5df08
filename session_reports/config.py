"""Configuration management using Pydantic Settings."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service Configuration
    service_host: str = Field(default="0.0.0.0", description="Service host")
    service_port: int = Field(default=8000, description="Service port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Database
    database_url: Optional[str] = Field(
        default=None, description="PostgreSQL connection URL"
    )
    db_pool_min_size: int = Field(default=0, description="Minimum connection pool size")
    db_pool_max_size: int = Field(default=10, description="Maximum connection pool size")
    db_ssl_required: bool = Field(
        default=False,
        description="Force TLS for database connections (sslmode in the URL also works)",
    )

    # Report generator (OpenAI)
    openai_api_key: Optional[str] = Field(
        default=None, description="OpenAI API key used for report generation"
    )
    openai_model: str = Field(
        default="gpt-4o-mini", description="Chat model used for session reports"
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1", description="OpenAI API base URL"
    )
    llm_timeout: int = Field(default=60, description="LLM HTTP request timeout in seconds")
    report_generation_timeout_s: float = Field(
        default=90.0,
        gt=0,
        description="Upper bound on a single report generation call, in seconds",
    )

    # Trigger authentication
    cron_secret: Optional[str] = Field(
        default=None,
        description="Shared secret expected in the X-Cron-Secret header of trigger calls",
    )

    # Report job queue
    report_job_max_attempts: int = Field(
        default=5, ge=1, description="Attempts before a report job fails terminally"
    )
    report_job_backoff_base_s: int = Field(
        default=30, ge=1, description="Retry backoff base in seconds"
    )
    report_job_backoff_cap_s: int = Field(
        default=30 * 60, ge=1, description="Retry backoff ceiling in seconds"
    )
    job_stale_timeout_minutes: Optional[int] = Field(
        default=None,
        ge=1,
        description=(
            "Reclaim PROCESSING jobs locked longer than this many minutes. "
            "Unset disables reclaiming; stuck jobs then need manual attention."
        ),
    )

    # Local worker loop
    worker_batch_limit: int = Field(default=3, ge=1, description="Jobs claimed per loop iteration")
    worker_poll_interval_s: float = Field(
        default=5.0, gt=0, description="Pause between loop iterations in seconds"
    )
    worker_max_iterations: int = Field(
        default=100, ge=1, description="Iteration ceiling for one worker process"
    )

    # Sentry Observability
    sentry_dsn: Optional[str] = Field(
        default=None,
        description="Sentry DSN for error tracking",
    )
    sentry_environment: str = Field(
        default="development",
        description="Sentry environment tag (development, staging, production)",
    )
    sentry_traces_sample_rate: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Sentry performance tracing sample rate (0.0-1.0)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
