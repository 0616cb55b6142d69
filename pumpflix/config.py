"""Application configuration."""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="PumpFlix", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: str = Field(default="development", description="Environment")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    workers: int = Field(default=1, description="Number of workers")
    reload: bool = Field(default=False, description="Auto-reload on changes")

    # Security
    secret_key: str = Field(description="Secret key for JWT signing")
    algorithm: str = Field(default="HS256", description="JWT algorithm")
    access_token_expire_hours: int = Field(
        default=24, description="Access token expiration in hours"
    )
    refresh_token_expire_days: int = Field(
        default=30, description="Refresh token expiration in days"
    )
    encryption_key: str = Field(
        description="Base64 encoded 256-bit key for credential encryption"
    )
    salt_rounds: int = Field(default=12, description="Password salt rounds")

    # Database
    database_url: str = Field(description="Database URL")
    database_pool_size: int = Field(default=10, description="Database pool size")
    database_max_overflow: int = Field(
        default=20, description="Database max overflow"
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    # Redis
    redis_url: str = Field(description="Redis URL")
    redis_password: Optional[str] = Field(default=None, description="Redis password")
    redis_max_connections: int = Field(
        default=10, description="Redis max connections"
    )
    template_cache_ttl: int = Field(
        default=300, description="Workflow template list cache TTL in seconds"
    )

    # Celery
    celery_broker_url: str = Field(description="Celery broker URL")
    celery_result_backend: str = Field(description="Celery result backend")
    celery_task_serializer: str = Field(
        default="json", description="Celery task serializer"
    )
    celery_result_serializer: str = Field(
        default="json", description="Celery result serializer"
    )
    celery_accept_content: List[str] = Field(
        default=["json"], description="Celery accept content"
    )
    celery_timezone: str = Field(default="UTC", description="Celery timezone")
    job_max_retries: int = Field(default=3, description="Background job attempts")

    # Stripe
    stripe_secret_key: Optional[str] = Field(
        default=None, description="Stripe secret API key"
    )
    stripe_webhook_secret: Optional[str] = Field(
        default=None, description="Stripe webhook signing secret"
    )
    stripe_portal_return_url: str = Field(
        default="http://localhost:3000/billing",
        description="Return URL for the Stripe billing portal",
    )
    trial_period_days: int = Field(default=14, description="Subscription trial days")
    trial_warning_days: int = Field(
        default=3, description="Days before trial end to notify the user"
    )

    # OpenAI
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    openai_model: str = Field(default="gpt-4", description="Workflow generation model")

    # Email
    smtp_host: Optional[str] = Field(default=None, description="SMTP host")
    smtp_port: int = Field(default=587, description="SMTP port")
    smtp_username: Optional[str] = Field(default=None, description="SMTP username")
    smtp_password: Optional[str] = Field(default=None, description="SMTP password")
    smtp_from_email: str = Field(
        default="noreply@pumpflix.io", description="From email"
    )
    smtp_use_tls: bool = Field(default=True, description="Use TLS for SMTP")

    # Slack
    slack_webhook_url: Optional[str] = Field(
        default=None, description="Default Slack incoming webhook URL"
    )

    # Execution
    max_execution_time: int = Field(
        default=3600, description="Max execution time in seconds"
    )
    default_execution_limit: int = Field(
        default=1000, description="Execution limit for plans created without one"
    )

    # Monitoring
    metrics_enabled: bool = Field(default=True, description="Enable metrics")

    # CORS
    cors_enabled: bool = Field(default=True, description="Enable CORS")
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="CORS origins",
    )
    cors_credentials: bool = Field(default=True, description="CORS credentials")
    cors_methods: List[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        description="CORS methods",
    )
    cors_headers: List[str] = Field(default=["*"], description="CORS headers")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() in ("development", "dev")

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() in ("production", "prod")


@lru_cache()
def get_settings() -> Settings:
    """Get application settings (cached)."""
    return Settings()


# Global settings instance
settings = get_settings()
