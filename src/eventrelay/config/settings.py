"""
Module: settings.py
Description: Application configuration using pydantic-settings.

Configures all application settings from environment variables with
validation and defaults. Supports .env files for local development.
"""

import json
from typing import Annotated, Any, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DESTINATION_KINDS = ("flaky", "slow", "logging")
ESCALATION_CHANNELS = ("log", "smtp")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="eventrelay", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    log_level: str = Field(default="INFO", description="Logging level")
    stage: str = Field(default="dev", description="Deployment stage")

    # Store settings
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="URL of the Redis server backing the queue and retry schedule"
    )
    queue_key: str = Field(default="events", description="Redis list holding ingested events")
    schedule_key: str = Field(
        default="retry_events",
        description="Redis sorted set holding events awaiting redelivery"
    )
    store_connect_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Startup ping attempts before giving up on the store"
    )

    # Retry settings
    max_retries: int = Field(default=5, ge=1, description="Retry ceiling before escalation")
    retry_workers: int = Field(default=5, ge=1, le=64, description="Number of retry workers")
    poll_interval: float = Field(
        default=5.0,
        ge=0,
        description="Seconds a retry worker waits when nothing is due or the store fails"
    )
    error_backoff: float = Field(
        default=5.0,
        ge=0,
        description="Seconds the queue consumer waits after a queue failure"
    )
    backoff_base: int = Field(default=2, ge=2, description="Base of the exponential backoff")

    # Delivery settings
    delivery_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Optional per-destination timeout in seconds; unbounded when unset"
    )
    destinations: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DESTINATION_KINDS),
        description="Ordered destination kinds each event is fanned out to, as JSON or comma-separated"
    )
    webhook_urls: Annotated[List[str], NoDecode] = Field(
        default_factory=list,
        description="HTTP webhook destinations appended after the destination kinds, as JSON or comma-separated"
    )
    run_workers: bool = Field(
        default=True,
        description="Start the queue consumer and retry workers alongside the API"
    )

    # Escalation settings
    escalation_channel: str = Field(default="log", description="Escalation sink: log or smtp")
    smtp_host: str = Field(default="localhost", description="SMTP server host")
    smtp_port: int = Field(default=587, ge=1, le=65535, description="SMTP server port")
    smtp_username: Optional[str] = Field(default=None, description="SMTP login user")
    smtp_password: Optional[str] = Field(default=None, description="SMTP login password")
    smtp_use_tls: bool = Field(default=True, description="Use STARTTLS for SMTP")
    escalation_sender: str = Field(
        default="notify@example.com",
        description="From address of escalation mail"
    )
    escalation_recipient: str = Field(
        default="admin@example.com",
        description="Operator address receiving escalation mail"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    @field_validator('destinations', 'webhook_urls', mode="before")
    @classmethod
    def parse_list(cls, v: Any) -> Any:
        """Parse a JSON array or comma-separated string from the environment."""
        if isinstance(v, str):
            if v.strip().startswith("["):
                return json.loads(v)
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator('destinations')
    @classmethod
    def validate_destinations(cls, v: List[str]) -> List[str]:
        """Validate destination kinds are known."""
        kinds = [kind.strip().lower() for kind in v]
        unknown = [kind for kind in kinds if kind not in DESTINATION_KINDS]
        if unknown:
            raise ValueError(
                f"Unknown destination kinds: {', '.join(unknown)}; "
                f"expected any of: {', '.join(DESTINATION_KINDS)}"
            )
        return kinds

    @field_validator('webhook_urls')
    @classmethod
    def validate_webhook_urls(cls, v: List[str]) -> List[str]:
        """Validate webhook URLs are HTTP(S)."""
        for url in v:
            if not url.startswith(('http://', 'https://')):
                raise ValueError(f"webhook url must be a valid HTTP/HTTPS URL: {url}")
        return v

    @field_validator('escalation_channel')
    @classmethod
    def validate_escalation_channel(cls, v: str) -> str:
        """Validate the escalation channel name."""
        if v.lower() not in ESCALATION_CHANNELS:
            raise ValueError(
                f"escalation_channel must be one of: {', '.join(ESCALATION_CHANNELS)}"
            )
        return v.lower()

    @field_validator('queue_key', 'schedule_key')
    @classmethod
    def validate_keys(cls, v: str) -> str:
        """Validate store key names."""
        if not v or not v.strip():
            raise ValueError("Store key must be a non-empty string")
        return v.strip()


# Global settings instance
settings = Settings()
