"""
Module: settings.py
Description: Harness configuration using pydantic-settings.

Configures SQS connection, exchange retry budget, drain and pump
settings from environment variables with validation and defaults.
Supports .env files for local development.
"""

import re
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from models.budget import RetryBudget


class Settings(BaseSettings):
    """Harness settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="SQS Delivery Harness", description="Application name")
    log_level: str = Field(default="INFO", description="Logging level")

    # AWS settings
    aws_region: str = Field(default="us-east-1", description="AWS region")
    sqs_endpoint_url: Optional[str] = Field(
        default=None,
        description="Override SQS endpoint (local stacks, emulators)"
    )
    queue_name_prefix: str = Field(
        default="",
        description="Prefix prepended to every logical queue address"
    )

    # Exchange settings
    exchange_max_attempts: int = Field(
        default=100,
        ge=1,
        description="Polls before an exchange times out"
    )
    exchange_delay_seconds: float = Field(
        default=0.05,
        gt=0,
        description="Delay between exchange polls"
    )

    # Drain settings
    drain_settle_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Pause before each manual drain receive"
    )
    drain_batch_size: int = Field(
        default=10,
        ge=1,
        le=10,
        description="Messages received per manual drain round"
    )

    # Pump settings
    max_concurrency: int = Field(default=1, ge=1, description="Receive worker threads")
    receive_wait_seconds: int = Field(
        default=1,
        ge=0,
        le=20,
        description="SQS long poll wait per receive"
    )
    receive_batch_size: int = Field(default=10, ge=1, le=10)
    visibility_timeout_seconds: Optional[int] = Field(
        default=None,
        ge=0,
        le=43200,
        description="Visibility timeout applied to received messages"
    )
    idle_sleep_seconds: float = Field(
        default=0.05,
        ge=0,
        description="Pause after an empty receive when long polling is disabled"
    )
    critical_failure_threshold: int = Field(
        default=5,
        ge=1,
        description="Consecutive receive failures reported as a critical fault"
    )
    stop_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Maximum time to wait for workers on stop"
    )

    @field_validator('queue_name_prefix')
    @classmethod
    def validate_queue_name_prefix(cls, v: str) -> str:
        """Validate queue name prefix uses SQS-legal characters."""
        if not re.match(r'^[a-zA-Z0-9_-]*$', v):
            raise ValueError(
                "queue_name_prefix must contain only letters, numbers, hyphens, and underscores"
            )
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    def retry_budget(self) -> RetryBudget:
        """Build the exchange retry budget from the configured pair."""
        return RetryBudget(
            max_attempts=self.exchange_max_attempts,
            delay_seconds=self.exchange_delay_seconds
        )


# Global settings instance
settings = Settings()
