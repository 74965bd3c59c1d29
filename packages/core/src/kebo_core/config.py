"""Configuration system for the Kebo core.

Pydantic Settings-based configuration with environment variable support
and defaults matching the store's existing reports and contracts.

Usage:
    from kebo_core.config import get_settings, setup_logging

    setup_logging()
    settings = get_settings()
    print(settings.placeholder)
    print(settings.default_category)
"""

import logging
import sys
from functools import lru_cache
from typing import Optional

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class KeboSettings(BaseSettings):
    """Root configuration for the Kebo core.

    Environment Variables:
        KEBO_ENV: Environment name (development, staging, production, test)
        KEBO_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        KEBO_PLACEHOLDER: Display text for missing values
        KEBO_DEFAULT_CATEGORY: Bucket for expenses without a category
        KEBO_ALL_SELLERS_SENTINEL: Seller filter value that disables filtering
        KEBO_DOWN_PAYMENT_LABEL: Payment label of the down payment line
        KEBO_CURRENCY_SYMBOL: Prefix used when formatting amounts
    """

    model_config = SettingsConfigDict(
        env_prefix="KEBO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: str = Field(
        default="development",
        description="Environment name (development, staging, production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    placeholder: str = Field(
        default="—",
        description="Display value for fields with no data anywhere",
    )
    default_category: str = Field(
        default="Other",
        description="Category bucket for expenses with an empty category",
    )
    all_sellers_sentinel: str = Field(
        default="__ALL__",
        description="Seller filter value meaning 'every seller'",
    )
    down_payment_label: str = Field(
        default="ENTRADA",
        description="Payment method label of the down payment installment",
    )
    currency_symbol: str = Field(
        default="R$",
        description="Currency prefix for formatted amounts",
    )

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment name."""
        valid_envs = {"development", "staging", "production", "test"}
        v_lower = v.lower().strip()
        if v_lower not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {valid_envs}")
        return v_lower

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper().strip()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {valid_levels}")
        return v_upper

    @field_validator(
        "placeholder", "default_category", "all_sellers_sentinel", "down_payment_label", "currency_symbol"
    )
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Labels used as dictionary keys and display text cannot be blank."""
        if not v or not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.env == "production"

    @property
    def is_debug(self) -> bool:
        """Check if debug logging is enabled."""
        return self.log_level == "DEBUG"


@lru_cache(maxsize=1)
def get_settings() -> KeboSettings:
    """Return the process-wide settings, loaded once from the environment."""
    return KeboSettings()


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """Configure structlog on top of the standard library logger.

    Args:
        level: Minimum level to emit.
        json: Render events as JSON lines instead of the console format.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)

    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=False,
    )


def setup_logging(settings: Optional[KeboSettings] = None) -> None:
    """Configure logging from settings.

    Production renders JSON lines; every other environment uses the console
    renderer.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, json=settings.is_production)
    structlog.get_logger().info("logging_configured", env=settings.env, debug=settings.is_debug)


__all__ = [
    "KeboSettings",
    "get_settings",
    "configure_logging",
    "setup_logging",
]
