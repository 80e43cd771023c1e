"""Configuration management service with Pydantic Settings.

This module provides centralized configuration management for the
Trade Alert Relay, loading and validating environment variables at startup.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TelegramSettings(BaseSettings):
    """Bot credentials and channel for the main destination."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    bot_token: SecretStr | None = Field(
        default=None,
        alias="TELEGRAM_TOKEN",
        description="Telegram bot token for the main channel",
    )
    chat_id: str | None = Field(
        default=None,
        alias="CHANNEL_CHAT_ID",
        description="Main channel chat ID",
    )

    @property
    def enabled(self) -> bool:
        """Check if the main channel is configured."""
        return self.bot_token is not None and self.chat_id is not None


class TrendTelegramSettings(BaseSettings):
    """Bot credentials and channel for the trend destination."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    bot_token: SecretStr | None = Field(
        default=None,
        alias="TREND_TELEGRAM_TOKEN",
        description="Telegram bot token for the trend channel",
    )
    chat_id: str | None = Field(
        default=None,
        alias="TREND_CHANNEL_CHAT_ID",
        description="Trend channel chat ID",
    )

    @property
    def enabled(self) -> bool:
        """Check if the trend channel is configured."""
        return self.bot_token is not None and self.chat_id is not None


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from trade_alert_relay.config import get_settings

        settings = get_settings()
        print(settings.port)
        print(settings.log_level)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Destination channels
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    trend_telegram: TrendTelegramSettings = Field(default_factory=TrendTelegramSettings)

    channel_link: str | None = Field(
        default=None,
        alias="CHANNEL_LINK",
        description="Invite link sent in reply to /start",
    )
    telegram_timeout: float = Field(
        default=10.0,
        alias="TELEGRAM_TIMEOUT",
        description="Timeout in seconds for Telegram API calls",
        gt=0,
        le=60,
    )

    # Application settings
    host: str = Field(
        default="0.0.0.0",
        alias="HOST",
        description="Interface the webhook server binds to",
    )
    port: int = Field(
        default=5000,
        alias="PORT",
        description="HTTP port for the webhook server",
        ge=1,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )
    dry_run: bool = Field(
        default=False,
        alias="DRY_RUN",
        description="Log messages instead of sending them",
    )

    @field_validator("channel_link")
    @classmethod
    def validate_channel_link(cls, v: str | None) -> str | None:
        """Validate channel link format."""
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError("CHANNEL_LINK must be an HTTP(S) URL")
        return v

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def redacted_summary(self) -> dict[str, str]:
        """Get a summary of settings with secrets redacted.

        Returns:
            Dictionary of settings with sensitive values masked.
        """
        return {
            "main_channel": self.telegram.chat_id or "(not set)",
            "main_token": "(set)" if self.telegram.bot_token else "(not set)",
            "trend_channel": self.trend_telegram.chat_id or "(not set)",
            "trend_token": "(set)" if self.trend_telegram.bot_token else "(not set)",
            "channel_link": self.channel_link or "(not set)",
            "telegram_timeout": str(self.telegram_timeout),
            "listen": f"{self.host}:{self.port}",
            "log_level": self.log_level,
            "dry_run": str(self.dry_run),
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Uses LRU cache to ensure settings are loaded only once and
    reused across the application.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If environment variables have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
