import logging
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ORDER_STATUS_PATH = Path(__file__).resolve().parent / "order-status.json"


class PortfolioApiSettings(BaseSettings):
    """1inch Portfolio API configuration."""

    api_key: str = Field(default="", description="Bearer token for the 1inch developer portal")
    portfolio_base_url: str = Field(
        default="https://api.1inch.dev/portfolio/portfolio/v4",
        description="Base URL every portfolio endpoint path is appended to",
    )
    timeout_seconds: Optional[float] = Field(
        default=None,
        description="Request timeout in seconds (unset waits indefinitely)",
    )

    model_config = SettingsConfigDict(env_prefix="ONEINCH_", env_file=".env", extra="ignore")


class SwapSettings(BaseSettings):
    """Cross-chain swap collaborator configuration."""

    executor: str = Field(
        default="",
        description="Swap execution callable as 'package.module:attribute'",
    )
    order_status_path: Path = Field(
        default=DEFAULT_ORDER_STATUS_PATH,
        description="JSON file where the swap executor records order status",
    )

    model_config = SettingsConfigDict(env_prefix="SWAP_", env_file=".env", extra="ignore")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Root log level")

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {value!r}")
        return level

    model_config = SettingsConfigDict(env_prefix="LOG_", env_file=".env", extra="ignore")


class Settings(BaseSettings):
    """Combined server settings."""

    portfolio: PortfolioApiSettings = Field(default_factory=PortfolioApiSettings)
    swap: SwapSettings = Field(default_factory=SwapSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="ignore"
    )


def load_settings() -> Settings:
    """Build the settings once at startup; callers pass the result along."""
    return Settings()
