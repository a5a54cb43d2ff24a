"""Configuration management for TripSplit."""

from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TRIPSPLIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Display settings
    base_currency: str = "USD"
    currency_symbol: str = "$"

    # Settlement planner tie-break
    settlement_order: Literal["original", "largest_first"] = "original"

    # Database path
    database_path: Path = Path.home() / ".tripsplit" / "tripsplit.db"

    @field_validator("database_path")
    @classmethod
    def expand_home(cls, v: Path) -> Path:
        """Allow ~ in paths set from the environment."""
        return v.expanduser()

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check your TRIPSPLIT_* environment "
            f"variables or .env file. See .env.example for reference.\n"
            f"Error: {e}"
        ) from e
