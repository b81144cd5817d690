"""Centralised application configuration using pydantic-settings.

All environment variables are read through the Settings class.
Consumers call ``get_settings()`` to obtain a cached, validated instance.
Tests construct ``Settings(_env_file=None, ...)`` directly for isolation.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# src/cardloom/config.py  ->  parent x3  ->  project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

DATA_DIR = Path.home() / ".local" / "share" / "cardloom"


def default_database_url() -> str:
    """Local SQLite file under the user data directory."""
    return f"sqlite+aiosqlite:///{DATA_DIR / 'cardloom.db'}"


# ---------------------------------------------------------------------------
# Sub-models (one per configuration domain)
# ---------------------------------------------------------------------------
class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str = Field(default_factory=default_database_url)


class AppConfig(BaseModel):
    """Application runtime configuration."""

    title: str = "Cardloom"
    port: int = 8080
    storage_secret: SecretStr = SecretStr("dev-secret-change-me")
    log_dir: Path = Path("logs")


class BoardConfig(BaseModel):
    """Board interaction tuning."""

    activation_distance: float = Field(default=5.0, ge=0)
    command_timeout: float = Field(default=10.0, gt=0)
    default_columns: list[str] = Field(
        default_factory=lambda: ["To-Do", "In Progress", "Done"]
    )

    @field_validator("default_columns")
    @classmethod
    def _no_blank_titles(cls, value: list[str]) -> list[str]:
        titles = [title.strip() for title in value]
        if any(not title for title in titles):
            msg = "BOARD__DEFAULT_COLUMNS must not contain blank titles"
            raise ValueError(msg)
        return titles


class DevConfig(BaseModel):
    """Development and testing toggles."""

    commands_mock: bool = False
    seed_demo: bool = False
    database_echo: bool = False
    test_database_url: str | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Application settings with automatic .env loading and type validation.

    Environment variables use double-underscore delimiter for nesting:
    ``DATABASE__URL``, ``BOARD__COMMAND_TIMEOUT``, ``DEV__COMMANDS_MOCK``, etc.
    """

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    database: DatabaseConfig = DatabaseConfig()
    app: AppConfig = AppConfig()
    board: BoardConfig = BoardConfig()
    dev: DevConfig = DevConfig()


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    settings = Settings()

    env_file = settings.model_config.get("env_file")
    if env_file is not None and Path(str(env_file)).is_file():
        logger.info("Settings loaded .env from: %s", env_file)
    else:
        logger.info("Settings: no .env file found, using env vars and defaults")

    return settings
