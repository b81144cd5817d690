"""Tests for cardloom.config -- Settings, sub-models and env overrides.

Every test constructs Settings(_env_file=None, ...) to avoid reading real .env files.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from cardloom.config import (
    _PROJECT_ROOT,
    DATA_DIR,
    AppConfig,
    BoardConfig,
    Settings,
    default_database_url,
    get_settings,
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Drop any cardloom env vars set on the host."""
    prefixes = ("DATABASE__", "APP__", "BOARD__", "DEV__")
    for key in list(os.environ):
        if key.startswith(prefixes):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestDefaults:
    def test_defaults(self, clean_env) -> None:
        s = Settings(_env_file=None)  # type: ignore[call-arg]

        assert s.database.url == default_database_url()
        assert s.app.port == 8080
        assert s.board.activation_distance == 5.0
        assert s.board.command_timeout == 10.0
        assert s.board.default_columns == ["To-Do", "In Progress", "Done"]
        assert s.dev.commands_mock is False

    def test_default_database_is_sqlite_in_data_dir(self) -> None:
        url = default_database_url()
        assert url.startswith("sqlite+aiosqlite:///")
        assert url.endswith(str(DATA_DIR / "cardloom.db"))

    def test_project_root_holds_src(self) -> None:
        assert (_PROJECT_ROOT / "src" / "cardloom").is_dir()


class TestEnvOverrides:
    def test_nested_delimiter(self, clean_env) -> None:
        clean_env.setenv("BOARD__COMMAND_TIMEOUT", "2.5")
        clean_env.setenv("DEV__COMMANDS_MOCK", "true")
        clean_env.setenv("APP__LOG_DIR", "/tmp/cardloom-logs")

        s = Settings(_env_file=None)  # type: ignore[call-arg]

        assert s.board.command_timeout == 2.5
        assert s.dev.commands_mock is True
        assert s.app.log_dir == Path("/tmp/cardloom-logs")

    def test_default_columns_from_json(self, clean_env) -> None:
        clean_env.setenv("BOARD__DEFAULT_COLUMNS", '["Backlog", "Doing"]')

        s = Settings(_env_file=None)  # type: ignore[call-arg]

        assert s.board.default_columns == ["Backlog", "Doing"]

    def test_storage_secret_is_hidden(self, clean_env) -> None:
        clean_env.setenv("APP__STORAGE_SECRET", "hunter2")

        s = Settings(_env_file=None)  # type: ignore[call-arg]

        assert "hunter2" not in repr(s.app)
        assert s.app.storage_secret.get_secret_value() == "hunter2"


class TestValidation:
    def test_negative_activation_distance(self) -> None:
        with pytest.raises(ValidationError):
            BoardConfig(activation_distance=-1)

    def test_zero_timeout(self) -> None:
        with pytest.raises(ValidationError):
            BoardConfig(command_timeout=0)

    def test_blank_default_column(self) -> None:
        with pytest.raises(ValidationError, match="blank"):
            BoardConfig(default_columns=["To-Do", "  "])

    def test_default_column_titles_stripped(self) -> None:
        assert BoardConfig(default_columns=[" A ", "B"]).default_columns == ["A", "B"]

    def test_port_must_be_int(self) -> None:
        with pytest.raises(ValidationError):
            AppConfig(port="eighty")  # type: ignore[arg-type]


def test_get_settings_is_cached() -> None:
    assert get_settings() is get_settings()
    get_settings.cache_clear()
    assert get_settings() is get_settings()
