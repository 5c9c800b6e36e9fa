"""Tests for settings and logging setup."""

import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from eminent_bank.config import Settings
from eminent_bank.exceptions import ConfigurationError
from eminent_bank.logging_config import LOG_FILE_NAME, SERVICE_LOGGER, get_logger, setup_logging


class TestSettings:
    """Tests for Settings."""

    def test_default_values(self) -> None:
        settings = Settings(database_url="sqlite+aiosqlite:///bank.db")

        assert settings.identity_backend == "local"
        assert settings.jwt_algorithm == "HS256"
        assert settings.transfer_session_timeout_minutes == 15
        assert settings.transfer_classification == "Customer Transfer"
        assert settings.default_transfer_purpose == "General Transfer"
        assert settings.log_dir == Path("logs")

    def test_missing_database_url(self) -> None:
        with pytest.raises(ConfigurationError, match="DATABASE_URL"):
            Settings(database_url="")

    def test_unknown_identity_backend(self) -> None:
        with pytest.raises(ConfigurationError, match="IDENTITY_BACKEND"):
            Settings(database_url="sqlite+aiosqlite://", identity_backend="ldap")

    def test_http_backend_requires_base_url(self) -> None:
        with pytest.raises(ConfigurationError, match="IDENTITY_BASE_URL"):
            Settings(database_url="sqlite+aiosqlite://", identity_backend="http")

    def test_from_env(self) -> None:
        env = {
            "DATABASE_URL": "postgresql+asyncpg://bank:bank@db/bank",
            "IDENTITY_BACKEND": "HTTP",
            "IDENTITY_BASE_URL": "https://auth.example.com",
            "IDENTITY_API_KEY": "anon-key",
            "TRANSFER_SESSION_TIMEOUT_MINUTES": "5",
            "REQUEST_TIMEOUT": "2.5",
            "SQL_ECHO": "true",
            "LOG_LEVEL": "debug",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env(load_env_file=False)

        assert settings.database_url == "postgresql+asyncpg://bank:bank@db/bank"
        assert settings.identity_backend == "http"
        assert settings.identity_base_url == "https://auth.example.com"
        assert settings.identity_api_key == "anon-key"
        assert settings.transfer_session_timeout_minutes == 5
        assert settings.request_timeout == 2.5
        assert settings.sql_echo is True
        assert settings.log_level == "DEBUG"

    def test_from_env_invalid_number(self) -> None:
        env = {"DATABASE_URL": "sqlite+aiosqlite://", "ACCESS_TOKEN_TTL_MINUTES": "soon"}
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ConfigurationError, match="Invalid numeric setting"):
                Settings.from_env(load_env_file=False)

    def test_from_env_missing_database_url(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ConfigurationError):
                Settings.from_env(load_env_file=False)


class TestLogging:
    """Tests for logging setup."""

    def test_setup_creates_log_file(self, tmp_path) -> None:
        log_file = setup_logging("DEBUG", tmp_path / "logs")

        assert log_file == tmp_path / "logs" / LOG_FILE_NAME
        get_logger(f"{SERVICE_LOGGER}.test").info("hello from the test")
        for handler in logging.getLogger(SERVICE_LOGGER).handlers:
            handler.flush()
        assert "hello from the test" in log_file.read_text(encoding="utf-8")

    def test_setup_is_idempotent(self, tmp_path) -> None:
        setup_logging("INFO", tmp_path)
        setup_logging("INFO", tmp_path)

        assert len(logging.getLogger(SERVICE_LOGGER).handlers) == 2

    def test_console_handler_is_warning_level(self, tmp_path) -> None:
        setup_logging("INFO", tmp_path)

        levels = sorted(h.level for h in logging.getLogger(SERVICE_LOGGER).handlers)
        assert levels == [logging.INFO, logging.WARNING]

    def test_get_logger(self) -> None:
        assert get_logger("eminent_bank.x").name == "eminent_bank.x"
