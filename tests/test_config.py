#!/usr/bin/env python3
"""Tests for ClientConfig."""
import logging
import sys

import pytest

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])
from src.dtcloud.api.config import (
    DEFAULT_BASE_URL,
    PACKAGE_LOGGER,
    ClientConfig,
)
from src.dtcloud.api.exceptions import ConfigurationError

ENV_VARS = [
    "DT_BASE_URL",
    "DT_EMULATOR_BASE_URL",
    "DT_REQUEST_TIMEOUT",
    "DT_RESPONSE_TIMEOUT",
    "DT_STREAM_TIMEOUT",
    "DT_LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    """No DT_* variables and no .env file loading."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("src.dtcloud.api.config.load_dotenv", lambda: None)


# ============================================
# Defaults and Validation
# ============================================

class TestClientConfig:
    """Test defaults and validation."""

    def test_defaults(self):
        config = ClientConfig()
        assert config.base_url == DEFAULT_BASE_URL
        assert config.request_timeout == 20
        assert config.response_timeout == 20
        assert config.stream_timeout == 3600
        assert config.log_level is None

    @pytest.mark.parametrize(
        "kwargs,key",
        [
            ({"base_url": "api.example.com"}, "base_url"),
            ({"emulator_base_url": "ftp://emulator"}, "emulator_base_url"),
            ({"request_timeout": 0}, "request_timeout"),
            ({"stream_timeout": -1}, "stream_timeout"),
            ({"log_level": "LOUD"}, "log_level"),
        ],
    )
    def test_invalid_values(self, kwargs, key):
        with pytest.raises(ConfigurationError) as exc:
            ClientConfig(**kwargs)
        assert exc.value.details["invalid_keys"] == [key]
        assert exc.value.code == "CONFIGURATION_ERROR"

    def test_configuration_error_accepts_empty_details(self):
        error = ConfigurationError("missing", missing_keys=["DT_BASE_URL"], details=None)
        assert error.details["missing_keys"] == ["DT_BASE_URL"]
        assert not error.recoverable


# ============================================
# Environment Tests
# ============================================

class TestFromEnv:
    """Test ClientConfig.from_env()."""

    def test_reads_environment(self, clean_env, monkeypatch):
        monkeypatch.setenv("DT_BASE_URL", "https://api.staging.example.com/v2/")
        monkeypatch.setenv("DT_REQUEST_TIMEOUT", "5")
        monkeypatch.setenv("DT_LOG_LEVEL", "debug")

        config = ClientConfig.from_env()

        assert config.base_url == "https://api.staging.example.com/v2/"
        assert config.request_timeout == 5.0
        assert config.log_level == "debug"

    def test_overrides_win(self, clean_env, monkeypatch):
        monkeypatch.setenv("DT_STREAM_TIMEOUT", "60")
        config = ClientConfig.from_env(stream_timeout=10)
        assert config.stream_timeout == 10

    def test_non_numeric_timeout(self, clean_env, monkeypatch):
        monkeypatch.setenv("DT_RESPONSE_TIMEOUT", "soon")
        with pytest.raises(ConfigurationError) as exc:
            ClientConfig.from_env()
        assert exc.value.details["invalid_keys"] == ["DT_RESPONSE_TIMEOUT"]

    def test_empty_environment_gives_defaults(self, clean_env):
        assert ClientConfig.from_env() == ClientConfig()


class TestLogging:
    def test_apply_logging_sets_package_level(self):
        logger = logging.getLogger(PACKAGE_LOGGER)
        previous = logger.level
        try:
            ClientConfig(log_level="warning").apply_logging()
            assert logger.level == logging.WARNING
        finally:
            logger.setLevel(previous)
