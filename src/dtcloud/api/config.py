#!/usr/bin/env python3
"""Client configuration.

All tunables live in one dataclass that is passed to the executor and
streams explicitly; nothing is read from module-level state at request time.

Environment variables (read by ClientConfig.from_env, .env files supported):
    DT_BASE_URL           REST API base URL
    DT_EMULATOR_BASE_URL  Emulator API base URL
    DT_REQUEST_TIMEOUT    Seconds a request may sit idle waiting for data
    DT_RESPONSE_TIMEOUT   Seconds a whole request/response may take
    DT_STREAM_TIMEOUT     Seconds a single event stream connection may last
    DT_LOG_LEVEL          Level for the "dtcloud" loggers (e.g. DEBUG)

Author: DT Cloud Client Team
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from dotenv import load_dotenv

from .exceptions import ConfigurationError

DEFAULT_BASE_URL = "https://api.disruptive-technologies.com/v2/"
DEFAULT_EMULATOR_BASE_URL = "https://emulator.disruptive-technologies.com/v2/"

# "dtcloud" when installed; parent of every module logger in the package
PACKAGE_LOGGER = __name__.rsplit(".", 2)[0]


@dataclass
class ClientConfig:
    """Settings shared by the executor, paginator and event streams.

    Attributes:
        base_url: Base URL every REST endpoint is resolved against
        emulator_base_url: Base URL for emulator endpoints
        request_timeout: Idle read timeout per request, in seconds
        response_timeout: Total timeout per request, in seconds
        stream_timeout: Total lifetime of one stream connection, in seconds
        log_level: Optional level name applied to the package logger
    """
    base_url: str = DEFAULT_BASE_URL
    emulator_base_url: str = DEFAULT_EMULATOR_BASE_URL
    request_timeout: float = 20.0
    response_timeout: float = 20.0
    stream_timeout: float = 3600.0
    log_level: Optional[str] = None

    def __post_init__(self):
        invalid = []
        for key in ("base_url", "emulator_base_url"):
            parts = urlsplit(getattr(self, key) or "")
            if parts.scheme not in ("http", "https") or not parts.netloc:
                invalid.append(key)
        for key in ("request_timeout", "response_timeout", "stream_timeout"):
            if getattr(self, key) <= 0:
                invalid.append(key)
        if self.log_level and not isinstance(logging.getLevelName(self.log_level.upper()), int):
            invalid.append("log_level")

        if invalid:
            raise ConfigurationError(
                f"Invalid client configuration: {', '.join(invalid)}",
                details={"invalid_keys": invalid},
            )

    @classmethod
    def from_env(cls, **overrides) -> "ClientConfig":
        """Build a config from DT_* environment variables (and a .env file).

        Keyword arguments override the environment.

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        load_dotenv()

        values: dict = {}
        string_vars = {
            "base_url": "DT_BASE_URL",
            "emulator_base_url": "DT_EMULATOR_BASE_URL",
            "log_level": "DT_LOG_LEVEL",
        }
        float_vars = {
            "request_timeout": "DT_REQUEST_TIMEOUT",
            "response_timeout": "DT_RESPONSE_TIMEOUT",
            "stream_timeout": "DT_STREAM_TIMEOUT",
        }

        for field_name, env_name in string_vars.items():
            value = os.getenv(env_name)
            if value:
                values[field_name] = value

        bad = []
        for field_name, env_name in float_vars.items():
            value = os.getenv(env_name)
            if not value:
                continue
            try:
                values[field_name] = float(value)
            except ValueError:
                bad.append(env_name)

        if bad:
            raise ConfigurationError(
                f"Environment variables must be numbers: {', '.join(bad)}",
                details={"invalid_keys": bad},
            )

        values.update(overrides)
        return cls(**values)

    def apply_logging(self) -> None:
        """Set the package logger level. Handlers are left to the application."""
        if self.log_level:
            logging.getLogger(PACKAGE_LOGGER).setLevel(self.log_level.upper())
