"""
P1 edge daemon configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
All configuration values come from environment variables or .env files.

CHANGELOG:
- 2026-10-19: Initial creation
- 2026-10-20: Add READ_RETRY_S

TODO:
- None
"""

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings

_STANDARD_BAUD_RATES = (9600, 19200, 38400, 57600, 115200)
"""DSMR 2.x/3.x meters use 9600 baud, DSMR 4.x and later 115200."""


class P1Settings(BaseSettings):
    """P1 edge daemon configuration.

    All values are loaded from environment variables and have defaults
    matching a DSMR 4+ meter on ``/dev/P1``.

    Attributes:
        serial_device: Serial device path or pyserial URL of the P1 port.
        baud_rate: Serial speed; one of the standard P1 rates.
        health_path: Health JSON file path. Empty string disables it.
        log_level: Root log level name (DEBUG, INFO, WARNING, ERROR).
        json_indent: Indent for printed telegrams; unset prints one
            compact JSON object per line.
        read_retry_s: Seconds to wait before reading again after the
            serial port failed.
    """

    serial_device: str = "/dev/P1"
    baud_rate: int = 115200
    health_path: str = "/data/health.json"
    log_level: str = "INFO"
    json_indent: int | None = None
    read_retry_s: float = 1.0

    @field_validator("serial_device")
    @classmethod
    def serial_device_must_be_set(cls, v: str) -> str:
        """Reject an empty serial device."""
        if not v.strip():
            raise ValueError("SERIAL_DEVICE must not be empty")
        return v

    @field_validator("baud_rate")
    @classmethod
    def baud_rate_must_be_standard(cls, v: int) -> int:
        """Validate the baud rate is one a P1 port actually uses."""
        if v not in _STANDARD_BAUD_RATES:
            raise ValueError(
                f"BAUD_RATE must be one of {', '.join(map(str, _STANDARD_BAUD_RATES))}"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"LOG_LEVEL must be a logging level name (got: {v!r})")
        return level

    @field_validator("json_indent")
    @classmethod
    def json_indent_must_be_non_negative(cls, v: int | None) -> int | None:
        """Validate JSON indent is non-negative."""
        if v is not None and v < 0:
            raise ValueError("JSON_INDENT must be >= 0")
        return v

    @field_validator("read_retry_s")
    @classmethod
    def read_retry_must_be_positive(cls, v: float) -> float:
        """Validate the read retry delay is positive."""
        if v <= 0:
            raise ValueError("READ_RETRY_S must be > 0")
        return v

    @property
    def log_level_value(self) -> int:
        """Numeric logging level for :attr:`log_level`."""
        return logging.getLevelName(self.log_level)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
