"""
Shared test fixtures for P1 edge daemon tests.

Provides environment variable isolation for P1Settings tests and a builder
for wire-format telegrams with a correct CRC footer.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import crcmod.predefined
import pytest

# All P1Settings environment variable names, used for cleanup.
_ALL_P1_ENV_VARS = (
    "SERIAL_DEVICE",
    "BAUD_RATE",
    "HEALTH_PATH",
    "LOG_LEVEL",
    "JSON_INDENT",
    "READ_RETRY_S",
)

_crc16 = crcmod.predefined.mkPredefinedCrcFun("crc16")

HEADER = "/ISk5\\2MT382-1000"

FULL_TELEGRAM_LINES: list[str] = [
    "1-3:0.2.8(50)",
    "0-0:1.0.0(101209113020W)",
    "0-0:96.1.1(4B384547303034303436333935353037)",
    "1-0:1.8.1(123456.789*kWh)",
    "1-0:1.8.2(123457.789*kWh)",
    "1-0:2.8.1(000012.345*kWh)",
    "1-0:2.8.2(000023.456*kWh)",
    "0-0:96.14.0(0002)",
    "1-0:1.7.0(01.193*kW)",
    "1-0:2.7.0(00.000*kW)",
    "0-0:96.7.21(00004)",
    "0-0:96.7.9(00002)",
    "1-0:99.97.0(0-0:96.7.19)",
    "1-0:32.32.0(00002)",
    "1-0:52.32.0(00001)",
    "1-0:72.32.0(00000)",
    "1-0:32.36.0(00000)",
    "1-0:52.36.0(00003)",
    "1-0:72.36.0(00000)",
    "0-0:96.13.0(303132333435363738393A3B3C3D3E3F)",
    "1-0:32.7.0(220.1*V)",
    "1-0:52.7.0(220.2*V)",
    "1-0:72.7.0(220.3*V)",
    "1-0:31.7.0(001*A)",
    "1-0:51.7.0(002*A)",
    "1-0:71.7.0(003*A)",
    "1-0:21.7.0(01.111*kW)",
    "1-0:41.7.0(02.222*kW)",
    "1-0:61.7.0(03.333*kW)",
    "1-0:22.7.0(04.444*kW)",
    "1-0:42.7.0(05.555*kW)",
    "1-0:62.7.0(06.666*kW)",
    "0-1:24.1.0(003)",
    "0-1:96.1.0(3232323241424344313233343536373839)",
    "0-1:24.2.1(101209112500W)(12785.123*m3)",
]
"""A three-phase DSMR 5 style telegram with a gas meter."""


def build_telegram(
    lines: list[str],
    *,
    header: str = HEADER,
    separator: str = "",
    newline: str = "\r\n",
    crc: int | None = None,
) -> bytes:
    """Assemble a wire-format telegram with a CRC footer.

    The CRC is computed over header through ``!`` unless *crc* overrides it.
    """
    body = "".join(f"{line}{newline}" for line in [header, separator, *lines])
    raw = body.encode("latin-1")
    if crc is None:
        crc = _crc16(raw + b"!")
    return raw + f"!{crc:04X}{newline}".encode("latin-1")


@pytest.fixture(autouse=True)
def _clean_p1_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Remove all P1 env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_P1_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def make_telegram() -> Callable[..., bytes]:
    """Return the :func:`build_telegram` helper."""
    return build_telegram


@pytest.fixture()
def full_telegram() -> bytes:
    """A complete, CRC-correct telegram with all three optional blocks."""
    return build_telegram(FULL_TELEGRAM_LINES)


@pytest.fixture()
def full_telegram_lines() -> list[str]:
    """Data lines of :func:`full_telegram`, as a fresh list."""
    return list(FULL_TELEGRAM_LINES)
