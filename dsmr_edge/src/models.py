"""
Pydantic models for decoded DSMR P1 telegrams.

A :class:`Telegram` is the root value produced once per framed,
checksum-valid telegram. Blocks that only some meters emit (electricity,
multiphase electricity, gas) are nested records that are ``None`` when the
telegram lacks their marker code.

Attribute names are snake_case; every field carries an alias equal to the
JSON key downstream consumers already rely on, so
``telegram.model_dump_json(by_alias=True)`` produces the established shape
(``{"HeaderMarker": ..., "Electricity": {"KWh": ...}, ...}``).

Required fields default to their zero value so that a telegram missing a
code still validates; the decoder reports the missing code separately as a
field error.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

from enum import IntEnum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field

from dsmr_edge.src.exceptions import FieldError


class Tariff(IntEnum):
    """Tariff currently in effect, as reported under 0-0:96.14.0."""

    HIGH = 1
    LOW = 2


class _Record(BaseModel):
    """Common configuration: immutable, populated by name or alias."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class GasRecord(_Record):
    """Last hourly gas reading: meter timestamp plus volume in m3."""

    timestamp: str = Field(default="", alias="TimeStamp")
    value: float = Field(default=0.0, alias="Value")


class ElectricityData(_Record):
    """Cumulative and instantaneous electricity metrics (phase 1 included).

    Energy in kWh, power in W, current in A, voltage in V.
    """

    kwh: float = Field(default=0.0, alias="KWh")
    kwh_low: float = Field(default=0.0, alias="KWhLow")
    kwh_out: float = Field(default=0.0, alias="KWhOut")
    kwh_out_low: float = Field(default=0.0, alias="KWhOutLow")
    tariff: Tariff | None = Field(default=None, alias="Tariff")

    w: float = Field(default=0.0, alias="W")
    w_out: float = Field(default=0.0, alias="WOut")
    threshold: float | None = Field(default=None, alias="Threshold")
    switch: str | None = Field(default=None, alias="Switch")

    power_failures: int = Field(default=0, alias="PowerFailures")
    long_power_failures: int = Field(default=0, alias="LongPowerFailures")
    power_failures_log: str = Field(default="", alias="PowerFailuresLog")

    l1_voltage_sags: int = Field(default=0, alias="L1VoltageSags")
    l1_voltage_swells: int = Field(default=0, alias="L1VoltageSwells")
    l1_current: float = Field(default=0.0, alias="L1Current")
    l1_voltage: float | None = Field(default=None, alias="L1Voltage")
    l1_power: float = Field(default=0.0, alias="L1Power")
    l1_power_out: float = Field(default=0.0, alias="L1PowerOut")


class MultiphaseElectricityData(_Record):
    """Per-phase metrics for phases 2 and 3 of a three-phase connection."""

    l2_voltage_sags: int = Field(default=0, alias="L2VoltageSags")
    l2_voltage_swells: int = Field(default=0, alias="L2VoltageSwells")
    l2_current: float = Field(default=0.0, alias="L2Current")
    l2_voltage: float | None = Field(default=None, alias="L2Voltage")
    l2_power: float = Field(default=0.0, alias="L2Power")
    l2_power_out: float = Field(default=0.0, alias="L2PowerOut")
    l3_voltage_sags: int = Field(default=0, alias="L3VoltageSags")
    l3_voltage_swells: int = Field(default=0, alias="L3VoltageSwells")
    l3_current: float = Field(default=0.0, alias="L3Current")
    l3_voltage: float | None = Field(default=None, alias="L3Voltage")
    l3_power: float = Field(default=0.0, alias="L3Power")
    l3_power_out: float = Field(default=0.0, alias="L3PowerOut")


class GasData(_Record):
    """Gas meter attached to the electricity meter's M-Bus channel 1."""

    type: str = Field(default="", alias="Type")
    id: str = Field(default="", alias="Id")
    switch: str | None = Field(default=None, alias="Switch")
    last_record: GasRecord = Field(default_factory=GasRecord, alias="LastRecord")


class Telegram(_Record):
    """One decoded P1 telegram.

    Attributes:
        header_marker: First six characters of the header line
            (e.g. ``"/ISk5\\"``).
        header_id: Rest of the header line, trimmed.
        electricity: Present only if the telegram carries 1-0:1.8.1.
        multiphase_electricity: Present only if it carries 1-0:41.7.0.
        gas: Present only if it carries 0-1:24.2.1.
        p1_version: DSMR version reported by the meter.
        timestamp: Meter clock, verbatim (``YYMMDDhhmmssX``).
        id: Equipment identifier.
        msg_numeric: Optional numeric short message.
        msg_txt: Optional text message.
        other: Every code not claimed by a known field, with its raw
            arguments in order.
    """

    header_marker: str = Field(default="", alias="HeaderMarker")
    header_id: str = Field(default="", alias="HeaderId")

    electricity: ElectricityData | None = Field(default=None, alias="Electricity")
    multiphase_electricity: MultiphaseElectricityData | None = Field(
        default=None, alias="MultiphaseElectricity"
    )
    gas: GasData | None = Field(default=None, alias="Gas")

    p1_version: str = Field(default="", alias="P1Version")
    timestamp: str = Field(default="", alias="TimeStamp")
    id: str = Field(default="", alias="ID")

    msg_numeric: str | None = Field(default=None, alias="MsgNumeric")
    msg_txt: str | None = Field(default=None, alias="MsgTxt")

    other: dict[str, list[str]] = Field(default_factory=dict, alias="Other")


class DecodeResult(NamedTuple):
    """A decoded telegram together with its non-fatal field errors."""

    telegram: Telegram
    errors: list[FieldError]
