"""
DSMR P1 OBIS code map -- single source of truth.

Defines every OBIS code the decoder understands, the model field it fills,
how its arguments are decoded, and whether the field is optional. This
table is the wire contract with real meters: codes, kinds and optionality
must not drift.

Codes are organised per record. The telegram's own fields are always
decoded; the electricity, multiphase and gas blocks are decoded only when
their marker code is present (see :data:`SUB_RECORDS`).

References:
    - DSMR P1 Companion Standard
    - https://github.com/bwesterb/go-dsmrp1

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel

from dsmr_edge.src.models import (
    ElectricityData,
    GasData,
    MultiphaseElectricityData,
    Tariff,
)

# ---------------------------------------------------------------------------
# Data definitions
# ---------------------------------------------------------------------------


class Kind(Enum):
    """How the arguments of a code are turned into a field value."""

    IDENTIFIER = "id"
    """One argument, kept verbatim."""
    INTEGER = "int"
    """One argument, parsed as a base-10 integer."""
    LOG_TEXT = "log"
    """One argument, kept verbatim (never unit-converted)."""
    QUANTITY = "unit"
    """One ``amount*unit`` argument, normalized to a float."""
    GAS_RECORD = "gasrecord"
    """Two arguments: a verbatim timestamp and a quantity."""


_ARITY: dict[Kind, int] = {
    Kind.IDENTIFIER: 1,
    Kind.INTEGER: 1,
    Kind.LOG_TEXT: 1,
    Kind.QUANTITY: 1,
    Kind.GAS_RECORD: 2,
}


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Definition of a single OBIS-coded field.

    Attributes:
        code: OBIS code as it appears before the first ``(``.
        field: Attribute name on the target model.
        kind: Decode rule applied to the code's arguments.
        optional: ``True`` when the field is nullable; its absence is then
            not an error.
        convert: Optional callable applied to the decoded value (e.g.
            ``Tariff``). A ``ValueError`` from it is a field error.
    """

    code: str
    field: str
    kind: Kind
    optional: bool = False
    convert: Callable[[Any], Any] | None = None

    @property
    def arity(self) -> int:
        """Number of arguments the code must carry."""
        return _ARITY[self.kind]


@dataclass(frozen=True, slots=True)
class SubRecord:
    """A block decoded only when its marker code is present.

    Attributes:
        marker: OBIS code whose presence triggers the block.
        attribute: Attribute name of the block on :class:`Telegram`.
        model: Model class the block is decoded into.
        fields: Field specs of the block's model.
    """

    marker: str
    attribute: str
    model: type[BaseModel]
    fields: tuple[FieldSpec, ...]


# ---------------------------------------------------------------------------
# Telegram (always decoded)
# ---------------------------------------------------------------------------

TELEGRAM_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("1-3:0.2.8", "p1_version", Kind.IDENTIFIER),
    FieldSpec("0-0:1.0.0", "timestamp", Kind.IDENTIFIER),
    FieldSpec("0-0:96.1.1", "id", Kind.IDENTIFIER),
    FieldSpec("0-0:96.13.1", "msg_numeric", Kind.IDENTIFIER, optional=True),
    FieldSpec("0-0:96.13.0", "msg_txt", Kind.IDENTIFIER, optional=True),
)

# ---------------------------------------------------------------------------
# Electricity (marker 1-0:1.8.1)
# ---------------------------------------------------------------------------

ELECTRICITY_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("1-0:1.8.2", "kwh", Kind.QUANTITY),
    FieldSpec("1-0:1.8.1", "kwh_low", Kind.QUANTITY),
    FieldSpec("1-0:2.8.2", "kwh_out", Kind.QUANTITY),
    FieldSpec("1-0:2.8.1", "kwh_out_low", Kind.QUANTITY),
    FieldSpec("0-0:96.14.0", "tariff", Kind.INTEGER, convert=Tariff),
    FieldSpec("1-0:1.7.0", "w", Kind.QUANTITY),
    FieldSpec("1-0:2.7.0", "w_out", Kind.QUANTITY),
    FieldSpec("0-0:17.0.0", "threshold", Kind.QUANTITY, optional=True),
    FieldSpec("0-0:96.3.10", "switch", Kind.IDENTIFIER, optional=True),
    FieldSpec("0-0:96.7.21", "power_failures", Kind.INTEGER),
    FieldSpec("0-0:96.7.9", "long_power_failures", Kind.INTEGER),
    FieldSpec("1-0:99.97.0", "power_failures_log", Kind.LOG_TEXT),
    FieldSpec("1-0:32.32.0", "l1_voltage_sags", Kind.INTEGER),
    FieldSpec("1-0:32.36.0", "l1_voltage_swells", Kind.INTEGER),
    FieldSpec("1-0:31.7.0", "l1_current", Kind.QUANTITY),
    FieldSpec("1-0:32.7.0", "l1_voltage", Kind.QUANTITY, optional=True),
    FieldSpec("1-0:21.7.0", "l1_power", Kind.QUANTITY),
    FieldSpec("1-0:22.7.0", "l1_power_out", Kind.QUANTITY),
)

# ---------------------------------------------------------------------------
# Multiphase electricity (marker 1-0:41.7.0)
# ---------------------------------------------------------------------------

MULTIPHASE_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("1-0:52.32.0", "l2_voltage_sags", Kind.INTEGER),
    FieldSpec("1-0:52.36.0", "l2_voltage_swells", Kind.INTEGER),
    FieldSpec("1-0:51.7.0", "l2_current", Kind.QUANTITY),
    FieldSpec("1-0:52.7.0", "l2_voltage", Kind.QUANTITY, optional=True),
    FieldSpec("1-0:41.7.0", "l2_power", Kind.QUANTITY),
    FieldSpec("1-0:42.7.0", "l2_power_out", Kind.QUANTITY),
    FieldSpec("1-0:72.32.0", "l3_voltage_sags", Kind.INTEGER),
    FieldSpec("1-0:72.36.0", "l3_voltage_swells", Kind.INTEGER),
    FieldSpec("1-0:71.7.0", "l3_current", Kind.QUANTITY),
    FieldSpec("1-0:72.7.0", "l3_voltage", Kind.QUANTITY, optional=True),
    FieldSpec("1-0:61.7.0", "l3_power", Kind.QUANTITY),
    FieldSpec("1-0:62.7.0", "l3_power_out", Kind.QUANTITY),
)

# ---------------------------------------------------------------------------
# Gas (marker 0-1:24.2.1)
# ---------------------------------------------------------------------------

GAS_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("0-1:24.1.0", "type", Kind.IDENTIFIER),
    FieldSpec("0-1:96.1.0", "id", Kind.IDENTIFIER),
    FieldSpec("0-1:24.4.0", "switch", Kind.IDENTIFIER, optional=True),
    FieldSpec("0-1:24.2.1", "last_record", Kind.GAS_RECORD),
)

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

SUB_RECORDS: tuple[SubRecord, ...] = (
    SubRecord("1-0:1.8.1", "electricity", ElectricityData, ELECTRICITY_FIELDS),
    SubRecord(
        "1-0:41.7.0",
        "multiphase_electricity",
        MultiphaseElectricityData,
        MULTIPHASE_FIELDS,
    ),
    SubRecord("0-1:24.2.1", "gas", GasData, GAS_FIELDS),
)
"""Conditionally decoded blocks, in decode order."""

ALL_FIELDS: dict[str, FieldSpec] = {
    spec.code: spec
    for specs in (TELEGRAM_FIELDS, *(sub.fields for sub in SUB_RECORDS))
    for spec in specs
}
"""Flat lookup of every known field spec by OBIS code."""
