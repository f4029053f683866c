"""
Unit normalization for OBIS ``amount*unit`` values.

Quantities in a telegram arrive as ``"000123.456*kWh"``. They are
normalized at decode time to a plain float in a canonical unit, so no unit
string ever reaches a numeric field.

The factor table is a fixed domain table, not a unit system: ``kW`` is
re-expressed in W while ``kWh`` is kept as-is. Existing consumers depend on
exactly these numbers.

Also hosts a helper for meter timestamps, which the telegram keeps
verbatim, for callers that want them as datetimes.

CHANGELOG:
- 2026-10-19: Initial creation
- 2026-10-20: Strict number parsing (no "_" separators, no padding)

TODO:
- None
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from dsmr_edge.src.exceptions import UnitError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

NORMALIZED_UNITS: dict[str, float] = {
    "kWh": 1,
    "kW": 1000,
    "W": 1,
    "s": 1,
    "m3": 1,
    "A": 1,
    "V": 1,
}
"""Maps unit suffix -> multiplication factor to the canonical unit."""

_DST_OFFSETS: dict[str, timezone] = {
    "S": timezone(timedelta(hours=2)),
    "W": timezone(timedelta(hours=1)),
}
"""DSMR timestamps end in S (summer time) or W (winter time)."""


# ---------------------------------------------------------------------------
# Plain numbers
# ---------------------------------------------------------------------------


def _reject_loose_syntax(text: str) -> None:
    # int() and float() also take "_" separators and surrounding whitespace.
    if "_" in text or text != text.strip():
        raise ValueError(f"invalid syntax: {text!r}")


def parse_int(text: str) -> int:
    """Parse a base-10 integer argument such as ``"00004"``.

    Raises:
        ValueError: If *text* is not a plain decimal integer.
    """
    _reject_loose_syntax(text)
    return int(text, 10)


def parse_float(text: str) -> float:
    """Parse a decimal amount such as ``"000123.456"``.

    Raises:
        ValueError: If *text* is not a plain decimal number.
    """
    _reject_loose_syntax(text)
    return float(text)


# ---------------------------------------------------------------------------
# Quantities
# ---------------------------------------------------------------------------


def normalize_unit(token: str) -> float:
    """Parse an ``amount*unit`` token and convert it to its canonical unit.

    Args:
        token: Raw argument such as ``"01.193*kW"``.

    Returns:
        The amount multiplied by the unit's factor (``1193.0`` for the
        example above).

    Raises:
        UnitError: If the token has no ``*``, the amount is not a number,
            or the unit is not in :data:`NORMALIZED_UNITS`.
    """
    bits = token.split("*", 1)
    if len(bits) != 2:
        raise UnitError(f"not a unit: {token}")
    amount_str, unit = bits

    try:
        amount = parse_float(amount_str)
    except ValueError as err:
        raise UnitError(f"could not parse amount: {err}") from err

    factor = NORMALIZED_UNITS.get(unit)
    if factor is None:
        raise UnitError(f"unknown unit: {token}")
    return amount * factor


# ---------------------------------------------------------------------------
# Verbatim values
# ---------------------------------------------------------------------------


def parse_timestamp(value: str) -> datetime:
    """Convert a meter timestamp (``YYMMDDhhmmssX``) into a datetime.

    The trailing ``S``/``W`` flag selects CEST/CET; without it the result
    is naive.

    Raises:
        ValueError: If *value* is not a valid meter timestamp.
    """
    tz = None
    if value[-1:] in _DST_OFFSETS:
        tz = _DST_OFFSETS[value[-1]]
        value = value[:-1]
    if len(value) != 12 or not value.isdigit():
        raise ValueError(f"not a meter timestamp: {value!r}")
    return datetime.strptime(value, "%y%m%d%H%M%S").replace(tzinfo=tz)
