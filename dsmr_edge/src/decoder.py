"""
Decoder that maps split telegram data onto the typed telegram models.

Walks the OBIS field specs from :mod:`dsmr_edge.src.obis` and fills the
matching model fields, collecting a :class:`FieldError` for every field
that is missing or malformed instead of giving up on the telegram. The
telegram's own fields are always decoded; each optional block is decoded
only when its marker code is present. Codes no spec claims are copied into
``Telegram.other`` verbatim.

The input mapping is never modified: claimed codes are tracked in a set
and only unclaimed entries are copied into the residual bucket.

Also provides the full per-telegram pipeline (checksum, split, decode) for
a framed telegram and for a complete telegram held in memory.

CHANGELOG:
- 2026-10-19: Initial creation
- 2026-10-20: Parse integer fields with units.parse_int

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import Any

from dsmr_edge.src.checksum import verify_checksum
from dsmr_edge.src.exceptions import FieldError, UnitError
from dsmr_edge.src.framer import Frame, frame_bytes
from dsmr_edge.src.models import DecodeResult, GasRecord, Telegram
from dsmr_edge.src.obis import SUB_RECORDS, TELEGRAM_FIELDS, FieldSpec, Kind
from dsmr_edge.src.splitter import split_lines
from dsmr_edge.src.units import normalize_unit, parse_int

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Core: decode a single field
# ---------------------------------------------------------------------------


class _FieldFailure(Exception):
    """Internal signal that one field could not be decoded."""


def _decode_args(spec: FieldSpec, args: list[str]) -> Any:
    """Turn a code's raw arguments into the field value for *spec*.

    Raises:
        _FieldFailure: With the message to report for this field.
    """
    if len(args) != spec.arity:
        raise _FieldFailure("wrong number of arguments")

    kind = spec.kind
    if kind in (Kind.IDENTIFIER, Kind.LOG_TEXT):
        return args[0]

    if kind is Kind.INTEGER:
        try:
            return parse_int(args[0])
        except ValueError as err:
            raise _FieldFailure(f"could not parse amount: {err}") from err

    if kind is Kind.QUANTITY:
        try:
            return normalize_unit(args[0])
        except UnitError as err:
            raise _FieldFailure(str(err)) from err

    if kind is Kind.GAS_RECORD:
        timestamp, volume = args
        try:
            value = normalize_unit(volume)
        except UnitError as err:
            raise _FieldFailure(f"value: {err}") from err
        return GasRecord(timestamp=timestamp, value=value)

    raise _FieldFailure(f"unsupported kind {kind}")


def decode_field(spec: FieldSpec, args: list[str]) -> tuple[Any, FieldError | None]:
    """Decode one field.

    Returns:
        ``(value, None)`` on success, ``(None, error)`` otherwise.
    """
    try:
        value = _decode_args(spec, args)
        if spec.convert is not None:
            try:
                value = spec.convert(value)
            except ValueError as err:
                raise _FieldFailure(f"unknown value {value!r}") from err
    except _FieldFailure as failure:
        return None, FieldError(spec.code, f"{spec.code}: {failure}")
    return value, None


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def decode_record(
    specs: tuple[FieldSpec, ...],
    data: dict[str, list[str]],
    claimed: set[str],
) -> tuple[dict[str, Any], list[FieldError]]:
    """Decode the fields of one record from the split telegram data.

    Args:
        specs: Field specs of the record.
        data: Code -> arguments mapping for the whole telegram. Not
            modified.
        claimed: Codes consumed so far; every code present in *data* for
            one of *specs* is added, whether or not it decodes.

    Returns:
        ``(values, errors)`` where *values* maps field names to decoded
        values for the fields that decoded, ready to pass to the model.
        Fields left out keep their model default (zero value or ``None``).
    """
    values: dict[str, Any] = {}
    errors: list[FieldError] = []

    for spec in specs:
        args = data.get(spec.code)
        if args is None:
            if not spec.optional:
                errors.append(FieldError(spec.code, f"missing data for {spec.code}"))
            continue

        claimed.add(spec.code)
        value, error = decode_field(spec, args)
        if error is not None:
            errors.append(error)
            continue
        values[spec.field] = value

    return values, errors


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def decode_telegram(frame: Frame, data: dict[str, list[str]]) -> DecodeResult:
    """Build a :class:`Telegram` from a frame's header and its split data.

    Args:
        frame: The framed telegram (for the header fields).
        data: Code -> arguments mapping produced by the splitter.

    Returns:
        The telegram plus every field-level error; errors never prevent a
        telegram from being returned.
    """
    claimed: set[str] = set()
    values, errors = decode_record(TELEGRAM_FIELDS, data, claimed)

    for sub in SUB_RECORDS:
        if sub.marker not in data:
            continue
        sub_values, sub_errors = decode_record(sub.fields, data, claimed)
        errors.extend(sub_errors)
        values[sub.attribute] = sub.model(**sub_values)

    other = {code: list(args) for code, args in data.items() if code not in claimed}

    telegram = Telegram(
        header_marker=frame.header_marker,
        header_id=frame.header_id,
        other=other,
        **values,
    )
    return DecodeResult(telegram=telegram, errors=errors)


def parse_frame(frame: Frame) -> DecodeResult:
    """Verify, split and decode one framed telegram.

    Raises:
        ChecksumError: If the CRC does not match.
        LineSplitError: If any data line could not be split; the first
            error is raised and any further ones are logged.
    """
    verify_checksum(frame)

    data, split_errors = split_lines(frame.lines)
    if split_errors:
        for extra in split_errors[1:]:
            logger.warning("Additional line error in discarded telegram: %s", extra)
        raise split_errors[0]

    return decode_telegram(frame, data)


def parse_telegram(raw: bytes) -> DecodeResult:
    """Decode one complete telegram held in memory.

    Args:
        raw: Bytes from the header line through the footer line.

    Raises:
        TelegramError: On any framing, checksum or line-splitting error.
    """
    return parse_frame(frame_bytes(raw))
