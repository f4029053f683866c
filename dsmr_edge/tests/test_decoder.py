"""
Tests for decoding split telegram data into Telegram models.

Tests verify:
- A complete three-phase telegram with gas decodes with zero errors.
- Optional blocks are absent when their marker code is absent.
- Missing and malformed fields are reported without losing the telegram.
- Numbers with "_" separators or padding are malformed.
- Unclaimed codes land in ``other`` verbatim.
- The full pipeline rejects bad checksums and malformed lines.
- JSON output uses the established key names.

CHANGELOG:
- 2026-10-19: Initial creation
- 2026-10-20: Reject "_" separators and padding in numeric fields

TODO:
- None
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable

import pytest
from dsmr_edge.src.decoder import (
    decode_field,
    decode_record,
    decode_telegram,
    parse_frame,
    parse_telegram,
)
from dsmr_edge.src.exceptions import (
    ChecksumError,
    DuplicateCodeError,
    FieldError,
    FramingError,
    MalformedArgumentError,
)
from dsmr_edge.src.framer import frame_bytes
from dsmr_edge.src.models import GasRecord, Tariff
from dsmr_edge.src.obis import ALL_FIELDS, ELECTRICITY_FIELDS, FieldSpec, Kind

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_MINIMAL_LINES = [
    "1-3:0.2.8(42)",
    "0-0:1.0.0(170601120000S)",
    "0-0:96.1.1(4530303034303031)",
]
"""The telegram's own required fields and nothing else."""


def _replace(lines: list[str], code: str, line: str | None) -> list[str]:
    """Replace (or with None, remove) the line carrying *code*."""
    out = []
    for existing in lines:
        if existing.startswith(code + "("):
            if line is not None:
                out.append(line)
            continue
        out.append(existing)
    return out


# ---------------------------------------------------------------------------
# decode_field
# ---------------------------------------------------------------------------


class TestDecodeField:
    """Single fields decode per their kind or report a FieldError."""

    def test_identifier_verbatim(self) -> None:
        spec = ALL_FIELDS["0-0:96.1.1"]
        assert decode_field(spec, ["4B3845"]) == ("4B3845", None)

    def test_integer(self) -> None:
        assert decode_field(ALL_FIELDS["0-0:96.7.21"], ["00004"]) == (4, None)

    def test_integer_failure(self) -> None:
        value, error = decode_field(ALL_FIELDS["0-0:96.7.21"], ["abc"])
        assert value is None
        assert error is not None
        assert error.code == "0-0:96.7.21"
        assert "could not parse amount" in error.message

    @pytest.mark.parametrize("arg", ["1_0", " 4", "4 ", "+ 4"])
    def test_integer_loose_syntax_rejected(self, arg: str) -> None:
        value, error = decode_field(ALL_FIELDS["0-0:96.7.21"], [arg])
        assert value is None
        assert error is not None
        assert "could not parse amount" in error.message

    def test_quantity_with_separator_rejected(self) -> None:
        value, error = decode_field(ALL_FIELDS["1-0:1.8.1"], ["1_000.0*kWh"])
        assert value is None
        assert error is not None
        assert "could not parse amount" in error.message

    def test_quantity(self) -> None:
        value, error = decode_field(ALL_FIELDS["1-0:1.7.0"], ["01.193*kW"])
        assert error is None
        assert value == pytest.approx(1193.0)

    def test_quantity_failure_names_code(self) -> None:
        _, error = decode_field(ALL_FIELDS["1-0:1.8.1"], ["1*XYZ"])
        assert error == FieldError("1-0:1.8.1", "1-0:1.8.1: unknown unit: 1*XYZ")

    def test_log_text_is_not_unit_converted(self) -> None:
        value, error = decode_field(ALL_FIELDS["1-0:99.97.0"], ["0-0:96.7.19"])
        assert (value, error) == ("0-0:96.7.19", None)

    def test_gas_record(self) -> None:
        value, error = decode_field(
            ALL_FIELDS["0-1:24.2.1"], ["101209112500W", "12785.123*m3"]
        )
        assert error is None
        assert value == GasRecord(timestamp="101209112500W", value=12785.123)

    def test_gas_record_bad_value(self) -> None:
        value, error = decode_field(
            ALL_FIELDS["0-1:24.2.1"], ["101209112500W", "12785.123"]
        )
        assert value is None
        assert error is not None
        assert error.message.startswith("0-1:24.2.1: value: not a unit")

    @pytest.mark.parametrize("args", [[], ["1"], ["1", "2", "3"]])
    def test_gas_record_wrong_arity(self, args: list[str]) -> None:
        _, error = decode_field(ALL_FIELDS["0-1:24.2.1"], args)
        assert str(error) == "0-1:24.2.1: wrong number of arguments"

    def test_single_argument_kind_with_two_arguments(self) -> None:
        _, error = decode_field(ALL_FIELDS["1-3:0.2.8"], ["50", "51"])
        assert str(error) == "1-3:0.2.8: wrong number of arguments"

    def test_tariff_converted(self) -> None:
        value, error = decode_field(ALL_FIELDS["0-0:96.14.0"], ["0001"])
        assert error is None
        assert value is Tariff.HIGH

    def test_unknown_tariff(self) -> None:
        value, error = decode_field(ALL_FIELDS["0-0:96.14.0"], ["0003"])
        assert value is None
        assert str(error) == "0-0:96.14.0: unknown value 3"

    def test_custom_convert(self) -> None:
        spec = FieldSpec("9-9:9.9.9", "x", Kind.IDENTIFIER, convert=str.lower)
        assert decode_field(spec, ["ABC"]) == ("abc", None)


# ---------------------------------------------------------------------------
# decode_record
# ---------------------------------------------------------------------------


class TestDecodeRecord:
    def test_missing_required_fields_reported(self) -> None:
        data = {"1-0:1.8.1": ["000001.000*kWh"]}
        values, errors = decode_record(ELECTRICITY_FIELDS, data, set())
        assert values == {"kwh_low": pytest.approx(1.0)}
        # 15 required electricity fields, one of them present.
        assert len(errors) == 14
        assert FieldError("1-0:1.8.2", "missing data for 1-0:1.8.2") in errors

    def test_missing_optional_fields_are_silent(self) -> None:
        _, errors = decode_record(ELECTRICITY_FIELDS, {}, set())
        codes = {error.code for error in errors}
        assert codes.isdisjoint({"0-0:17.0.0", "0-0:96.3.10", "1-0:32.7.0"})
        assert len(codes) == 15

    def test_claims_present_codes_even_on_failure(self) -> None:
        data = {"1-0:1.8.1": ["bad"], "unrelated": ["x"]}
        claimed: set[str] = set()
        decode_record(ELECTRICITY_FIELDS, data, claimed)
        assert claimed == {"1-0:1.8.1"}

    def test_data_is_not_modified(self) -> None:
        data = {"1-0:1.8.1": ["000001.000*kWh"], "x": ["y"]}
        snapshot = {code: list(args) for code, args in data.items()}
        decode_record(ELECTRICITY_FIELDS, data, set())
        assert data == snapshot


# ---------------------------------------------------------------------------
# Full telegram
# ---------------------------------------------------------------------------


class TestFullTelegram:
    """A complete DSMR 5 telegram decodes every field, error-free."""

    def test_no_errors(self, full_telegram: bytes) -> None:
        result = parse_telegram(full_telegram)
        assert result.errors == []
        assert result.telegram.other == {}

    def test_header_and_telegram_fields(self, full_telegram: bytes) -> None:
        telegram = parse_telegram(full_telegram).telegram
        assert telegram.header_marker == "/ISk5\\"
        assert telegram.header_id == "2MT382-1000"
        assert telegram.p1_version == "50"
        assert telegram.timestamp == "101209113020W"
        assert telegram.id == "4B384547303034303436333935353037"
        assert telegram.msg_txt == "303132333435363738393A3B3C3D3E3F"
        assert telegram.msg_numeric is None

    def test_electricity(self, full_telegram: bytes) -> None:
        elec = parse_telegram(full_telegram).telegram.electricity
        assert elec is not None
        assert elec.kwh == pytest.approx(123457.789)
        assert elec.kwh_low == pytest.approx(123456.789)
        assert elec.kwh_out == pytest.approx(23.456)
        assert elec.kwh_out_low == pytest.approx(12.345)
        assert elec.tariff is Tariff.LOW
        assert elec.w == pytest.approx(1193.0)
        assert elec.w_out == 0.0
        assert elec.threshold is None
        assert elec.switch is None
        assert elec.power_failures == 4
        assert elec.long_power_failures == 2
        assert elec.power_failures_log == "0-0:96.7.19"
        assert elec.l1_voltage_sags == 2
        assert elec.l1_voltage_swells == 0
        assert elec.l1_current == pytest.approx(1.0)
        assert elec.l1_voltage == pytest.approx(220.1)
        assert elec.l1_power == pytest.approx(1111.0)
        assert elec.l1_power_out == pytest.approx(4444.0)

    def test_multiphase(self, full_telegram: bytes) -> None:
        multi = parse_telegram(full_telegram).telegram.multiphase_electricity
        assert multi is not None
        assert multi.l2_voltage_sags == 1
        assert multi.l2_voltage_swells == 3
        assert multi.l2_current == pytest.approx(2.0)
        assert multi.l2_voltage == pytest.approx(220.2)
        assert multi.l2_power == pytest.approx(2222.0)
        assert multi.l2_power_out == pytest.approx(5555.0)
        assert multi.l3_voltage_sags == 0
        assert multi.l3_current == pytest.approx(3.0)
        assert multi.l3_voltage == pytest.approx(220.3)
        assert multi.l3_power == pytest.approx(3333.0)
        assert multi.l3_power_out == pytest.approx(6666.0)

    def test_gas(self, full_telegram: bytes) -> None:
        gas = parse_telegram(full_telegram).telegram.gas
        assert gas is not None
        assert gas.type == "003"
        assert gas.id == "3232323241424344313233343536373839"
        assert gas.switch is None
        assert gas.last_record.timestamp == "101209112500W"
        assert gas.last_record.value == pytest.approx(12785.123)


# ---------------------------------------------------------------------------
# Partial and degraded telegrams
# ---------------------------------------------------------------------------


class TestPartialTelegrams:
    """Field errors never prevent a telegram from being produced."""

    def test_minimal_telegram(self, make_telegram: Callable[..., bytes]) -> None:
        result = parse_telegram(make_telegram(_MINIMAL_LINES))
        assert result.errors == []
        telegram = result.telegram
        assert telegram.p1_version == "42"
        assert telegram.electricity is None
        assert telegram.multiphase_electricity is None
        assert telegram.gas is None
        assert telegram.other == {}

    def test_missing_telegram_field(self, make_telegram: Callable[..., bytes]) -> None:
        result = parse_telegram(make_telegram(_MINIMAL_LINES[:2]))
        assert result.errors == [
            FieldError("0-0:96.1.1", "missing data for 0-0:96.1.1")
        ]
        assert result.telegram.id == ""
        assert result.telegram.p1_version == "42"

    def test_gas_record_with_one_argument(
        self,
        make_telegram: Callable[..., bytes],
        full_telegram_lines: list[str],
    ) -> None:
        lines = _replace(full_telegram_lines, "0-1:24.2.1", "0-1:24.2.1(12785.123*m3)")
        result = parse_telegram(make_telegram(lines))

        assert [str(e) for e in result.errors] == [
            "0-1:24.2.1: wrong number of arguments"
        ]
        gas = result.telegram.gas
        assert gas is not None
        assert gas.type == "003"
        assert gas.last_record == GasRecord()
        assert result.telegram.electricity is not None
        assert result.telegram.electricity.kwh == pytest.approx(123457.789)

    def test_power_failures_with_separator(
        self,
        make_telegram: Callable[..., bytes],
        full_telegram_lines: list[str],
    ) -> None:
        lines = _replace(full_telegram_lines, "0-0:96.7.21", "0-0:96.7.21(1_0)")
        result = parse_telegram(make_telegram(lines))

        assert [e.code for e in result.errors] == ["0-0:96.7.21"]
        assert "could not parse amount" in result.errors[0].message
        assert result.telegram.electricity is not None
        assert result.telegram.electricity.power_failures == 0
        assert result.telegram.electricity.long_power_failures == 2

    def test_invalid_tariff(
        self,
        make_telegram: Callable[..., bytes],
        full_telegram_lines: list[str],
    ) -> None:
        lines = _replace(full_telegram_lines, "0-0:96.14.0", "0-0:96.14.0(0007)")
        result = parse_telegram(make_telegram(lines))
        assert [e.code for e in result.errors] == ["0-0:96.14.0"]
        assert "unknown value 7" in result.errors[0].message
        assert result.telegram.electricity is not None
        assert result.telegram.electricity.tariff is None

    def test_missing_block_field(
        self,
        make_telegram: Callable[..., bytes],
        full_telegram_lines: list[str],
    ) -> None:
        lines = _replace(full_telegram_lines, "1-0:2.7.0", None)
        result = parse_telegram(make_telegram(lines))
        assert result.errors == [FieldError("1-0:2.7.0", "missing data for 1-0:2.7.0")]
        assert result.telegram.electricity is not None
        assert result.telegram.electricity.w_out == 0.0

    def test_optional_fields_present(
        self,
        make_telegram: Callable[..., bytes],
        full_telegram_lines: list[str],
    ) -> None:
        lines = [
            *full_telegram_lines,
            "0-0:17.0.0(999.9*kW)",
            "0-0:96.3.10(1)",
            "0-0:96.13.1(303132)",
            "0-1:24.4.0(1)",
        ]
        result = parse_telegram(make_telegram(lines))
        assert result.errors == []
        telegram = result.telegram
        assert telegram.electricity is not None
        assert telegram.electricity.threshold == pytest.approx(999900.0)
        assert telegram.electricity.switch == "1"
        assert telegram.msg_numeric == "303132"
        assert telegram.gas is not None
        assert telegram.gas.switch == "1"

    def test_no_multiphase_block_without_marker(
        self,
        make_telegram: Callable[..., bytes],
        full_telegram_lines: list[str],
    ) -> None:
        lines = _replace(full_telegram_lines, "1-0:41.7.0", None)
        result = parse_telegram(make_telegram(lines))
        assert result.errors == []
        assert result.telegram.multiphase_electricity is None
        # Phase 2/3 codes are not claimed by any decoded record.
        assert result.telegram.other["1-0:52.32.0"] == ["00001"]
        assert result.telegram.other["1-0:62.7.0"] == ["06.666*kW"]
        assert "1-0:31.7.0" not in result.telegram.other


# ---------------------------------------------------------------------------
# Residual codes
# ---------------------------------------------------------------------------


class TestOther:
    def test_unknown_codes_kept_verbatim(
        self, make_telegram: Callable[..., bytes]
    ) -> None:
        lines = [*_MINIMAL_LINES, "0-0:96.99.9(foo)(bar)", "0-2:24.1.0(007)"]
        telegram = parse_telegram(make_telegram(lines)).telegram
        assert telegram.other == {
            "0-0:96.99.9": ["foo", "bar"],
            "0-2:24.1.0": ["007"],
        }

    def test_failed_known_code_is_not_residual(
        self, make_telegram: Callable[..., bytes]
    ) -> None:
        lines = [*_MINIMAL_LINES, "1-0:1.8.1(bogus)"]
        result = parse_telegram(make_telegram(lines))
        assert "1-0:1.8.1" not in result.telegram.other
        assert "1-0:1.8.1" in {e.code for e in result.errors}

    def test_decode_telegram_leaves_input_alone(self, full_telegram: bytes) -> None:
        frame = frame_bytes(full_telegram)
        data = {"1-3:0.2.8": ["50"], "9-9:9.9.9": ["x"]}
        decode_telegram(frame, data)
        assert data == {"1-3:0.2.8": ["50"], "9-9:9.9.9": ["x"]}


# ---------------------------------------------------------------------------
# Telegram-level failures
# ---------------------------------------------------------------------------


class TestParseFailures:
    """Checksum and split failures discard the whole telegram."""

    def test_bad_checksum(self, make_telegram: Callable[..., bytes]) -> None:
        with pytest.raises(ChecksumError):
            parse_telegram(make_telegram(_MINIMAL_LINES, crc=0x1234))

    def test_checksum_checked_before_splitting(
        self, make_telegram: Callable[..., bytes]
    ) -> None:
        raw = make_telegram([*_MINIMAL_LINES, "1-0:1.8.1(1"], crc=0x1234)
        with pytest.raises(ChecksumError):
            parse_telegram(raw)

    def test_malformed_line(self, make_telegram: Callable[..., bytes]) -> None:
        raw = make_telegram([*_MINIMAL_LINES, "1-0:1.8.1(123.456"])
        with pytest.raises(MalformedArgumentError, match="1-0:1.8.1"):
            parse_telegram(raw)

    def test_duplicate_code(self, make_telegram: Callable[..., bytes]) -> None:
        raw = make_telegram([*_MINIMAL_LINES, "1-3:0.2.8(50)"])
        with pytest.raises(DuplicateCodeError):
            parse_telegram(raw)

    def test_first_split_error_raised_rest_logged(
        self,
        make_telegram: Callable[..., bytes],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        raw = make_telegram([*_MINIMAL_LINES, "1-0:1.8.1(1", "1-3:0.2.8(50)"])
        with caplog.at_level(logging.WARNING), pytest.raises(MalformedArgumentError):
            parse_frame(frame_bytes(raw))
        assert "multiple occurrences of code 1-3:0.2.8" in caplog.text

    def test_framing_error(self) -> None:
        with pytest.raises(FramingError):
            parse_telegram(b"/ISk5\\2MT382-1000\r\nnot blank\r\n!0000\r\n")


# ---------------------------------------------------------------------------
# JSON shape
# ---------------------------------------------------------------------------


class TestJsonShape:
    """Dumping by alias yields the established key names."""

    def test_aliased_keys(self, full_telegram: bytes) -> None:
        telegram = parse_telegram(full_telegram).telegram
        doc = json.loads(telegram.model_dump_json(by_alias=True))

        assert doc["HeaderMarker"] == "/ISk5\\"
        assert doc["HeaderId"] == "2MT382-1000"
        assert doc["P1Version"] == "50"
        assert doc["ID"] == "4B384547303034303436333935353037"
        assert doc["MsgNumeric"] is None
        assert doc["Electricity"]["KWh"] == pytest.approx(123457.789)
        assert doc["Electricity"]["Tariff"] == 2
        assert doc["Electricity"]["L1PowerOut"] == pytest.approx(4444.0)
        assert doc["MultiphaseElectricity"]["L3Voltage"] == pytest.approx(220.3)
        assert doc["Gas"]["LastRecord"] == {
            "TimeStamp": "101209112500W",
            "Value": pytest.approx(12785.123),
        }
        assert doc["Other"] == {}

    def test_absent_blocks_are_null(self, make_telegram: Callable[..., bytes]) -> None:
        telegram = parse_telegram(make_telegram(_MINIMAL_LINES)).telegram
        doc = json.loads(telegram.model_dump_json(by_alias=True))
        assert doc["Electricity"] is None
        assert doc["MultiphaseElectricity"] is None
        assert doc["Gas"] is None
