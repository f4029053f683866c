"""
Split telegram data lines into ``code -> [argument, ...]``.

A data line is an OBIS code followed by zero or more parenthesised
arguments::

    0-1:24.2.1(101209110000W)(12785.123*m3)
    -> "0-1:24.2.1": ["101209110000W", "12785.123*m3"]

Some meters wrap long lines; a wrapped part starts with ``(`` and belongs
to the preceding line.

Errors are collected rather than raised so every bad line gets reported;
the caller discards the telegram if any were found since the mapping
cannot be trusted.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

from typing import NamedTuple

from dsmr_edge.src.exceptions import (
    DuplicateCodeError,
    LineSplitError,
    MalformedArgumentError,
)


class SplitResult(NamedTuple):
    """Outcome of :func:`split_lines`.

    Attributes:
        data: Code -> argument list, in telegram order. Lines that failed
            to split are absent.
        errors: One error per offending line, in order.
    """

    data: dict[str, list[str]]
    errors: list[LineSplitError]


def merge_continuations(lines: list[str]) -> list[str]:
    """Join wrapped lines onto the line they continue and drop blank ones."""
    merged: list[str] = []
    for line in lines:
        if not line:
            continue
        if line.startswith("(") and merged:
            merged[-1] += line
            continue
        merged.append(line)
    return merged


def split_line(line: str) -> tuple[str, list[str]]:
    """Split one logical line into its code and arguments.

    Raises:
        MalformedArgumentError: If an argument is not closed by ``)``.
    """
    code, *bits = line.split("(")
    args: list[str] = []
    for bit in bits:
        if not bit.endswith(")"):
            raise MalformedArgumentError(f"malformed argument in line {line!r}")
        args.append(bit[:-1])
    return code, args


def split_lines(lines: list[str]) -> SplitResult:
    """Split every data line of a telegram.

    Args:
        lines: Trimmed data lines as produced by the framer.

    Returns:
        A :class:`SplitResult`; ``errors`` holds a
        :class:`MalformedArgumentError` or :class:`DuplicateCodeError` per
        offending line.
    """
    data: dict[str, list[str]] = {}
    errors: list[LineSplitError] = []

    for line in merge_continuations(lines):
        try:
            code, args = split_line(line)
        except MalformedArgumentError as err:
            errors.append(err)
            continue
        if code in data:
            errors.append(DuplicateCodeError(f"multiple occurrences of code {code}"))
            continue
        data[code] = args

    return SplitResult(data=data, errors=errors)
