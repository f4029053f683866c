"""
CRC16 verification of framed P1 telegrams.

DSMR meters protect each telegram with a CRC16 over every byte from the
``/`` of the header up to and including the ``!`` of the footer, using the
reflected polynomial 0x8005 (0xA001) with no initial or final XOR
(CRC-16/ARC). The footer carries the value as four hex digits.

CHANGELOG:
- 2026-10-19: Initial creation
- 2026-10-20: Accept only 1-4 hex digits in the footer; share the footer
  marker with the framer

TODO:
- None
"""

from __future__ import annotations

import logging
import re

import crcmod.predefined

from dsmr_edge.src.exceptions import ChecksumError
from dsmr_edge.src.framer import FOOTER_MARKER, Frame

logger = logging.getLogger(__name__)

crc16 = crcmod.predefined.mkPredefinedCrcFun("crc16")
"""Table-driven CRC-16/ARC: ``crc16(b"123456789") == 0xBB3D``."""

_FOOTER_DIGITS = re.compile(r"[0-9A-Fa-f]{1,4}")


def compute_checksum(body: bytes) -> int:
    """Return the CRC of a checksum body, including the footer marker."""
    return crc16(body + FOOTER_MARKER)


def parse_footer(footer: str) -> int:
    """Parse the hexadecimal CRC carried after the footer's ``!``.

    Raises:
        ChecksumError: If the footer holds no valid 16-bit hex value.
    """
    digits = footer[1:].strip()
    if not _FOOTER_DIGITS.fullmatch(digits):
        raise ChecksumError(f"could not parse checksum: {footer!r}")
    return int(digits, 16)


def verify_checksum(frame: Frame) -> None:
    """Check that *frame*'s footer CRC matches its body.

    Raises:
        ChecksumError: On an unparsable footer or a mismatch. No partial
            telegram may be produced from a frame that fails here.
    """
    expected = parse_footer(frame.footer)
    actual = compute_checksum(frame.body)
    if actual != expected:
        logger.debug(
            "Checksum mismatch: computed %04X, footer says %04X", actual, expected
        )
        raise ChecksumError(
            f"checksum mismatch: computed {actual:04X}, footer {expected:04X}"
        )
