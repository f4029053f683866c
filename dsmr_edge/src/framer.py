"""
Line-fed framer that cuts a P1 byte stream into telegrams.

A telegram on the wire looks like::

    /ISk5\\2MT382-1000          <- header: 6-char marker + identifier
                               <- blank line
    1-3:0.2.8(50)              <- data lines
    0-0:1.0.0(101209113020W)
    ...
    !EF2F                      <- footer: "!" + CRC16 in hex

The framer is a small state machine fed one raw line at a time (terminator
included, as returned by ``readline()``). It returns a :class:`Frame` when
a footer completes a telegram and ``None`` while more lines are needed.
Lines seen before a header are skipped. Any framing error resets the state
machine so the next header starts a fresh telegram.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from dsmr_edge.src.exceptions import FramingError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

HEADER_MARKER = b"/"
FOOTER_MARKER = b"!"
HEADER_MARKER_LEN = 6
"""Number of leading header characters that form the marker."""

ENCODING = "latin-1"
"""Every byte maps to one character, so decoding a line cannot fail."""


# ---------------------------------------------------------------------------
# Data definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Frame:
    """One telegram delimited by the framer, not yet verified.

    Attributes:
        header_marker: First six characters of the header line.
        header_id: Remainder of the header line, trimmed.
        body: Raw bytes from the header line through the last data line,
            exactly as received. The CRC is computed over this plus ``!``.
        lines: Data lines, trimmed, in order of arrival.
        footer: Footer line, trimmed (``"!XXXX"``).
    """

    header_marker: str
    header_id: str
    body: bytes
    lines: list[str] = field(default_factory=list)
    footer: str = ""


class _State(Enum):
    IDLE = "idle"
    SEPARATOR = "separator"
    DATA = "data"


# ---------------------------------------------------------------------------
# Framer
# ---------------------------------------------------------------------------


class TelegramFramer:
    """Stateful line-by-line telegram framer.

    Usage::

        framer = TelegramFramer()
        while True:
            frame = framer.feed(await reader.readline())
            if frame is not None:
                break
    """

    def __init__(self) -> None:
        self._state = _State.IDLE
        self._marker = ""
        self._header_id = ""
        self._body = bytearray()
        self._lines: list[str] = []

    @property
    def in_telegram(self) -> bool:
        """``True`` once a header was seen and the footer is still pending."""
        return self._state is not _State.IDLE

    def reset(self) -> None:
        """Drop any partially framed telegram and wait for a new header."""
        self._state = _State.IDLE
        self._marker = ""
        self._header_id = ""
        self._body = bytearray()
        self._lines = []

    def feed(self, line: bytes) -> Frame | None:
        """Consume one raw line.

        Args:
            line: A line including its ``\\n`` / ``\\r\\n`` terminator.

        Returns:
            The completed :class:`Frame` when *line* is the footer,
            otherwise ``None``.

        Raises:
            FramingError: If the header is too short or the line after the
                header is not blank. The framer is reset before raising.
        """
        try:
            if self._state is _State.IDLE:
                self._on_idle(line)
                return None
            if self._state is _State.SEPARATOR:
                self._on_separator(line)
                return None
            return self._on_data(line)
        except FramingError:
            self.reset()
            raise

    # ------------------------------------------------------------------
    # State handlers
    # ------------------------------------------------------------------

    def _on_idle(self, line: bytes) -> None:
        if not line.startswith(HEADER_MARKER):
            logger.debug("Skipping line %r", line)
            return

        header = line.decode(ENCODING).rstrip("\r\n")
        if len(header) < HEADER_MARKER_LEN:
            raise FramingError(f"header line too short: {header!r}")

        self._marker = header[:HEADER_MARKER_LEN]
        self._header_id = header[HEADER_MARKER_LEN:].strip()
        self._body = bytearray(line)
        self._lines = []
        self._state = _State.SEPARATOR

    def _on_separator(self, line: bytes) -> None:
        if line.strip():
            raise FramingError(f"line after header is not blank: {line!r}")
        self._body += line
        self._state = _State.DATA

    def _on_data(self, line: bytes) -> Frame | None:
        if line.startswith(FOOTER_MARKER):
            frame = Frame(
                header_marker=self._marker,
                header_id=self._header_id,
                body=bytes(self._body),
                lines=self._lines,
                footer=line.decode(ENCODING).strip(),
            )
            self.reset()
            return frame

        self._body += line
        self._lines.append(line.decode(ENCODING).strip())
        return None


def frame_bytes(raw: bytes) -> Frame:
    """Frame a single telegram held entirely in memory.

    Leading noise before the header is skipped, as on a live stream.

    Raises:
        FramingError: If *raw* is malformed or ends before a footer.
    """
    framer = TelegramFramer()
    for line in raw.splitlines(keepends=True):
        frame = framer.feed(line)
        if frame is not None:
            return frame
    raise FramingError("incomplete telegram: no footer line")
