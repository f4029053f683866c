"""
Error taxonomy for the P1 telegram decoder.

Two families of failures exist:

- **Telegram-level** (:class:`TelegramError` and subclasses): the current
  telegram cannot be trusted and is discarded as a whole. Raised by the
  framer, the checksum validator and the line splitter; caught and
  reported by the stream driver, which then moves on to the next telegram.
- **Field-level** (:class:`FieldError`): a single field could not be
  decoded. These are values, not exceptions; they are collected and
  returned alongside a still-usable telegram.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass


class TelegramError(Exception):
    """Base class for errors that abort decoding of one telegram."""


class FramingError(TelegramError):
    """The byte stream does not follow the header/blank/data/footer layout."""


class ChecksumError(TelegramError):
    """The footer CRC is missing, unparsable, or does not match the body."""


class LineSplitError(TelegramError):
    """A data line could not be split into a code and its arguments."""


class MalformedArgumentError(LineSplitError):
    """An argument segment is not terminated by ``)``."""


class DuplicateCodeError(LineSplitError):
    """The same OBIS code occurs more than once in one telegram."""


class TelegramReadError(TelegramError):
    """The byte source failed while a telegram was being read."""


class SourceExhausted(TelegramError):
    """The byte source reached end of input."""


class UnitError(ValueError):
    """An ``amount*unit`` token could not be normalized."""


@dataclass(frozen=True, slots=True)
class FieldError:
    """A non-fatal problem decoding one field of a telegram.

    Attributes:
        code: OBIS code of the offending field.
        message: Human-readable description, naming the code.
    """

    code: str
    message: str

    def __str__(self) -> str:
        return self.message
