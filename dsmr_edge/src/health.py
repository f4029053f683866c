"""
Health file writer for the P1 edge daemon.

Writes a JSON health file at a configurable path with these fields:
- last_telegram_ts: ISO timestamp of the most recent decoded telegram.
- last_error_ts: ISO timestamp of the most recently discarded telegram.
- last_error: Reason the last telegram was discarded.
- telegram_count: Telegrams decoded since start.
- error_count: Telegrams discarded since start.
- field_error_count: Field-level errors across all decoded telegrams.

The file is overwritten on every state change, providing a simple liveness
signal that Docker HEALTHCHECK or monitoring can inspect. A meter sends a
telegram every few seconds, so a stale last_telegram_ts means the serial
link is down.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path


class HealthWriter:
    """Writes P1 reader health status to a JSON file.

    Each mutating method updates the in-memory state and immediately
    rewrites the health file so it always reflects the latest status.

    Args:
        path: Filesystem path for the health JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._last_telegram_ts: str | None = None
        self._last_error_ts: str | None = None
        self._last_error: str | None = None
        self._telegram_count: int = 0
        self._error_count: int = 0
        self._field_error_count: int = 0

    def record_telegram(self, field_errors: int = 0) -> None:
        """Record a decoded telegram and write health file.

        Args:
            field_errors: Number of field-level errors it carried.
        """
        self._last_telegram_ts = datetime.now(tz=UTC).isoformat()
        self._telegram_count += 1
        self._field_error_count += field_errors
        self._write()

    def record_error(self, reason: str) -> None:
        """Record a discarded telegram and write health file."""
        self._last_error_ts = datetime.now(tz=UTC).isoformat()
        self._last_error = reason
        self._error_count += 1
        self._write()

    def _write(self) -> None:
        """Write the health JSON file with current state."""
        data = {
            "last_telegram_ts": self._last_telegram_ts,
            "last_error_ts": self._last_error_ts,
            "last_error": self._last_error,
            "telegram_count": self._telegram_count,
            "error_count": self._error_count,
            "field_error_count": self._field_error_count,
        }
        self.path.write_text(json.dumps(data))
