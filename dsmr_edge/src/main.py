"""
Edge daemon main loop for the DSMR P1 telegram reader.

Opens the meter's P1 serial port, runs a :class:`TelegramStream` over it,
and writes every decoded telegram to stdout as one JSON object (using the
established ``HeaderMarker`` / ``Electricity`` / ``KWh`` key names).

Graceful shutdown on SIGTERM/SIGINT sets a shared asyncio.Event; the
telegram stream is stopped, which ends the output loop.

Structured JSON logging is used for all events and goes to stderr, so
stdout carries telegrams only. A HealthWriter instance tracks the last
telegram and the last discarded telegram.

CHANGELOG:
- 2026-10-19: Initial creation
- 2026-10-20: Pass READ_RETRY_S through to the telegram stream

TODO:
- None
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING, TextIO

from dsmr_edge.src.health import HealthWriter
from dsmr_edge.src.stream import DEFAULT_RETRY_DELAY_S, TelegramStream

if TYPE_CHECKING:
    from dsmr_edge.src.config import P1Settings
    from dsmr_edge.src.stream import LineSource

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structured JSON logging for the edge daemon.

    Sets up the root logger with a JSON-formatted handler writing to stderr.
    """

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


# ---------------------------------------------------------------------------
# Startup config logging
# ---------------------------------------------------------------------------


def log_config_summary(settings: P1Settings) -> None:
    """Log the effective configuration at startup."""
    logger.info(
        "P1 reader starting with config: "
        "serial_device=%s, baud_rate=%s, health_path=%s, "
        "log_level=%s, json_indent=%s, read_retry_s=%s",
        settings.serial_device,
        settings.baud_rate,
        settings.health_path or "disabled",
        settings.log_level,
        settings.json_indent,
        settings.read_retry_s,
    )


# ---------------------------------------------------------------------------
# Single-iteration functions (easily testable)
# ---------------------------------------------------------------------------


async def _emit_once(
    *,
    stream: TelegramStream,
    out: TextIO,
    indent: int | None = None,
) -> bool:
    """Take one decoded telegram from *stream* and write it to *out*.

    Returns:
        True if a telegram was written, False once the stream is closed.
    """
    result = await stream.get()
    if result is None:
        return False

    out.write(result.telegram.model_dump_json(by_alias=True, indent=indent))
    out.write("\n")
    out.flush()
    logger.debug(
        "Emitted telegram id=%s ts=%s (%d field errors)",
        result.telegram.id,
        result.telegram.timestamp,
        len(result.errors),
    )
    return True


# ---------------------------------------------------------------------------
# Loop runners
# ---------------------------------------------------------------------------


async def run_reader(
    *,
    source: LineSource,
    shutdown_event: asyncio.Event,
    out: TextIO,
    health: HealthWriter | None = None,
    indent: int | None = None,
    retry_delay_s: float = DEFAULT_RETRY_DELAY_S,
) -> None:
    """Stream telegrams from *source* to *out* until shutdown or end of input.

    Args:
        source: Byte source with an async ``readline()``.
        shutdown_event: Event to signal graceful shutdown.
        out: Text stream receiving one JSON telegram per line.
        health: HealthWriter instance, or None to skip health writes.
        indent: JSON indent, or None for compact output.
        retry_delay_s: Wait after a failed read before reading again.
    """
    async with TelegramStream(
        source, health=health, retry_delay_s=retry_delay_s
    ) as stream:

        async def _stop_on_shutdown() -> None:
            await shutdown_event.wait()
            logger.info("Shutdown requested, stopping telegram stream")
            await stream.stop()

        watcher = asyncio.create_task(_stop_on_shutdown())
        try:
            while await _emit_once(stream=stream, out=out, indent=indent):
                pass
        finally:
            watcher.cancel()

    logger.info(
        "Reader finished (decoded=%d, discarded=%d)",
        stream.decoded,
        stream.discarded,
    )


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


async def async_main() -> None:
    """Async entrypoint: load config, open the serial port, run the reader.

    Sets up SIGTERM/SIGINT handlers to trigger graceful shutdown.
    """
    import serial
    import serial_asyncio

    from dsmr_edge.src.config import P1Settings

    settings = P1Settings()
    configure_logging(settings.log_level_value)
    log_config_summary(settings)

    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: _handle_signal(shutdown_event),
        )

    reader, writer = await serial_asyncio.open_serial_connection(
        url=settings.serial_device,
        baudrate=settings.baud_rate,
        bytesize=serial.EIGHTBITS,
        parity=serial.PARITY_NONE,
        stopbits=serial.STOPBITS_ONE,
    )

    health = HealthWriter(settings.health_path) if settings.health_path else None

    try:
        await run_reader(
            source=reader,
            shutdown_event=shutdown_event,
            out=sys.stdout,
            health=health,
            indent=settings.json_indent,
            retry_delay_s=settings.read_retry_s,
        )
    finally:
        writer.close()


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event.

    Args:
        shutdown_event: The event to set for graceful shutdown.
    """
    logger.info("Received shutdown signal, initiating graceful shutdown")
    shutdown_event.set()


def main() -> None:
    """Synchronous entrypoint for the P1 reader daemon."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
